"""Environment-driven settings."""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from vc_backends import VcName, get_backend

DEFAULT_CHANGELOG = "ChangeLog"


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Fetch an environment variable returning the default when unset or empty."""
    value = os.environ.get(name)
    if value is None:
        return default
    trimmed = value.strip()
    return trimmed if trimmed else default


@dataclass(frozen=True)
class DwimSettings:
    """Resolved configuration for one run."""

    forced_vc: Optional[VcName]
    message_dir: str
    default_changelog: str = DEFAULT_CHANGELOG


@lru_cache
def get_settings() -> DwimSettings:
    """Return memoized settings read from VC_DWIM_* variables."""
    forced_raw = _get_env("VC_DWIM_VC")
    forced_vc = None
    if forced_raw is not None:
        try:
            forced_vc = get_backend(forced_raw).name
        except ValueError as exc:
            raise ValueError(f"Invalid VC_DWIM_VC value: {forced_raw!r}") from exc

    message_dir = _get_env("VC_DWIM_TMPDIR", ".")
    return DwimSettings(forced_vc=forced_vc, message_dir=message_dir)
