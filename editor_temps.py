"""Detect editor temporaries that signal unsaved changes to a file."""

import os
from typing import List, Optional

VIM_SWAP_SUFFIXES = ('swp', 'swo', 'swn', 'swm', 'swl', 'swk')


def editor_temp_candidates(path: str) -> List[str]:
    """Names an Emacs or Vim temporary for PATH would have."""
    directory, base = os.path.split(path)
    names = [f".#{base}", f"#{base}#"]
    names.extend(f".{base}.{suffix}" for suffix in VIM_SWAP_SUFFIXES)
    return [os.path.join(directory, name) for name in names]


def find_editor_temp(path: str) -> Optional[str]:
    """Return the first editor temporary beside PATH, or None."""
    for candidate in editor_temp_candidates(path):
        # Emacs lock files are dangling symlinks.
        if os.path.lexists(candidate):
            return candidate
    return None
