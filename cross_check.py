"""Cross-check ChangeLog-derived file names against the diff of those files."""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Set

from diff_parser import HUNK_HEADER
from dwim_errors import (
    DwimError,
    FileNotInDiff,
    MissingFile,
    RemovedFileStillPresent,
    raise_collected,
)
from vc_backends import VcBackend

logger = logging.getLogger(__name__)

# For git and hg, header names look like "--- a/dir/file.c" or
# "+++ b/dir/file.c"; cvs and svn print them without the fake prefix.
FILE_HEADER = re.compile(r'^([-+]{3}) (\S+)(?:[ \t]|$)')
GIT_DIFF_HEADER = re.compile(r'^diff --git (\S+) (\S+)')
RENAME_FROM = re.compile(r'^rename from (.+)$')
RENAME_TO = re.compile(r'^rename to (.+)$')


@dataclass
class CrossCheckResult:
    """File names the diff mentions, and those it removes or creates."""
    seen: Set[str] = field(default_factory=set)
    removed: Set[str] = field(default_factory=set)
    added: Set[str] = field(default_factory=set)


def scan_diff(backend: VcBackend, diff_lines: Iterable[str]) -> CrossCheckResult:
    """Collect file names from the headers of a multi-file diff."""
    result = CrossCheckResult()
    current = None
    prev_file = None
    old_left = new_left = 0

    for line in diff_lines:
        if old_left > 0 or new_left > 0:
            kind = line[:1]
            if kind in ('', ' '):
                old_left -= 1
                new_left -= 1
                continue
            if kind == '-':
                old_left -= 1
                continue
            if kind == '+':
                new_left -= 1
                continue
            if kind == '\\':
                continue
            # Short hunk; treat the line as a header.
            old_left = new_left = 0

        match = HUNK_HEADER.match(line)
        if match:
            old_left = int(match.group(2)) if match.group(2) else 1
            new_left = int(match.group(4)) if match.group(4) else 1
            continue

        if backend.emits_extended_headers:
            match = GIT_DIFF_HEADER.match(line)
            if match:
                current = backend.strip_header_prefix(match.group(1))
                result.seen.add(current)
                result.seen.add(backend.strip_header_prefix(match.group(2)))
                continue
            match = RENAME_FROM.match(line)
            if match:
                result.removed.add(match.group(1))
                result.seen.add(match.group(1))
                continue
            match = RENAME_TO.match(line)
            if match:
                result.seen.add(match.group(1))
                continue
            if line.startswith('deleted file mode') and current:
                result.removed.add(current)
                continue
            if line.startswith('new file mode') and current:
                result.added.add(current)
                continue

        match = FILE_HEADER.match(line)
        if not match:
            continue
        file_name = backend.strip_header_prefix(match.group(2))
        if match.group(1) == '+++' and file_name == '/dev/null' and prev_file:
            result.removed.add(prev_file)
        prev_file = file_name
        result.seen.add(file_name)

    return result


def cross_check(
    backend: VcBackend,
    affected_files: Iterable[str],
    diff_lines: Iterable[str],
    full_name: Optional[Callable[[str], str]] = None,
    base_dir: Optional[str] = None,
) -> CrossCheckResult:
    """
    Ensure every affected file appears in the diff and has the expected on-disk state.

    Args:
        backend: Backend that produced DIFF_LINES
        affected_files: "."-relative names derived from the ChangeLog entries
        diff_lines: Normalized diff of those files
        full_name: Maps a "."-relative name to the name the diff prints
        base_dir: Directory the names are relative to (defaults to the cwd)

    Raises:
        FileNotInDiff: a file is listed in the ChangeLog but not in the diff
        MissingFile: a file that is not being removed does not exist
        RemovedFileStillPresent: a file the diff removes still exists
    """
    affected = list(affected_files)
    to_key = full_name or (lambda name: name)
    result = scan_diff(backend, diff_lines)
    logger.debug("diff mentions %s; removes %s", sorted(result.seen), sorted(result.removed))

    errors: List[DwimError] = []
    for name in affected:
        if to_key(name) not in result.seen:
            errors.append(FileNotInDiff(
                f"{name} is listed in the ChangeLog entry, but not in diffs.\n"
                f"Did you forget to \"{backend} add\" it?"
            ))
    raise_collected(errors)

    for name in affected:
        path = os.path.join(base_dir, name) if base_dir else name
        if to_key(name) in result.removed:
            if os.path.isfile(path):
                errors.append(RemovedFileStillPresent(f"{name}: to-be-removed file is still here?!?"))
        elif not os.path.isfile(path):
            errors.append(MissingFile(f"{name}: no such file"))
    raise_collected(errors)

    return result
