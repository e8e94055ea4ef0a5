"""Recover the governing "* file" marker of a ChangeLog line from the file on disk."""

import logging
from typing import List, Optional, Tuple

from changelog_syntax import LOOSE_ATTRIBUTION, extract_file_list, file_spec

logger = logging.getLogger(__name__)


def _marker_file_name(line: str) -> Optional[str]:
    """Return the first file named by a "\\t* ..." line, or None for other lines."""
    if not line.startswith('\t*'):
        return None
    marker = line[1:]
    spec = file_spec(marker)
    if spec is None:
        spec = marker[1:]
    names = extract_file_list(spec)
    return names[0] if names else None


def _read_lines(changelog_path: str) -> List[str]:
    with open(changelog_path, encoding='utf-8', errors='replace') as fh:
        return fh.read().splitlines()


def find_governing_file(changelog_path: str, line_no: int) -> Tuple[Optional[str], bool]:
    """
    Find the file an entry line at LINE_NO talks about.

    For example, if the ChangeLog starts like this and LINE_NO is 4, the
    result is ("cvci", False), taken from line 3:

        2006-08-24  Jim Meyering  <jim@meyering.net>

        \t* cvci (get_new_changelog_lines): Allow removed ChangeLog lines.
        \t(main): Prepare to use offsets.

    Entries are blank-line delimited, so only lines after the last blank
    line before LINE_NO are searched.  When there are none, LINE_NO starts a
    summary; the first "*" line in the run of tab-indented lines from there
    on is returned with is_summary set.

    Returns:
        (file_name, is_summary); (None, True) when no marker is found
    """
    if line_no < 1:
        raise ValueError(f"invalid line number, {line_no}, derived from {changelog_path} diff output")

    lines = _read_lines(changelog_path)

    searchable: List[str] = []
    for line in lines[:line_no - 1]:
        if line == '':
            searchable = []
            continue
        searchable.append(line)

    if searchable:
        for line in reversed(searchable):
            name = _marker_file_name(line)
            if name is not None:
                logger.debug("%s:%d: governed by %s", changelog_path, line_no, name)
                return name, False
        return None, True

    for line in lines[line_no - 1:]:
        if not line.startswith('\t'):
            break
        name = _marker_file_name(line)
        if name is not None:
            logger.debug("%s:%d: summary of %s", changelog_path, line_no, name)
            return name, True
    return None, True


def find_preceding_author(changelog_path: str, line_no: int) -> Optional[Tuple[str, str]]:
    """Return (name, email) from the nearest header line before LINE_NO."""
    lines = _read_lines(changelog_path)
    for line in reversed(lines[:max(line_no - 1, 0)]):
        match = LOOSE_ATTRIBUTION.match(line)
        if match:
            return match.group(2), match.group(3)
    return None
