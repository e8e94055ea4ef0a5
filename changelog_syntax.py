"""Line grammar shared by the ChangeLog entry parser and the backscan."""

import re
from typing import List, Optional, Tuple

# 2006-08-24  Jim Meyering  <jim@meyering.net>
ATTRIBUTION = re.compile(r'^(\d{4}-\d\d-\d\d)  (\S(?:.*?\S)?)  <([^<>\s]+)>\s*$')
# Anything that looks like a date/name/email header, whatever the spacing.
LOOSE_ATTRIBUTION = re.compile(r'^(\d{4}-\d\d-\d\d)\s+(\S.*?)\s*<([^<>\s]+)>\s*$')
# A second author on the line after the header: "\tand Name <email>".
# File-marker and "(func)" lines are never authors.
CONTINUATION_ATTRIBUTION = re.compile(r'^\t\s*(?:and\s+)?[^\s*(][^<]*<[^<>\s]+>\s*$')
INDENTED_DATE = re.compile(r'^\s*\d{4}-\d\d-\d\d\s')

VERSION_LINE = re.compile(r'^\* Version \d')
# The file spec ends at the first ":" followed by a space, or at a
# trailing ")" when the description continues on the next line.
FILE_MARKER = re.compile(r'^\* (?P<spec>\S.*?)(?::(?=\s|$)|(?<=\))$)')
# "(func) [member]: descr" lines need no ":" after a synthesized file name.
QUALIFIED_CONTINUATION = re.compile(r'^\([^)]+\)(?:\s*\[[^\]]+\])?: ')

_GROUPS = re.compile(r'\([^)]*\)|\[[^\]]*\]')


def extract_file_list(spec: str) -> List[str]:
    """
    Return the file names in the part of a ChangeLog line after "* ".

    Handles lines such as:
        foo.c: descr
        lib/bar.c (func): descr
        glarp.c (struct) [member]: descr
        ix.c (chi), co.c (ff), blurp.h: descr
    """
    names = []
    for entry in _GROUPS.sub('', spec).split(','):
        name = entry.lstrip(' ').split(' ', 1)[0].rstrip(':')
        if name:
            names.append(name)
    return names


def file_spec(line: str) -> Optional[str]:
    """Return the file spec of a "* file...:" line, or None if it has another shape."""
    match = FILE_MARKER.match(line)
    return match.group('spec') if match else None


def parse_attribution(line: str) -> Optional[Tuple[str, str]]:
    """Return (name, email) from a strict two-space attribution header."""
    match = ATTRIBUTION.match(line)
    if not match:
        return None
    return match.group(2), match.group(3)


def looks_like_attribution(line: str) -> bool:
    return bool(LOOSE_ATTRIBUTION.match(line))


def normalize_author(author: str) -> str:
    """Collapse the whitespace before "<email>" to a single space."""
    return re.sub(r'\s+<', ' <', author.strip())
