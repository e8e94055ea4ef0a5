"""Unified diff parsing: hunks, line kinds, and the added-line token stream."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union
import re

from dwim_errors import MalformedDiff, UnexpectedDiffLine

HUNK_HEADER = re.compile(r'^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@')


class LineKind(Enum):
    CONTEXT = ' '
    REMOVED = '-'
    ADDED = '+'


@dataclass
class DiffLine:
    """One body line of a hunk."""
    kind: LineKind
    text: str
    dest_line: Optional[int] = None


@dataclass
class DiffHunk:
    """Represents a hunk of changes within a file."""
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: List[DiffLine] = field(default_factory=list)

    @property
    def added_lines(self) -> List[DiffLine]:
        return [line for line in self.lines if line.kind is LineKind.ADDED]


@dataclass(frozen=True)
class OffsetMarker:
    """Destination line number of the first added line that follows it."""
    line: int


AddedLineToken = Union[OffsetMarker, str]


def normalize_diff_text(diff_text: str) -> List[str]:
    """
    Split diff output into lines, mapping whitespace-only lines to "".

    Some tools emit a blank context line as a lone space, others strip it.
    """
    return [line if line.strip() else '' for line in diff_text.splitlines()]


def fetch_diff(client, paths: List[str]) -> List[str]:
    """Return the normalized diff lines CLIENT produces for PATHS."""
    return normalize_diff_text(client.diff(paths))


def parse_hunks(diff_lines: List[str]) -> List[DiffHunk]:
    """
    Parse the diff of exactly one file into hunks.

    Args:
        diff_lines: Normalized diff output, one line per entry

    Returns:
        The hunks in order, each ADDED line carrying its destination line number

    Raises:
        MalformedDiff: no hunk header, or a hunk holding more lines than it claims
        UnexpectedDiffLine: a hunk body line with an unknown leading character
    """
    hunks: List[DiffHunk] = []
    current = None
    old_seen = new_seen = 0

    for line_no, line in enumerate(diff_lines, 1):
        match = HUNK_HEADER.match(line)
        if match:
            current = DiffHunk(
                old_start=int(match.group(1)),
                old_count=int(match.group(2)) if match.group(2) else 1,
                new_start=int(match.group(3)),
                new_count=int(match.group(4)) if match.group(4) else 1,
            )
            hunks.append(current)
            old_seen = new_seen = 0
            continue

        # File headers precede the first hunk.
        if current is None:
            continue

        dest_line = current.new_start + new_seen
        if line == '' or line[0] == ' ':
            current.lines.append(DiffLine(LineKind.CONTEXT, line[1:]))
            old_seen += 1
            new_seen += 1
        elif line[0] == '-':
            current.lines.append(DiffLine(LineKind.REMOVED, line[1:]))
            old_seen += 1
        elif line[0] == '+':
            current.lines.append(DiffLine(LineKind.ADDED, line[1:], dest_line))
            new_seen += 1
        elif line[0] == '\\':
            # "\ No newline at end of file"
            continue
        else:
            raise UnexpectedDiffLine(f"unexpected diff output on line {line_no}:\n{line}")

        if old_seen > current.old_count or new_seen > current.new_count:
            raise MalformedDiff(
                f"diff line {line_no} overruns its hunk: header claims "
                f"-{current.old_count} +{current.new_count} lines"
            )

    if current is None:
        raise MalformedDiff("no unidiff output")
    return hunks


def added_line_tokens(hunks: List[DiffHunk]) -> List[AddedLineToken]:
    """Flatten hunks into added text lines, one OffsetMarker before each hunk's first."""
    tokens: List[AddedLineToken] = []
    for hunk in hunks:
        added = hunk.added_lines
        if not added:
            continue
        tokens.append(OffsetMarker(added[0].dest_line))
        tokens.extend(line.text for line in added)
    return tokens


def extract_added_lines(diff_lines: List[str]) -> List[AddedLineToken]:
    """Parse a one-file diff straight into its added-line token stream."""
    return added_line_tokens(parse_hunks(diff_lines))
