"""Turn the added lines of a ChangeLog diff into a log message and a file list."""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Set, Tuple

from changelog_backscan import find_governing_file, find_preceding_author
from changelog_syntax import (
    CONTINUATION_ATTRIBUTION,
    INDENTED_DATE,
    QUALIFIED_CONTINUATION,
    VERSION_LINE,
    extract_file_list,
    file_spec,
    looks_like_attribution,
    normalize_author,
    parse_attribution,
)
from diff_parser import AddedLineToken, OffsetMarker
from dwim_errors import (
    AuthorMismatch,
    InvalidAttributionLine,
    MalformedChangelogLine,
    NoAddedLines,
    NoGoverningFileMarker,
    UnexpectedNonBlankLine,
)

logger = logging.getLogger(__name__)


class AuthorSource(Enum):
    OPTION = 'option'
    ATTRIBUTION = 'attribution'
    BACKSCAN = 'backscan'


@dataclass
class AuthorSlot:
    """The one author shared by every ChangeLog of a run."""
    author: Optional[str] = None
    source: Optional[AuthorSource] = None
    origin: str = ''

    @classmethod
    def from_option(cls, author: Optional[str]) -> 'AuthorSlot':
        if not author:
            return cls()
        return cls(normalize_author(author), AuthorSource.OPTION, '--author')

    def reconcile(self, name: str, email: str, origin: str) -> None:
        """Record an attribution header, or check it against the known author."""
        candidate = normalize_author(f"{name} <{email}>")
        if self.author is None or self.source is AuthorSource.BACKSCAN:
            self.author, self.source, self.origin = candidate, AuthorSource.ATTRIBUTION, origin
            return
        if normalize_author(self.author) != candidate:
            raise AuthorMismatch(
                f"{origin}: author {candidate!r} does not match {self.author!r} from {self.origin}"
            )

    def suggest(self, name: str, email: str, origin: str) -> None:
        """Fill an empty slot from a weaker source; never overrides or fails."""
        if self.author is None:
            self.author = normalize_author(f"{name} <{email}>")
            self.source = AuthorSource.BACKSCAN
            self.origin = origin


class AffectedFileSet:
    """Insertion-ordered set of file names."""

    def __init__(self, names: Sequence[str] = ()):
        self._order: List[str] = []
        self._members: Set[str] = set()
        for name in names:
            self.add(name)

    def add(self, name: str) -> bool:
        """Append NAME unless already present; return True if it was new."""
        if name in self._members:
            return False
        self._members.add(name)
        self._order.append(name)
        return True

    def __contains__(self, name) -> bool:
        return name in self._members

    def __iter__(self) -> Iterator[str]:
        return iter(self._order)

    def __len__(self) -> int:
        return len(self._order)

    def as_list(self) -> List[str]:
        return list(self._order)


@dataclass
class ParsedChangelog:
    """Log-message lines and file names derived from one ChangeLog diff."""
    changelog: str
    body_lines: List[str] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    author: Optional[Tuple[str, str]] = None


class ParserState(Enum):
    EXPECT_ATTRIBUTION = 'expect-attribution'
    SKIPPING_LEADING_BLANKS = 'skipping-leading-blanks'
    IN_BODY = 'in-body'


class ChangelogEntryParser:
    """
    State machine over the added-line tokens of one ChangeLog.

    Attribution header first, then blank padding, then the body, where every
    "* file" marker contributes to the affected file set.  Lines that don't
    name their file get it from the ChangeLog on disk.
    """

    def __init__(
        self,
        changelog_path: str,
        author_slot: AuthorSlot,
        affected_files: AffectedFileSet,
        multiple_changelogs: bool = False,
    ):
        self.changelog_path = changelog_path
        self.rel_dir = os.path.dirname(changelog_path) or '.'
        self.author_slot = author_slot
        self.affected_files = affected_files
        self.multiple_changelogs = multiple_changelogs
        self.state = ParserState.EXPECT_ATTRIBUTION
        self.offset = 0
        self.in_summary = True

    def parse(self, tokens: Sequence[AddedLineToken]) -> ParsedChangelog:
        if not tokens:
            raise NoAddedLines(f"{self.changelog_path} is not modified")
        if not isinstance(tokens[0], OffsetMarker):
            raise ValueError("added-line tokens must start with an OffsetMarker")

        result = ParsedChangelog(self.changelog_path)
        self.offset = tokens[0].line
        remaining = list(tokens[1:])

        remaining, result.author = self._take_attribution(remaining)
        if result.author is None and self.author_slot.author is None:
            self._backscan_author()
        self.state = ParserState.SKIPPING_LEADING_BLANKS

        remaining = self._strip_blank_padding(remaining)
        self.state = ParserState.IN_BODY

        if self.multiple_changelogs:
            result.body_lines.append(f"[{self.changelog_path}]")
        result.body_lines.extend(self._walk_body(remaining, result.files))
        return result

    def _take_attribution(self, remaining: List[AddedLineToken]):
        assert self.state is ParserState.EXPECT_ATTRIBUTION
        first = remaining[0] if remaining else None

        if len(remaining) >= 3 and isinstance(first, str) and looks_like_attribution(first):
            attribution = parse_attribution(first)
            if attribution is None:
                raise InvalidAttributionLine(
                    f"{self.changelog_path}: attribution needs two spaces before the name"
                    f" and before the email:\n{first}"
                )
            self.author_slot.reconcile(*attribution, origin=self.changelog_path)

            consumed = 1
            second = remaining[1]
            if isinstance(second, str) and CONTINUATION_ATTRIBUTION.match(second):
                consumed = 2
            following = remaining[consumed] if consumed < len(remaining) else None
            if following != '':
                shown = following if isinstance(following, str) else ''
                raise UnexpectedNonBlankLine(
                    f"{self.changelog_path}: unexpected, non-blank line after first:\n{shown}"
                )
            consumed += 1
            self.offset += consumed
            return remaining[consumed:], attribution

        # An unchanged header can reappear as the tail of the added lines
        # when a new entry with the same header is inserted above it.
        if (
            len(remaining) >= 2
            and remaining[-1] == ''
            and isinstance(remaining[-2], str)
            and looks_like_attribution(remaining[-2])
        ):
            return remaining[:-2], None
        return remaining, None

    def _backscan_author(self) -> None:
        try:
            found = find_preceding_author(self.changelog_path, self.offset)
        except OSError as exc:
            logger.debug("cannot scan %s for an author: %s", self.changelog_path, exc)
            return
        if found:
            self.author_slot.suggest(*found, origin=self.changelog_path)

    def _strip_blank_padding(self, remaining: List[AddedLineToken]) -> List[AddedLineToken]:
        assert self.state is ParserState.SKIPPING_LEADING_BLANKS
        while remaining and remaining[0] == '':
            remaining.pop(0)
            self.offset += 1
        if remaining and remaining[-1] == '':
            remaining.pop()
        return [
            token[1:] if isinstance(token, str) and token.startswith('\t') else token
            for token in remaining
        ]

    def _walk_body(self, tokens: List[AddedLineToken], files: List[str]) -> List[str]:
        assert self.state is ParserState.IN_BODY
        body = []
        pending: Optional[int] = self.offset

        for token in tokens:
            if isinstance(token, OffsetMarker):
                pending = token.line
                continue
            line = token

            # * Version 6.1.
            if VERSION_LINE.match(line):
                continue
            if line == '':
                body.append(line)
                continue

            if pending is not None:
                if not line.startswith('* '):
                    line = self._attribute_line(line, pending)
                pending = None

            if line.startswith('*'):
                spec = file_spec(line)
                if spec is None:
                    raise MalformedChangelogLine(
                        f"{self.changelog_path}: line of unexpected form:\n{line}"
                    )
                for name in extract_file_list(spec):
                    self._add_file(name, files)
                self.in_summary = False

            body.append(line)
        return body

    def _attribute_line(self, line: str, line_no: int) -> str:
        """Prefix LINE with the "* file" marker governing it on disk, if any."""
        name, is_summary = find_governing_file(self.changelog_path, line_no)
        if name is None:
            if self.in_summary or INDENTED_DATE.match(line):
                return line
            raise NoGoverningFileMarker(
                f"{self.changelog_path}: can't find name of file in block containing line {line_no}"
            )
        if is_summary:
            return line
        self.in_summary = False
        colon = '' if QUALIFIED_CONTINUATION.match(line) else ':'
        return f"* {name}{colon} {line}"

    def _add_file(self, name: str, files: List[str]) -> None:
        rel_file = name if self.rel_dir == '.' else f"{self.rel_dir}/{name}"
        if self.affected_files.add(rel_file):
            logger.debug("affected file: %s", rel_file)
        if rel_file not in files:
            files.append(rel_file)


def parse_changelog_entry(
    tokens: Sequence[AddedLineToken],
    changelog_path: str,
    author_slot: AuthorSlot,
    affected_files: AffectedFileSet,
    multiple_changelogs: bool = False,
) -> ParsedChangelog:
    """Convenience wrapper parsing one ChangeLog's added-line tokens."""
    parser = ChangelogEntryParser(changelog_path, author_slot, affected_files, multiple_changelogs)
    return parser.parse(tokens)
