"""Error kinds raised while reconciling ChangeLog entries with diffs."""

from typing import Iterable, List


class DwimError(RuntimeError):
    """Base exception for every user-visible failure."""


class InvalidFileName(DwimError):
    """A command line argument is not a "."-relative name."""


class NotAChangelog(DwimError):
    """A command line argument does not name a ChangeLog file."""


class UnsavedEditorBuffer(DwimError):
    """An editor temporary file signals unsaved changes."""


class AmbiguousVersionControl(DwimError):
    """The ChangeLog files are managed by more than one version-control system."""


class NoVersionControl(DwimError):
    """No version-control system manages a ChangeLog file."""


class MalformedDiff(DwimError):
    """Diff output does not have the shape of a unified diff."""


class UnexpectedDiffLine(MalformedDiff):
    """A line inside a hunk does not start with a space, '-' or '+'."""


class NoAddedLines(DwimError):
    """A ChangeLog diff has no insertions."""


class InvalidAttributionLine(DwimError):
    """A "date  name  <email>" header does not use two-space separators."""


class AuthorMismatch(DwimError):
    """Two attributions in the same run name different authors."""


class UnexpectedNonBlankLine(DwimError):
    """The line following an attribution header is not blank."""


class NoGoverningFileMarker(DwimError):
    """An added line cannot be attributed to any "* file" marker."""


class MalformedChangelogLine(DwimError):
    """A "*"-prefixed line does not look like "* file...: description"."""


class NoAffectedFiles(DwimError):
    """The ChangeLog diffs name no files at all."""


class FileNotInDiff(DwimError):
    """A file listed in the ChangeLog does not appear in the diff output."""


class MissingFile(DwimError):
    """A file that should exist on disk does not."""


class RemovedFileStillPresent(DwimError):
    """A file the diff marks as removed still exists on disk."""


class ExternalCommandFailed(DwimError):
    """A diff or commit command could not run or exited with a bad status."""

    def __init__(self, argv: Iterable[str], status=None, stderr: str = ""):
        self.argv = list(argv)
        self.status = status
        self.stderr = stderr
        super().__init__(str(self))

    def __str__(self) -> str:
        command = " ".join(self.argv)
        if self.status is None:
            message = f"failed to run '{command}'"
        else:
            message = f"'{command}' exited with status {self.status}"
        details = self.stderr.strip()
        return f"{message}: {details}" if details else message


class DwimErrors(DwimError):
    """Several errors collected across inputs and reported together."""

    def __init__(self, errors: List[DwimError]):
        self.errors = list(errors)
        super().__init__("\n".join(str(e) for e in self.errors))


def raise_collected(errors: List[DwimError]) -> None:
    """Raise the single error, or an aggregate of them, if any were collected."""
    if not errors:
        return
    if len(errors) == 1:
        raise errors[0]
    raise DwimErrors(errors)
