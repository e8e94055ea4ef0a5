"""Version-control backends: command templates, diff conventions and detection."""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence, Type


class VcName(str, Enum):
    BZR = "bzr"
    CVS = "cvs"
    GIT = "git"
    HG = "hg"
    SVN = "svn"


class VcBackend(ABC):
    """Command conventions of one version-control system."""

    name: VcName
    valid_diff_exit_statuses: FrozenSet[int] = frozenset({0})
    # True if running diff from a sub-directory prints +++/--- lines with
    # names relative to the top level directory.
    outputs_full_file_names: bool = False
    # git and hg prefix header names with a fake "a/" or "b/" component.
    strips_ab_prefix: bool = False
    emits_extended_headers: bool = False

    @abstractmethod
    def diff_command(self) -> List[str]:
        """Return the argv prefix that prints a unified diff of the named files."""

    @abstractmethod
    def commit_prefix(self, message_file: str) -> List[str]:
        """Return the argv that commits with the log message read from MESSAGE_FILE."""

    def author_option(self, author: str) -> Optional[str]:
        """Return the option that records AUTHOR, or None if unsupported."""
        return None

    def valid_diff_exit_status(self, status: int) -> bool:
        return status in self.valid_diff_exit_statuses

    def commit_command(
        self, message_file: str, files: Sequence[str], author: Optional[str] = None
    ) -> List[str]:
        cmd = self.commit_prefix(message_file)
        if author:
            option = self.author_option(author)
            if option:
                cmd.append(option)
        return cmd + ["--"] + list(files)

    def strip_header_prefix(self, file_name: str) -> str:
        if self.strips_ab_prefix and file_name[:2] in ("a/", "b/"):
            return file_name[2:]
        return file_name

    def __str__(self) -> str:
        return self.name.value


class GitBackend(VcBackend):
    name = VcName.GIT
    outputs_full_file_names = True
    strips_ab_prefix = True
    emits_extended_headers = True

    def diff_command(self):
        return ["git", "diff", "HEAD", "--"]

    def commit_prefix(self, message_file):
        return ["git", "commit", "-F", message_file]

    def author_option(self, author):
        return f"--author={author}"


class HgBackend(VcBackend):
    name = VcName.HG
    outputs_full_file_names = True
    strips_ab_prefix = True

    def diff_command(self):
        return ["hg", "diff", "-p", "-a", "--"]

    def commit_prefix(self, message_file):
        return ["hg", "commit", "-l", message_file]

    def author_option(self, author):
        return f"--user={author}"


class BzrBackend(VcBackend):
    name = VcName.BZR
    valid_diff_exit_statuses = frozenset({0, 1})
    outputs_full_file_names = True

    def diff_command(self):
        return ["bzr", "diff", "--"]

    def commit_prefix(self, message_file):
        return ["bzr", "commit", "-F", message_file]

    def author_option(self, author):
        return f"--author={author}"


class SvnBackend(VcBackend):
    name = VcName.SVN

    def diff_command(self):
        return ["svn", "diff", "--"]

    def commit_prefix(self, message_file):
        return ["svn", "commit", "-F", message_file]


class CvsBackend(VcBackend):
    name = VcName.CVS
    # cvs diff exits 1 when there are differences.
    valid_diff_exit_statuses = frozenset({0, 1})

    def diff_command(self):
        return ["cvs", "-f", "-Q", "-n", "diff", "-Nu", "--"]

    def commit_prefix(self, message_file):
        return ["cvs", "ci", "-F", message_file]


BACKENDS: Dict[VcName, Type[VcBackend]] = {
    cls.name: cls for cls in (BzrBackend, CvsBackend, GitBackend, HgBackend, SvnBackend)
}


def supported_vc_names() -> List[str]:
    return sorted(name.value for name in VcName)


def get_backend(name) -> VcBackend:
    """Return the backend for NAME, raising ValueError for unknown names."""
    try:
        vc_name = VcName(name)
    except ValueError:
        raise ValueError(f"{name}: not a supported version control system") from None
    return BACKENDS[vc_name]()


@dataclass
class Detection:
    """Backend managing a file, plus the top of the working tree when known."""

    backend: VcBackend
    root: str

    def full_file_name(self, file_name: str, cwd: Optional[str] = None) -> str:
        """Map a cwd-relative FILE_NAME to the name the backend's diff prints."""
        if not self.backend.outputs_full_file_names:
            return file_name
        absolute = os.path.abspath(os.path.join(cwd or os.getcwd(), file_name))
        return os.path.relpath(absolute, self.root).replace(os.sep, "/")


# Markers that only ever appear in the directory holding the file.
_LOCAL_MARKERS = (
    ("CVS", VcName.CVS, True),
    (".svn", VcName.SVN, True),
    (".git", VcName.GIT, False),
    (".hg", VcName.HG, True),
    (".bzr", VcName.BZR, True),
)

# Markers searched for in every parent directory, up to "/".
_PARENT_MARKERS = (
    (".git", VcName.GIT, False),
    (".hg", VcName.HG, True),
    (".bzr", VcName.BZR, True),
    (".svn", VcName.SVN, True),
)


def _has_marker(directory: str, marker: str, must_be_dir: bool) -> bool:
    candidate = os.path.join(directory, marker)
    if must_be_dir:
        return os.path.isdir(candidate)
    # A linked git worktree or submodule has a ".git" file instead.
    return os.path.exists(candidate)


def detect_backend(path: str) -> Optional[Detection]:
    """Determine which version control system manages PATH."""
    directory = os.path.abspath(path)
    if not os.path.isdir(directory):
        directory = os.path.dirname(directory)

    for marker, vc_name, must_be_dir in _LOCAL_MARKERS:
        if _has_marker(directory, marker, must_be_dir):
            return Detection(BACKENDS[vc_name](), directory)

    while True:
        parent = os.path.dirname(directory)
        if parent == directory:
            return None
        directory = parent
        for marker, vc_name, must_be_dir in _PARENT_MARKERS:
            if _has_marker(directory, marker, must_be_dir):
                return Detection(BACKENDS[vc_name](), directory)
