"""Running version-control commands, and bootstrapping a tracked ChangeLog."""

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from git import Repo
from git.cmd import Git
from git.exc import GitCommandNotFound

from dwim_errors import DwimError, ExternalCommandFailed, NoVersionControl
from vc_backends import VcBackend, VcName, detect_backend

logger = logging.getLogger(__name__)

CHANGELOG_ADMIN_DIR = ".git-cl"


class CommandRunner:
    """Run external commands to completion, one at a time."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def run(
        self, argv: Sequence[str], cwd: Optional[str] = None, mutating: bool = False
    ) -> Tuple[int, str, str]:
        """
        Run ARGV in CWD and return (status, stdout, stderr).

        Commands flagged as mutating are only printed in dry-run mode.
        """
        argv = list(argv)
        if mutating and self.dry_run:
            print("would run: " + " ".join(argv))
            return 0, "", ""

        logger.info("Running command: %s", " ".join(argv))
        try:
            status, stdout, stderr = Git(cwd).execute(
                argv, with_extended_output=True, with_exceptions=False
            )
        except GitCommandNotFound as exc:
            raise ExternalCommandFailed(argv, None, str(exc)) from exc
        logger.debug("exit status %s", status)
        return status, stdout, stderr


class VcClient:
    """Diff and commit through one backend, from one working directory."""

    def __init__(self, backend: VcBackend, runner: CommandRunner, cwd: Optional[str] = None):
        self.backend = backend
        self.runner = runner
        self.cwd = cwd

    def name(self) -> VcName:
        return self.backend.name

    def diff(self, files: Sequence[str]) -> str:
        argv = self.backend.diff_command() + list(files)
        status, stdout, stderr = self.runner.run(argv, cwd=self.cwd)
        if not self.backend.valid_diff_exit_status(status):
            raise ExternalCommandFailed(argv, status, stderr)
        return stdout

    def commit(
        self,
        message_lines: Sequence[str],
        files: Sequence[str],
        author: Optional[str] = None,
        message_dir: str = ".",
    ) -> int:
        """Commit FILES with the log message MESSAGE_LINES and return the exit status."""
        if author and self.backend.author_option(author) is None:
            logger.warning("%s cannot record an author; ignoring %s", self.backend, author)

        fd, message_file = tempfile.mkstemp(prefix="vc-dwim-log-", dir=message_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write("\n".join(message_lines) + "\n")
            argv = self.backend.commit_command(os.path.abspath(message_file), files, author)
            status, stdout, stderr = self.runner.run(argv, cwd=self.cwd, mutating=True)
            if stdout:
                print(stdout)
            if status != 0:
                raise ExternalCommandFailed(argv, status, stderr)
            return status
        finally:
            os.unlink(message_file)


def raw_diff(paths: List[str], backend: VcBackend, runner: CommandRunner) -> str:
    """Diff PATHS with BACKEND, for the --diff mode."""
    return VcClient(backend, runner).diff(paths)


def initialize_changelog(directory: str = ".", dry_run: bool = False) -> str:
    """
    Create a separately version-controlled ChangeLog in DIRECTORY.

    The ChangeLog lives in its own git repository under .git-cl and is
    symlinked into the working tree; both names are excluded from the
    enclosing repository.

    Returns:
        Path of the new ChangeLog symlink
    """
    detection = detect_backend(directory)
    if detection is None:
        raise NoVersionControl(f"{directory}: not managed by any version control system")
    if detection.backend.name is not VcName.GIT:
        raise DwimError(f"--initialize is not supported for {detection.backend}")

    changelog = os.path.join(directory, "ChangeLog")
    admin_dir = os.path.join(directory, CHANGELOG_ADMIN_DIR)
    for existing in (changelog, admin_dir):
        if os.path.lexists(existing):
            raise DwimError(f"{existing}: already exists")

    if dry_run:
        print(f"would create {admin_dir} with an empty, committed ChangeLog")
        print(f"would link {changelog} -> {CHANGELOG_ADMIN_DIR}/ChangeLog")
        return changelog

    admin_repo = Repo.init(admin_dir)
    Path(admin_dir, "ChangeLog").write_text("")
    admin_repo.index.add(["ChangeLog"])
    admin_repo.index.commit("Initial commit")
    logger.info("created %s", admin_dir)

    os.symlink(os.path.join(CHANGELOG_ADMIN_DIR, "ChangeLog"), changelog)

    outer = Repo(detection.root)
    exclude = Path(outer.git_dir, "info", "exclude")
    exclude.parent.mkdir(parents=True, exist_ok=True)
    with exclude.open("a", encoding="utf-8") as fh:
        for name in (changelog, admin_dir):
            rel = os.path.relpath(os.path.abspath(name), detection.root)
            fh.write("/" + rel.replace(os.sep, "/") + "\n")

    return changelog
