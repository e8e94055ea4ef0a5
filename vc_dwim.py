"""Use new ChangeLog entries to direct and cross-check a version-control diff or commit."""

import logging
import os
import sys
from argparse import ArgumentParser
from dataclasses import dataclass, field
from typing import List, Optional

from changelog_parser import AffectedFileSet, AuthorSlot, ParsedChangelog, parse_changelog_entry
from cross_check import CrossCheckResult, cross_check
from diff_parser import extract_added_lines, normalize_diff_text
from dwim_config import get_settings
from dwim_errors import (
    AmbiguousVersionControl,
    DwimError,
    DwimErrors,
    InvalidFileName,
    MalformedDiff,
    MissingFile,
    NoAddedLines,
    NoAffectedFiles,
    NoVersionControl,
    NotAChangelog,
    UnsavedEditorBuffer,
    raise_collected,
)
from editor_temps import find_editor_temp
from git_operations import CommandRunner, VcClient, initialize_changelog, raw_diff
from vc_backends import Detection, detect_backend, get_backend, supported_vc_names

__version__ = "0.1.0"

PROG = "vc-dwim"

logger = logging.getLogger(__name__)


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog=PROG,
        description=(
            "Diff the named ChangeLog files, derive the list of affected files from "
            "the added entries, check them against the version-control diffs of "
            "those files, then print the log message and the diffs."
        ),
    )
    parser.add_argument("files", nargs="*", metavar="FILE",
                        help="ChangeLog files (default: ChangeLog), or files to diff with --diff")
    parser.add_argument("--commit", action="store_true",
                        help="commit the ChangeLog files and affected files, too")
    parser.add_argument("--author", metavar="'NAME <EMAIL>'",
                        help="author to record; must match any attribution in the ChangeLog")
    parser.add_argument("--vc", choices=supported_vc_names(),
                        help="don't guess the version control system: use VC")
    parser.add_argument("--diff", action="store_true",
                        help="print the diffs of the named FILEs using the version control "
                             "system of the first")
    parser.add_argument("--print-vc-list", action="store_true",
                        help="print the supported version control systems and exit")
    parser.add_argument("--initialize", action="store_true",
                        help="create a separately version-controlled ChangeLog")
    parser.add_argument("-n", "--dry-run", action="store_true",
                        help="don't run commands that change anything; print them")
    parser.add_argument("--verbose", action="store_true", help="print external commands")
    parser.add_argument("--debug", action="store_true", help="print debugging output")
    parser.add_argument("--version", action="version", version=f"{PROG} version {__version__}")
    return parser


def configure_logging(verbose: bool = False, debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logging.basicConfig(level=level, format=f"{PROG}: %(message)s", stream=sys.stderr)
    if not debug:
        logging.getLogger("git").setLevel(logging.WARNING)


def valid_file_name(name: str) -> bool:
    """True for a "."-relative name with no leading "./" and no ".." component."""
    if name.startswith("/") or name.startswith("./"):
        return False
    return ".." not in name.split("/")


def is_changelog(name: str) -> bool:
    return os.path.basename(name) == "ChangeLog"


def check_changelog_names(paths: List[str]) -> None:
    errors: List[DwimError] = []
    for path in paths:
        if not valid_file_name(path):
            errors.append(InvalidFileName(f"{path}: invalid file name"))
        if not is_changelog(path):
            errors.append(NotAChangelog(f"{path}: doesn't look like a ChangeLog file"))
    raise_collected(errors)


def check_unsaved(paths: List[str], must_exist: bool) -> None:
    errors: List[DwimError] = []
    for path in paths:
        if must_exist and not os.path.isfile(path):
            errors.append(MissingFile(f"{path}: no such file"))
            continue
        temp = find_editor_temp(path)
        if temp is not None:
            errors.append(UnsavedEditorBuffer(f"{path} has unsaved changes ({temp})"))
    raise_collected(errors)


def resolve_backend(paths: List[str], forced: Optional[str]) -> Detection:
    """Pick the one backend managing every path in PATHS."""
    detections = [detect_backend(path) for path in paths]
    if forced:
        known = next((d for d in detections if d is not None), None)
        return Detection(get_backend(forced), known.root if known else os.getcwd())

    unknown = [path for path, d in zip(paths, detections) if d is None]
    if unknown:
        raise NoVersionControl(
            f"{', '.join(unknown)}: managed by an unknown version-control system"
        )
    names = {d.backend.name for d in detections}
    if len(names) > 1:
        raise AmbiguousVersionControl(
            "ChangeLog files are managed by more than one version-control system: "
            + ", ".join(sorted(n.value for n in names))
        )
    return detections[0]


@dataclass
class ChangelogSource:
    """A ChangeLog argument and the client that diffs and commits it."""
    path: str
    client: VcClient
    target: str
    separate: bool = False


def changelog_source(path: str, main_client: VcClient, runner: CommandRunner) -> ChangelogSource:
    """A symlinked ChangeLog is managed in the directory it resolves to."""
    if not os.path.islink(path):
        return ChangelogSource(path, main_client, path)
    real = os.path.realpath(path)
    detection = detect_backend(real)
    if detection is None:
        raise NoVersionControl(f"{path}: {real} is not under version control")
    client = VcClient(detection.backend, runner, cwd=os.path.dirname(real))
    return ChangelogSource(path, client, os.path.basename(real), separate=True)


@dataclass
class Reconciliation:
    """Everything needed to print the checked diff, or to commit."""
    sources: List[ChangelogSource]
    client: VcClient
    body_lines: List[str] = field(default_factory=list)
    affected_files: List[str] = field(default_factory=list)
    diff_text: str = ""
    author: Optional[str] = None
    check: Optional[CrossCheckResult] = None


def reconcile(
    changelogs: List[str],
    runner: CommandRunner,
    author: Optional[str] = None,
    forced_vc: Optional[str] = None,
) -> Reconciliation:
    """
    Derive the log message and affected files from CHANGELOGS and check them.

    Nothing is printed here; every error is raised before any output.
    """
    check_changelog_names(changelogs)
    check_unsaved(changelogs, must_exist=True)

    detection = resolve_backend(changelogs, forced_vc)
    main_client = VcClient(detection.backend, runner)
    logger.debug("using %s, top directory %s", detection.backend, detection.root)

    sources = [changelog_source(path, main_client, runner) for path in changelogs]

    token_streams = []
    unmodified: List[DwimError] = []
    for source in sources:
        diff_lines = normalize_diff_text(source.client.diff([source.target]))
        if not any(diff_lines):
            unmodified.append(NoAddedLines(f"{source.path} is not modified"))
            continue
        try:
            tokens = extract_added_lines(diff_lines)
        except MalformedDiff as exc:
            raise type(exc)(f"{source.path}: {exc}") from exc
        if not tokens:
            unmodified.append(NoAddedLines(f"{source.path}: no newly added lines"))
            continue
        token_streams.append((source, tokens))
    raise_collected(unmodified)

    slot = AuthorSlot.from_option(author)
    affected = AffectedFileSet()
    parsed: List[ParsedChangelog] = []
    for source, tokens in token_streams:
        parsed.append(parse_changelog_entry(
            tokens, source.path, slot, affected, multiple_changelogs=len(changelogs) > 1
        ))

    if not affected:
        raise NoAffectedFiles("no files specified in ChangeLog diffs")

    # Affected files may be removed, so only look for editor temporaries.
    check_unsaved(affected.as_list(), must_exist=False)

    diff_text = main_client.diff(affected.as_list())
    check = cross_check(
        detection.backend,
        affected,
        normalize_diff_text(diff_text),
        full_name=detection.full_file_name,
    )

    body_lines = [line for p in parsed for line in p.body_lines]
    return Reconciliation(
        sources=sources,
        client=main_client,
        body_lines=body_lines,
        affected_files=affected.as_list(),
        diff_text=diff_text,
        author=slot.author,
        check=check,
    )


def commit(result: Reconciliation, message_dir: str) -> None:
    """Commit separately tracked ChangeLogs first, then everything else."""
    for source in result.sources:
        if source.separate:
            source.client.commit(result.body_lines, [source.target], result.author, message_dir)
    files = [s.path for s in result.sources if not s.separate] + result.affected_files
    result.client.commit(result.body_lines, files, result.author, message_dir)


def _report(error: DwimError) -> None:
    print(f"{PROG}: {error}", file=sys.stderr)


def _run(args, parser: ArgumentParser) -> int:
    try:
        settings = get_settings()
    except ValueError as exc:
        parser.error(str(exc))
    forced_vc = args.vc or (settings.forced_vc.value if settings.forced_vc else None)
    runner = CommandRunner(dry_run=args.dry_run)

    if args.print_vc_list:
        print(" ".join(supported_vc_names()))
        return 0

    if args.initialize:
        changelog = initialize_changelog(".", dry_run=args.dry_run)
        logger.info("initialized %s", changelog)
        return 0

    if args.diff:
        paths = args.files or ["."]
        detection = resolve_backend(paths[:1], forced_vc)
        print(raw_diff(args.files, detection.backend, runner))
        return 0

    changelogs = args.files or [settings.default_changelog]
    result = reconcile(changelogs, runner, author=args.author, forced_vc=forced_vc)

    print("\n".join(result.body_lines))
    print()
    print(result.diff_text)

    if args.commit:
        commit(result, settings.message_dir)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.diff and args.commit:
        parser.error("you can't use --diff with --commit")

    configure_logging(verbose=args.verbose, debug=args.debug)

    try:
        status = _run(args, parser)
    except DwimErrors as exc:
        for error in exc.errors:
            _report(error)
        return 1
    except DwimError as exc:
        _report(exc)
        return 1

    try:
        sys.stdout.flush()
    except OSError as exc:
        print(f"{PROG}: closing standard output: {exc}", file=sys.stderr)
        return 1
    return status


if __name__ == "__main__":
    sys.exit(main())
