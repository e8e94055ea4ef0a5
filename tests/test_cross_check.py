"""Tests for checking ChangeLog file names against diff headers."""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from cross_check import cross_check, scan_diff
from dwim_errors import DwimErrors, FileNotInDiff, MissingFile, RemovedFileStillPresent
from vc_backends import GitBackend, HgBackend, SvnBackend

GIT_MODIFY = """\
diff --git a/foo.c b/foo.c
index 1111111..2222222 100644
--- a/foo.c
+++ b/foo.c
@@ -1 +1 @@
-old
+new""".split("\n")

GIT_RENAME = """\
diff --git a/x b/y
similarity index 100%
rename from x
rename to y""".split("\n")

GIT_DELETE = """\
diff --git a/gone.c b/gone.c
deleted file mode 100644
index abcdef0..0000000
--- a/gone.c
+++ /dev/null
@@ -1 +0,0 @@
-content""".split("\n")

HG_MODIFY = """\
diff -r 0123456789ab foo.c
--- a/foo.c\tThu Aug 24 10:00:00 2006 +0200
+++ b/foo.c\tThu Aug 24 10:01:00 2006 +0200
@@ -1 +1 @@
-old
+new""".split("\n")

SVN_MODIFY = """\
Index: a/b.c
===================================================================
--- a/b.c\t(revision 12)
+++ a/b.c\t(working copy)
@@ -1 +1 @@
-old
+new""".split("\n")


@pytest.fixture
def tree(tmp_path):
    return tmp_path


def touch(directory, name):
    (directory / name).write_text("x\n")


class TestScanDiff:
    def test_git_names_lose_fake_prefix(self):
        result = scan_diff(GitBackend(), GIT_MODIFY)
        assert result.seen == {"foo.c"}
        assert result.removed == set()

    def test_hg_names_lose_fake_prefix(self):
        assert "foo.c" in scan_diff(HgBackend(), HG_MODIFY).seen

    def test_svn_names_kept_verbatim(self):
        assert scan_diff(SvnBackend(), SVN_MODIFY).seen == {"a/b.c"}

    def test_rename_removes_old_name(self):
        result = scan_diff(GitBackend(), GIT_RENAME)
        assert {"x", "y"} <= result.seen
        assert result.removed == {"x"}

    def test_deleted_file(self):
        result = scan_diff(GitBackend(), GIT_DELETE)
        assert "gone.c" in result.seen
        assert result.removed == {"gone.c"}

    def test_new_file_mode(self):
        lines = [
            "diff --git a/new.c b/new.c",
            "new file mode 100644",
            "--- /dev/null",
            "+++ b/new.c",
            "@@ -0,0 +1 @@",
            "+int x;",
        ]
        result = scan_diff(GitBackend(), lines)
        assert result.added == {"new.c"}
        assert "new.c" in result.seen

    def test_header_lookalikes_inside_hunk_are_ignored(self):
        lines = GIT_MODIFY[:4] + [
            "@@ -1 +1 @@",
            "--- a/bar.c",
            "+++ b/bar.c",
        ]
        assert "bar.c" not in scan_diff(GitBackend(), lines).seen


class TestCrossCheck:
    def test_modified_file_passes(self, tree):
        touch(tree, "foo.c")
        result = cross_check(GitBackend(), ["foo.c"], GIT_MODIFY, base_dir=str(tree))
        assert "foo.c" in result.seen

    def test_file_not_in_diff_suggests_add(self, tree):
        touch(tree, "foo.c")
        touch(tree, "new.c")
        with pytest.raises(FileNotInDiff) as excinfo:
            cross_check(GitBackend(), ["foo.c", "new.c"], GIT_MODIFY, base_dir=str(tree))
        message = str(excinfo.value)
        assert message.startswith("new.c is listed in the ChangeLog entry, but not in diffs.")
        assert 'Did you forget to "git add" it?' in message

    def test_every_missing_name_is_reported(self, tree):
        with pytest.raises(DwimErrors) as excinfo:
            cross_check(GitBackend(), ["a.c", "b.c"], GIT_MODIFY, base_dir=str(tree))
        assert [type(e) for e in excinfo.value.errors] == [FileNotInDiff, FileNotInDiff]

    def test_rename_with_old_name_gone(self, tree):
        touch(tree, "y")
        result = cross_check(GitBackend(), ["x", "y"], GIT_RENAME, base_dir=str(tree))
        assert result.removed == {"x"}

    def test_renamed_file_still_present(self, tree):
        touch(tree, "x")
        touch(tree, "y")
        with pytest.raises(RemovedFileStillPresent, match="x: to-be-removed file is still here"):
            cross_check(GitBackend(), ["x", "y"], GIT_RENAME, base_dir=str(tree))

    def test_deleted_file_absent(self, tree):
        cross_check(GitBackend(), ["gone.c"], GIT_DELETE, base_dir=str(tree))

    def test_modified_file_missing_on_disk(self, tree):
        with pytest.raises(MissingFile, match="foo.c: no such file"):
            cross_check(GitBackend(), ["foo.c"], GIT_MODIFY, base_dir=str(tree))

    def test_full_name_mapping(self, tree):
        touch(tree, "foo.c")
        lines = [line.replace("foo.c", "sub/foo.c") for line in GIT_MODIFY]
        cross_check(
            GitBackend(), ["foo.c"], lines,
            full_name=lambda name: "sub/" + name,
            base_dir=str(tree),
        )
