"""Tests for unsaved-editor-buffer detection."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from editor_temps import editor_temp_candidates, find_editor_temp


def test_no_temporaries(tmp_path):
    (tmp_path / "ChangeLog").write_text("")
    assert find_editor_temp(str(tmp_path / "ChangeLog")) is None


def test_emacs_lock_symlink_may_dangle(tmp_path):
    os.symlink("user@host.1234:1", str(tmp_path / ".#ChangeLog"))
    assert find_editor_temp(str(tmp_path / "ChangeLog")) == str(tmp_path / ".#ChangeLog")


def test_emacs_autosave(tmp_path):
    (tmp_path / "#foo.c#").write_text("")
    assert find_editor_temp(str(tmp_path / "foo.c")) == str(tmp_path / "#foo.c#")


def test_vim_swap_files(tmp_path):
    (tmp_path / ".foo.c.swo").write_text("")
    assert find_editor_temp(str(tmp_path / "foo.c")) == str(tmp_path / ".foo.c.swo")


def test_candidates_stay_in_the_same_directory():
    candidates = editor_temp_candidates("lib/foo.c")
    assert "lib/.#foo.c" in candidates
    assert "lib/.foo.c.swp" in candidates
    assert all(c.startswith("lib/") for c in candidates)
