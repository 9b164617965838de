"""
Tests for filesystem and process helpers.
"""

import os
from pathlib import Path

import pytest

from metrics_plugin.utils import list_directory_entries, remove_pidfile, write_pidfile


def test_list_directory_entries(tmp_path: Path) -> None:
    (tmp_path / "net").mkdir()
    (tmp_path / "cpuinfo").write_text("")
    (tmp_path / ".hidden").write_text("")

    assert list_directory_entries(tmp_path) == [".hidden", "cpuinfo", "net"]


def test_list_directory_entries_missing(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        list_directory_entries(tmp_path / "absent")


def test_pidfile_round_trip(tmp_path: Path) -> None:
    path = write_pidfile(tmp_path / "run" / "plugin.pid")

    assert path.read_text() == f"{os.getpid()}\n"

    remove_pidfile(path)
    assert not path.exists()
    remove_pidfile(path)


def test_foreign_pidfile_is_kept(tmp_path: Path) -> None:
    path = tmp_path / "plugin.pid"
    path.write_text("1\n")

    remove_pidfile(path)

    assert path.exists()
