"""Tests for archiver module."""

import os
import zipfile

import pytest
from unittest.mock import patch
from pathlib import Path

from src.backupfs.archiver import (
    BaseArchiver,
    ZipArchiver,
    iter_archive_members,
    list_entries,
)
from src.backupfs.exceptions import ArchiveError


@pytest.fixture
def source_dir(tmp_path):
    source = tmp_path / "source"
    (source / "sub").mkdir(parents=True)
    (source / "a.txt").write_text("alpha")
    (source / "sub" / "b.txt").write_text("beta")
    return source


class TestIterArchiveMembers:
    """Tests for iter_archive_members."""

    def test_directory_members(self, source_dir):
        names = [name for _, name in iter_archive_members(source_dir)]
        assert names == ["a.txt", "sub/b.txt"]

    def test_single_file_member(self, source_dir):
        members = list(iter_archive_members(source_dir / "a.txt"))
        assert members == [(source_dir / "a.txt", "a.txt")]

    def test_missing_source_raises(self, tmp_path):
        with pytest.raises(ArchiveError):
            list(iter_archive_members(tmp_path / "missing"))


class TestZipArchiver:
    """Tests for ZipArchiver class."""

    def test_is_base_archiver(self):
        archiver = ZipArchiver()
        assert isinstance(archiver, BaseArchiver)
        assert archiver.extension == "zip"

    def test_archive_directory(self, source_dir, tmp_path):
        destination = tmp_path / "out.zip"
        ZipArchiver().archive(source_dir, destination)

        assert sorted(list_entries(destination)) == ["a.txt", "sub/b.txt"]

    def test_archive_directory_contents(self, source_dir, tmp_path):
        destination = tmp_path / "out.zip"
        ZipArchiver().archive(source_dir, destination)

        with zipfile.ZipFile(destination) as zf:
            assert zf.read("a.txt") == b"alpha"
            assert zf.read("sub/b.txt") == b"beta"

    def test_archive_single_file(self, tmp_path):
        report = tmp_path / "docs" / "report.txt"
        report.parent.mkdir()
        report.write_text("quarterly numbers")
        destination = tmp_path / "out.zip"

        ZipArchiver().archive(report, destination)

        assert list_entries(destination) == ["report.txt"]

    def test_directories_not_stored(self, source_dir, tmp_path):
        (source_dir / "empty").mkdir()
        destination = tmp_path / "out.zip"

        ZipArchiver().archive(source_dir, destination)

        assert sorted(list_entries(destination)) == ["a.txt", "sub/b.txt"]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinks_not_stored(self, source_dir, tmp_path):
        try:
            os.symlink(source_dir / "a.txt", source_dir / "link.txt")
        except OSError:
            pytest.skip("cannot create symlinks")
        destination = tmp_path / "out.zip"

        ZipArchiver().archive(source_dir, destination)

        assert "link.txt" not in list_entries(destination)

    def test_stored_compression(self, source_dir, tmp_path):
        destination = tmp_path / "out.zip"
        ZipArchiver(zipfile.ZIP_STORED).archive(source_dir, destination)

        with zipfile.ZipFile(destination) as zf:
            assert all(info.compress_type == zipfile.ZIP_STORED for info in zf.infolist())

    def test_deflated_compression_by_default(self, source_dir, tmp_path):
        destination = tmp_path / "out.zip"
        ZipArchiver().archive(source_dir, destination)

        with zipfile.ZipFile(destination) as zf:
            assert all(info.compress_type == zipfile.ZIP_DEFLATED for info in zf.infolist())

    def test_missing_source_raises_without_creating_destination(self, tmp_path):
        destination = tmp_path / "out.zip"

        with pytest.raises(ArchiveError, match="does not exist"):
            ZipArchiver().archive(tmp_path / "missing", destination)

        assert not destination.exists()

    def test_missing_destination_directory_raises(self, source_dir, tmp_path):
        with pytest.raises(ArchiveError):
            ZipArchiver().archive(source_dir, tmp_path / "nope" / "out.zip")

    def test_accepts_str_paths(self, source_dir, tmp_path):
        destination = tmp_path / "out.zip"
        ZipArchiver().archive(str(source_dir), str(destination))
        assert destination.exists()

    def test_pre_1980_timestamps_are_archived(self, source_dir, tmp_path):
        old = source_dir / "old.txt"
        old.write_text("epoch")
        os.utime(old, (1, 1))
        destination = tmp_path / "out.zip"

        ZipArchiver().archive(source_dir, destination)

        with zipfile.ZipFile(destination) as zf:
            assert zf.read("old.txt") == b"epoch"
            assert zf.getinfo("old.txt").date_time == (1980, 1, 1, 0, 0, 0)

    def test_value_error_wrapped(self, source_dir, tmp_path):
        with patch("src.backupfs.archiver.zipfile.ZipFile.write", side_effect=ValueError("bad entry")):
            with pytest.raises(ArchiveError, match="bad entry"):
                ZipArchiver().archive(source_dir, tmp_path / "out.zip")
