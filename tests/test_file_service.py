"""
Tests for FileService: atomic hardlink replacement, removal and trash.
"""
import os
from unittest import mock

import pytest

from linkwise.services.file_service import FileService


class TestReplaceWithHardlink:

    def test_target_becomes_link_to_canonical(self, temp_dir):
        canonical = temp_dir / "keep.txt"
        target = temp_dir / "copy.txt"
        canonical.write_bytes(b"payload")
        target.write_bytes(b"payload")

        FileService.replace_with_hardlink(str(canonical), str(target))

        assert os.path.samefile(canonical, target)
        assert target.read_bytes() == b"payload"
        assert os.lstat(canonical).st_nlink == 2

    def test_no_temporary_file_left_behind(self, temp_dir):
        canonical = temp_dir / "keep.txt"
        target = temp_dir / "copy.txt"
        canonical.write_bytes(b"payload")
        target.write_bytes(b"payload")

        FileService.replace_with_hardlink(str(canonical), str(target))

        assert sorted(p.name for p in temp_dir.iterdir()) == ["copy.txt", "keep.txt"]

    def test_failed_rename_keeps_original_and_cleans_up(self, temp_dir):
        canonical = temp_dir / "keep.txt"
        target = temp_dir / "copy.txt"
        canonical.write_bytes(b"payload")
        target.write_bytes(b"original")

        with mock.patch("linkwise.services.file_service.os.replace", side_effect=OSError("rename failed")):
            with pytest.raises(OSError, match="rename failed"):
                FileService.replace_with_hardlink(str(canonical), str(target))

        assert target.read_bytes() == b"original"
        assert not os.path.samefile(canonical, target)
        assert sorted(p.name for p in temp_dir.iterdir()) == ["copy.txt", "keep.txt"]

    def test_missing_canonical_raises(self, temp_dir):
        target = temp_dir / "copy.txt"
        target.write_bytes(b"payload")

        with pytest.raises(FileNotFoundError):
            FileService.replace_with_hardlink(str(temp_dir / "gone.txt"), str(target))
        assert target.read_bytes() == b"payload"


class TestRemoval:

    def test_remove_unlinks(self, temp_dir):
        path = temp_dir / "victim.txt"
        path.write_bytes(b"x")

        FileService.remove(str(path))
        assert not path.exists()

    def test_move_to_trash_uses_send2trash(self, temp_dir):
        path = temp_dir / "victim.txt"
        path.write_bytes(b"x")

        with mock.patch("linkwise.services.file_service.send2trash") as trash:
            FileService.move_to_trash(str(path))

        trash.assert_called_once_with(str(path))

    def test_move_to_trash_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            FileService.move_to_trash(str(temp_dir / "gone.txt"))

    def test_move_to_trash_wraps_failures(self, temp_dir):
        path = temp_dir / "victim.txt"
        path.write_bytes(b"x")

        with mock.patch("linkwise.services.file_service.send2trash", side_effect=OSError("no trash")):
            with pytest.raises(RuntimeError, match="Failed to move to trash"):
                FileService.move_to_trash(str(path))


class TestSameInode:

    def test_detects_hardlinks(self, temp_dir):
        a = temp_dir / "a.txt"
        a.write_bytes(b"x")
        os.link(a, temp_dir / "b.txt")
        (temp_dir / "c.txt").write_bytes(b"x")

        assert FileService.is_same_inode(str(a), str(temp_dir / "b.txt"))
        assert not FileService.is_same_inode(str(a), str(temp_dir / "c.txt"))
        assert not FileService.is_same_inode(str(a), str(temp_dir / "missing.txt"))
