"""
Unit tests for FileScannerImpl.
Verifies regular-file filtering, zero-byte counting, symlink skipping and multi-root handling.
"""
import os
import pytest

from linkwise.core.scanner import FileScannerImpl


class TestFileScanner:

    def test_yields_only_non_empty_regular_files(self, temp_dir, test_files):
        scanner = FileScannerImpl([str(temp_dir)])
        paths = {r.path for r in scanner.scan()}

        assert str(test_files["dup1_a"]) in paths
        assert str(test_files["sub_dup"]) in paths
        assert str(test_files["empty"]) not in paths
        assert len(paths) == 7

    def test_counts_zero_byte_files(self, temp_dir, test_files):
        scanner = FileScannerImpl([str(temp_dir)])
        list(scanner.scan())

        assert scanner.zero_byte_count == 1
        assert scanner.error_count == 0
        assert scanner.scanned_count == 8

    def test_records_carry_stat_metadata(self, temp_dir, test_files):
        scanner = FileScannerImpl([str(temp_dir)])
        record = next(r for r in scanner.scan() if r.path == str(test_files["dup2_a"]))

        st = os.lstat(test_files["dup2_a"])
        assert record.size == 2048
        assert record.device == st.st_dev
        assert record.inode == st.st_ino
        assert record.nlink == 1
        assert record.digest is None

    def test_skips_symlinks(self, temp_dir):
        target = temp_dir / "target.bin"
        target.write_bytes(b"payload")
        (temp_dir / "link.bin").symlink_to(target)
        (temp_dir / "broken.bin").symlink_to(temp_dir / "missing.bin")

        records = list(FileScannerImpl([str(temp_dir)]).scan())

        assert [r.path for r in records] == [str(target)]

    def test_hardlinked_names_are_both_cataloged(self, scenario_files, temp_dir):
        records = {r.path: r for r in FileScannerImpl([str(temp_dir)]).scan()}

        e, f = records[str(scenario_files["e"])], records[str(scenario_files["f"])]
        assert e.inode_key == f.inode_key
        assert e.nlink == f.nlink == 2

    def test_multiple_roots_are_all_walked(self, temp_dir):
        left, right = temp_dir / "left", temp_dir / "right"
        left.mkdir()
        right.mkdir()
        (left / "one.txt").write_bytes(b"1")
        (right / "two.txt").write_bytes(b"2")

        paths = {r.path for r in FileScannerImpl([str(left), str(right)]).scan()}

        assert paths == {str(left / "one.txt"), str(right / "two.txt")}

    def test_nested_root_is_walked_once(self, temp_dir, test_files):
        scanner = FileScannerImpl([str(temp_dir), str(temp_dir / "subdir")])
        paths = [r.path for r in scanner.scan()]

        assert scanner.roots == [str(temp_dir)]
        assert len(paths) == len(set(paths))

    def test_missing_root_raises_before_walking(self, temp_dir):
        scanner = FileScannerImpl([str(temp_dir / "nope")])
        with pytest.raises(RuntimeError, match="does not exist"):
            scanner.scan()

    def test_file_root_raises(self, test_files):
        scanner = FileScannerImpl([str(test_files["unique1"])])
        with pytest.raises(RuntimeError, match="Not a directory"):
            scanner.scan()

    @pytest.mark.skipif(os.geteuid() == 0 if hasattr(os, "geteuid") else True,
                        reason="permission checks do not apply to root")
    def test_unreadable_directory_is_counted_and_skipped(self, temp_dir):
        locked = temp_dir / "locked"
        locked.mkdir()
        (locked / "hidden.txt").write_bytes(b"secret")
        (temp_dir / "visible.txt").write_bytes(b"visible")
        os.chmod(locked, 0)
        try:
            scanner = FileScannerImpl([str(temp_dir)])
            paths = [r.path for r in scanner.scan()]
        finally:
            os.chmod(locked, 0o755)

        assert paths == [str(temp_dir / "visible.txt")]
        assert scanner.error_count == 1

    def test_stopped_flag_interrupts_scan(self, temp_dir, test_files):
        records = list(FileScannerImpl([str(temp_dir)]).scan(stopped_flag=lambda: True))
        assert records == []

    def test_progress_callback_reports_scan_stage(self, temp_dir, test_files):
        calls = []
        list(FileScannerImpl([str(temp_dir)]).scan(progress_callback=lambda *a: calls.append(a)))

        assert calls[-1] == ("Scanning", 8, None)
