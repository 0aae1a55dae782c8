"""
Shared fixtures for linkwise tests.
Creates isolated temporary directories with controlled test files.
"""
import os
import pytest
import tempfile
from pathlib import Path
from typing import Dict
import sys

# Add src/ to sys.path so 'linkwise' is importable without installation
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from linkwise.core.models import FileRecord


@pytest.fixture
def temp_dir():
    """Creates isolated temporary directory, auto-cleanup after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def test_files(temp_dir) -> Dict[str, Path]:
    """
    Creates controlled test files for deduplication scenarios:
    - 2 identical files (duplicates) + 1 more copy in a subdirectory
    - 1 more identical pair of a different size
    - 2 unique files (different content)
    - 1 empty file (counted, never cataloged)
    """
    files = {}

    # Duplicate pair #1 (1KB of 'A')
    content_a = b"A" * 1024
    files["dup1_a"] = temp_dir / "dup1_a.txt"
    files["dup1_b"] = temp_dir / "dup1_b.txt"
    files["dup1_a"].write_bytes(content_a)
    files["dup1_b"].write_bytes(content_a)

    # Duplicate pair #2 (2KB of 'B')
    content_b = b"B" * 2048
    files["dup2_a"] = temp_dir / "dup2_a.txt"
    files["dup2_b"] = temp_dir / "dup2_b.txt"
    files["dup2_a"].write_bytes(content_b)
    files["dup2_b"].write_bytes(content_b)

    # Unique files
    files["unique1"] = temp_dir / "unique1.txt"
    files["unique1"].write_bytes(b"C" * 1500)
    files["unique2"] = temp_dir / "unique2.txt"
    files["unique2"].write_bytes(b"D" * 2500)

    # Empty file (0 bytes)
    files["empty"] = temp_dir / "empty.txt"
    files["empty"].write_bytes(b"")

    # Subdirectory with duplicates
    subdir = temp_dir / "subdir"
    subdir.mkdir()
    files["sub_dup"] = subdir / "dup_in_subdir.txt"
    files["sub_dup"].write_bytes(content_a)  # Same as dup1_a/b

    return files


@pytest.fixture
def scenario_files(temp_dir) -> Dict[str, Path]:
    """
    a, b: "X" (duplicates)
    c:    "Y" (same size, different content)
    d:    empty
    e, f: one inode with content "Z" (pre-existing hardlink pair)
    """
    files = {name: temp_dir / name for name in "abcdef"}
    files["a"].write_bytes(b"X")
    files["b"].write_bytes(b"X")
    files["c"].write_bytes(b"Y")
    files["d"].write_bytes(b"")
    files["e"].write_bytes(b"Z")
    os.link(files["e"], files["f"])
    return files


def make_record(path, size=100, device=1, inode=None, nlink=1) -> FileRecord:
    """FileRecord for tests that never touch the disk."""
    return FileRecord(
        path=str(path),
        device=device,
        inode=inode if inode is not None else abs(hash(str(path))) % 10_000_000,
        size=size,
        nlink=nlink,
    )


def record_for(path: Path) -> FileRecord:
    """FileRecord built from a real file's lstat."""
    return FileRecord.from_stat(str(path), os.lstat(path))
