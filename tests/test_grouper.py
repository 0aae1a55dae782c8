"""
Unit tests for FileGrouperImpl.
Verifies (device, size) partitioning, hardlink collapse and digest-based splitting.
"""
from unittest import mock

from linkwise.core import FileGrouperImpl, CandidateGroup, GroupKey
from conftest import make_record, record_for


class TestDeviceSizeGrouping:

    def test_groups_by_device_and_size(self):
        records = [
            make_record("/a.txt", size=1024, device=1),
            make_record("/b.txt", size=1024, device=1),
            make_record("/c.txt", size=1024, device=2),  # Same size, other device
            make_record("/d.txt", size=2048, device=1),
        ]

        groups = FileGrouperImpl().group_by_device_and_size(records)

        assert set(groups) == {GroupKey(1, 1024), GroupKey(2, 1024), GroupKey(1, 2048)}
        assert [f.path for f in groups[GroupKey(1, 1024)].files] == ["/a.txt", "/b.txt"]

    def test_cross_device_groups_by_size_only(self):
        records = [
            make_record("/a.txt", size=1024, device=1),
            make_record("/c.txt", size=1024, device=2),
        ]

        groups = FileGrouperImpl(cross_device=True).group_by_device_and_size(records)

        assert list(groups) == [GroupKey(None, 1024)]
        assert len(groups[GroupKey(None, 1024)].files) == 2

    def test_split_unique_counts_singletons(self):
        records = [
            make_record("/a.txt", size=10),
            make_record("/b.txt", size=10),
            make_record("/c.txt", size=20),
            make_record("/d.txt", size=30),
        ]
        groups = FileGrouperImpl().group_by_device_and_size(records)

        candidates, unique = FileGrouperImpl.split_unique(groups.values())

        assert unique == 2
        assert [g.key for g in candidates] == [GroupKey(1, 10)]


class TestHardlinkCollapse:

    def _group(self, *records):
        return CandidateGroup(key=GroupKey(1, 100), files=list(records))

    def test_keeps_smallest_path_and_records_aliases(self):
        group = self._group(
            make_record("/z/link.txt", inode=7, nlink=3),
            make_record("/a/orig.txt", inode=7, nlink=3),
            make_record("/m/third.txt", inode=7, nlink=3),
            make_record("/other.txt", inode=8),
        )

        collapsed, eliminated = FileGrouperImpl.collapse_hardlinks(group)

        assert eliminated == 2
        paths = [f.path for f in collapsed.files]
        assert paths == ["/a/orig.txt", "/other.txt"]
        rep = collapsed.files[0]
        assert rep.nlink == 1
        assert rep.aliases == ("/m/third.txt", "/z/link.txt")

    def test_collapse_is_idempotent(self):
        group = self._group(
            make_record("/b.txt", inode=7, nlink=2),
            make_record("/a.txt", inode=7, nlink=2),
        )

        once, first = FileGrouperImpl.collapse_hardlinks(group)
        twice, second = FileGrouperImpl.collapse_hardlinks(once)

        assert first == 1
        assert second == 0
        assert [(f.path, f.aliases) for f in twice.files] == [(f.path, f.aliases) for f in once.files]

    def test_same_inode_on_other_device_is_not_collapsed(self):
        group = CandidateGroup(key=GroupKey(None, 100), files=[
            make_record("/a.txt", device=1, inode=7, nlink=2),
            make_record("/b.txt", device=2, inode=7, nlink=2),
        ])

        collapsed, eliminated = FileGrouperImpl.collapse_hardlinks(group)

        assert eliminated == 0
        assert collapsed is group

    def test_nlink_one_is_never_collapsed(self):
        group = self._group(
            make_record("/a.txt", inode=7, nlink=1),
            make_record("/b.txt", inode=7, nlink=1),
        )

        _, eliminated = FileGrouperImpl.collapse_hardlinks(group)
        assert eliminated == 0


class TestHashGrouping:

    def test_groups_by_full_hash(self, test_files):
        files = [record_for(test_files[k]) for k in ("dup1_a", "dup1_b", "sub_dup")]

        groups, failed = FileGrouperImpl().group_by_full_hash(files)

        assert failed == []
        assert len(groups) == 1
        assert len(next(iter(groups.values()))) == 3

    def test_read_errors_are_reported_not_raised(self, test_files):
        files = [record_for(test_files["dup1_a"]), record_for(test_files["dup1_b"])]
        test_files["dup1_b"].unlink()

        groups, failed = FileGrouperImpl().group_by_full_hash(files)

        assert [f.path for f in failed] == [str(test_files["dup1_b"])]
        assert sum(len(v) for v in groups.values()) == 1

    def test_worker_pool_gives_same_groups(self, test_files):
        keys = ("dup1_a", "dup1_b", "dup2_a", "dup2_b", "unique1")
        serial, _ = FileGrouperImpl(workers=1).group_by_full_hash([record_for(test_files[k]) for k in keys])
        parallel, _ = FileGrouperImpl(workers=4).group_by_full_hash([record_for(test_files[k]) for k in keys])

        def as_paths(groups):
            return {d: sorted(f.path for f in files) for d, files in groups.items()}

        assert as_paths(serial) == as_paths(parallel)

    def test_front_hash_uses_hasher_with_block_size(self):
        hasher = mock.Mock()
        hasher.compute_front_hash.side_effect = lambda record, size: record.path[-1].encode()
        files = [make_record("/x1"), make_record("/y1"), make_record("/z2")]

        groups, failed = FileGrouperImpl(hasher).group_by_front_hash(files, 4096)

        assert failed == []
        assert {k: len(v) for k, v in groups.items()} == {b"1": 2, b"2": 1}
        hasher.compute_front_hash.assert_any_call(files[0], 4096)
