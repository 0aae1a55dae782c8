"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/grouper.py
Grouping strategies over FileRecord objects: (device, size) partitioning,
hardlink collapse, and digest-based splitting through an injected Hasher.
"""

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import List, Dict, Tuple, Any, Callable, Iterable

from linkwise.core.models import FileRecord, CandidateGroup, GroupKey
from linkwise.core.hasher import HasherImpl, Hasher

logger = logging.getLogger(__name__)


class FileGrouperImpl:
    """
    Groups catalog records. Hash-based grouping uses an injected Hasher instance
    and may spread digest computation over a bounded thread pool.
    """

    def __init__(self, hasher: Hasher = None, workers: int = 1, cross_device: bool = False):
        self.hasher = hasher or HasherImpl()
        self.workers = max(1, workers)
        self.cross_device = cross_device

    def group_key(self, record: FileRecord) -> GroupKey:
        return GroupKey(None if self.cross_device else record.device, record.size)

    def group_by_device_and_size(self, records: Iterable[FileRecord]) -> Dict[GroupKey, CandidateGroup]:
        """Partitions records by (device, size); singletons are kept."""
        groups: Dict[GroupKey, CandidateGroup] = {}
        for record in records:
            key = self.group_key(record)
            group = groups.get(key)
            if group is None:
                group = groups[key] = CandidateGroup(key=key)
            group.add_file(record)
        return groups

    @staticmethod
    def split_unique(groups: Iterable[CandidateGroup]) -> Tuple[List[CandidateGroup], int]:
        """Separates candidate groups (2+ files) from singletons; returns (candidates, singleton_count)."""
        candidates = []
        unique = 0
        for group in groups:
            if group.is_candidate():
                candidates.append(group)
            else:
                unique += 1
        return candidates, unique

    @staticmethod
    def collapse_hardlinks(group: CandidateGroup) -> Tuple[CandidateGroup, int]:
        """
        Keeps one representative per (device, inode) shared by files with nlink > 1.
        The representative is the member with the smallest path; it gets nlink=1 and
        the other paths as aliases. Returns the new group and the number of entries removed.
        """
        by_inode: Dict[Tuple[int, int], List[FileRecord]] = defaultdict(list)
        for record in group.files:
            if record.nlink > 1:
                by_inode[record.inode_key].append(record)

        shared = {key: members for key, members in by_inode.items() if len(members) > 1}
        if not shared:
            return group, 0

        eliminated = 0
        survivors: List[FileRecord] = []
        representatives: Dict[Tuple[int, int], FileRecord] = {}
        for key, members in shared.items():
            members = sorted(members, key=lambda f: f.path)
            head = members[0]
            aliases = list(head.aliases)
            for other in members[1:]:
                aliases.extend(other.all_paths)
            representatives[key] = replace(head, nlink=1, aliases=tuple(sorted(aliases)))
            eliminated += len(members) - 1
            logger.debug(f"Collapsed {len(members)} hardlinks of inode {key[1]} into {head.path}")

        for record in group.files:
            key = record.inode_key
            if key in shared:
                rep = representatives.pop(key, None)
                if rep is not None:
                    survivors.append(rep)
            else:
                survivors.append(record)

        return CandidateGroup(key=group.key, files=survivors), eliminated

    def group_by_front_hash(self, files: List[FileRecord], block_size: int) -> Tuple[Dict[bytes, List[FileRecord]], List[FileRecord]]:
        """Groups files by the hash of their leading block."""
        return self._group_by(files, lambda f: self.hasher.compute_front_hash(f, block_size))

    def group_by_full_hash(self, files: List[FileRecord]) -> Tuple[Dict[bytes, List[FileRecord]], List[FileRecord]]:
        """Groups files by full content digest."""
        return self._group_by(files, self.hasher.compute_full_hash)

    def _group_by(
            self,
            files: List[FileRecord],
            key_func: Callable[[FileRecord], Any]
    ) -> Tuple[Dict[Any, List[FileRecord]], List[FileRecord]]:
        """
        Helper method to group files by any computed key.
        Args:
            files: List of files to group
            key_func: Function that computes a hashable key from a FileRecord
        Returns:
            (Dict[key, List[FileRecord]], files whose key could not be computed)
        """
        def safe_key(record: FileRecord):
            try:
                return key_func(record)
            except OSError as e:
                logger.warning(f"Error reading {record.path}: {e}")
                return None

        if self.workers > 1 and len(files) > 1:
            with ThreadPoolExecutor(max_workers=min(self.workers, len(files))) as pool:
                keys = list(pool.map(safe_key, files))
        else:
            keys = [safe_key(f) for f in files]

        groups = defaultdict(list)
        failed = []
        for record, key in zip(files, keys):
            if key is None:
                failed.append(record)
            else:
                groups[key].append(record)

        if failed:
            logger.warning(f"Skipped {len(failed)} files due to read errors")

        return dict(groups), failed
