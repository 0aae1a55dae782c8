"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/stages.py
Pipeline stages shared by both backends.

STAGES
------
SizeStageImpl      : (device, size) partitioning, singleton groups discarded and counted
HardlinkStage      : collapses members sharing an inode into one representative
FrontHashStage     : optional split by xxHash64 of the leading block (pre-filter only)
FullHashStage      : cryptographic digest of the whole file; the only stage that confirms
DuplicateResolver  : runs Front → Full on one candidate group

A front-hash match never confirms anything on its own: every file that survives
the front stage is confirmed by its full digest before it joins a DuplicateSet.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from linkwise.core.models import (
    FileRecord, CandidateGroup, DuplicateSet, ResolveOutcome, DEFAULT_PARTIAL_BLOCK_SIZE,
)
from linkwise.core.grouper import FileGrouperImpl
from linkwise.core.interfaces import GroupResolver

logger = logging.getLogger(__name__)


class DeduplicationConfig:
    @staticmethod
    def uses_front_hash(file_size: int, block_size: int) -> bool:
        """A front hash only saves I/O when the file is larger than the block."""
        return block_size > 0 and file_size > block_size


class SizeStageImpl:
    def __init__(self, grouper: FileGrouperImpl):
        self.grouper = grouper

    def process(self, records: Iterable[FileRecord]) -> Tuple[List[CandidateGroup], int]:
        """
        Group by (device, size).
        Returns candidate groups with 2+ files and the number of unique-size singletons.
        """
        groups = self.grouper.group_by_device_and_size(records)
        candidates, unique = self.grouper.split_unique(groups.values())
        logger.debug(f"Size grouping: {len(candidates)} candidate groups, {unique} unique sizes")
        return candidates, unique


class HardlinkStage:
    def __init__(self, grouper: FileGrouperImpl):
        self.grouper = grouper

    def process(self, group: CandidateGroup) -> Tuple[CandidateGroup, int]:
        return self.grouper.collapse_hardlinks(group)


class FrontHashStage:
    def __init__(self, grouper: FileGrouperImpl, block_size: int):
        self.grouper = grouper
        self.block_size = block_size

    def process(self, group: CandidateGroup, outcome: ResolveOutcome) -> List[List[FileRecord]]:
        """
        Splits the group into buckets that may still be duplicates.
        Files with a unique front hash are dropped.
        """
        if not DeduplicationConfig.uses_front_hash(group.size, self.block_size):
            return [list(group.files)]

        buckets, failed = self.grouper.group_by_front_hash(group.files, self.block_size)
        outcome.hash_failures += len(failed)

        survivors = []
        for files in buckets.values():
            if len(files) >= 2:
                survivors.append(files)
            else:
                outcome.partial_hash_eliminations += len(files)
        return survivors


class FullHashStage:
    def __init__(self, grouper: FileGrouperImpl):
        self.grouper = grouper

    def process(self, size: int, files: List[FileRecord], outcome: ResolveOutcome) -> List[DuplicateSet]:
        hash_groups, failed = self.grouper.group_by_full_hash(files)
        outcome.hash_failures += len(failed)
        outcome.files_compared += len(files) - len(failed)

        confirmed = []
        for digest, members in hash_groups.items():
            if len(members) >= 2:
                confirmed.append(DuplicateSet(digest=digest, size=size, files=members))
        return confirmed


class DuplicateResolver(GroupResolver):
    """
    Resolves one candidate group into duplicate sets:
    front-block pre-filter (optional) followed by full digest confirmation.
    """

    def __init__(self, grouper: Optional[FileGrouperImpl] = None, partial_block_size: int = DEFAULT_PARTIAL_BLOCK_SIZE):
        self.grouper = grouper or FileGrouperImpl()
        self.front_stage = FrontHashStage(self.grouper, partial_block_size)
        self.full_stage = FullHashStage(self.grouper)

    def resolve(self, group: CandidateGroup) -> Tuple[List[DuplicateSet], ResolveOutcome]:
        outcome = ResolveOutcome()
        if not group.is_candidate():
            return [], outcome

        confirmed: List[DuplicateSet] = []
        for bucket in self.front_stage.process(group, outcome):
            confirmed.extend(self.full_stage.process(group.size, bucket, outcome))

        return confirmed, outcome

    @staticmethod
    def sort_sets(sets: List[DuplicateSet]) -> List[DuplicateSet]:
        """Largest files first, then by canonical path."""
        return sorted(sets, key=lambda s: (-s.size, s.canonical.path))
