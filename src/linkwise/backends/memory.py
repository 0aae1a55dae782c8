"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

backends/memory.py
In-memory backend: the whole catalog lives in process memory (~1KB per file).
"""

import logging
from typing import Iterable, Iterator, List, Optional, Tuple

from linkwise.core.models import FileRecord, CandidateGroup, DuplicateSet, ResolveOutcome
from linkwise.core.grouper import FileGrouperImpl
from linkwise.core.interfaces import Backend, GroupResolver
from linkwise.core.stages import SizeStageImpl, HardlinkStage, DuplicateResolver

logger = logging.getLogger(__name__)


class InMemoryBackend(Backend):
    def __init__(self, grouper: Optional[FileGrouperImpl] = None):
        self.grouper = grouper or FileGrouperImpl()
        self._size_stage = SizeStageImpl(self.grouper)
        self._hardlink_stage = HardlinkStage(self.grouper)
        self._records: List[FileRecord] = []

    def __enter__(self) -> "InMemoryBackend":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def load_catalog(self, records: Iterable[FileRecord]) -> int:
        self._records = list(records)
        logger.debug(f"Loaded {len(self._records)} records into memory")
        return len(self._records)

    def candidate_groups(self) -> Tuple[Iterator[CandidateGroup], int]:
        candidates, unique = self._size_stage.process(self._records)
        candidates.sort(key=lambda g: (g.key.size, g.key.device if g.key.device is not None else -1))
        return iter(candidates), unique

    def collapse_hardlinks(self, group: CandidateGroup) -> Tuple[CandidateGroup, int]:
        return self._hardlink_stage.process(group)

    def duplicate_sets(
            self,
            groups: Iterable[CandidateGroup],
            resolver: GroupResolver
    ) -> Tuple[List[DuplicateSet], ResolveOutcome]:
        confirmed: List[DuplicateSet] = []
        outcome = ResolveOutcome()
        for group in groups:
            sets, group_outcome = resolver.resolve(group)
            confirmed.extend(sets)
            outcome = outcome.merge(group_outcome)
        return DuplicateResolver.sort_sets(confirmed), outcome

    def close(self) -> None:
        self._records = []
