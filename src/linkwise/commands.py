"""
Unified command orchestrator for deduplication.
This is the SINGLE source of truth for the pipeline: the CLI only parses arguments and prints.
The driver is backend-agnostic: it talks to the Backend protocol only.
"""
import logging
import time
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from linkwise.backends import create_backend
from linkwise.core.grouper import FileGrouperImpl
from linkwise.core.hasher import HasherImpl, HashlibAlgorithmImpl
from linkwise.core.interfaces import Backend
from linkwise.core.models import (
    ActionMode, ActionReport, CandidateGroup, DeduplicationParams, DuplicateSet, RunStatistics, Stage,
)
from linkwise.core.scanner import FileScannerImpl
from linkwise.core.stages import DuplicateResolver
from linkwise.services.action_service import ActionService
from linkwise.services.file_service import FileService

logger = logging.getLogger(__name__)


class DeduplicationCommand:
    """
    Orchestrates the entire workflow:
    1. Scan roots into the selected backend
    2. Group by (device, size), collapse hardlinks, drop unique groups
    3. Resolve duplicate sets by digest
    4. Optionally consolidate them (hardlink / delete)

    Usage:
        params = DeduplicationParams(roots=["/data"], mode=ActionMode.HARDLINK)
        command = DeduplicationCommand(params)
        sets, stats = command.execute(progress_callback=printer)
        reports = command.apply(sets)
    """

    def __init__(self, params: DeduplicationParams, file_service: Optional[FileService] = None):
        self.params = params
        hasher = HasherImpl(HashlibAlgorithmImpl(params.algorithm))
        self._grouper = FileGrouperImpl(hasher, workers=params.workers, cross_device=params.cross_device)
        self._resolver = DuplicateResolver(self._grouper, params.partial_block_size)
        self._actions = ActionService(
            file_service, dry_run=params.dry_run, use_trash=params.use_trash, hasher=hasher
        )

    def execute(
            self,
            progress_callback: Optional[Callable[[str, int, Optional[int]], None]] = None,
            stopped_flag: Optional[Callable[[], bool]] = None
    ) -> Tuple[List[DuplicateSet], RunStatistics]:
        """
        Run detection. The filesystem is only read.

        Returns:
            Tuple of (duplicate_sets, statistics)

        Raises:
            RuntimeError: A root is missing or not a directory
            BackendError: The external store failed (no partial result is returned)
        """
        stats = RunStatistics()
        total_start = time.time()

        scanner = FileScannerImpl(self.params.roots)
        records = scanner.scan(stopped_flag=stopped_flag, progress_callback=progress_callback)

        with create_backend(self.params, self._grouper) as backend:
            start_time = time.time()
            loaded = backend.load_catalog(records)
            stats = stats.add(
                files_scanned=scanner.scanned_count,
                zero_byte_files=scanner.zero_byte_count,
                scan_errors=scanner.error_count,
                files_cataloged=loaded,
            ).with_stage_time(Stage.SCAN.value, time.time() - start_time)

            if stopped_flag and stopped_flag():
                logger.info("Run cancelled after scanning; no analysis performed")
                return [], stats.with_total_time(time.time() - total_start)

            start_time = time.time()
            groups, unique = backend.candidate_groups()
            stats = stats.add(unique_size_eliminations=unique).with_stage_time(
                Stage.SIZE.value, time.time() - start_time
            )

            start_time = time.time()
            counts = {"eliminated": 0, "singletons": 0}
            survivors = self._collapsed_groups(backend, groups, counts, progress_callback, stopped_flag)
            sets, outcome = backend.duplicate_sets(survivors, self._resolver)
            if stopped_flag and stopped_flag():
                logger.info("Run cancelled during resolution; partial sets discarded")
                return [], stats.with_total_time(time.time() - total_start)
            stats = stats.add(
                hardlink_eliminations=counts["eliminated"],
                unique_size_eliminations=counts["singletons"],
                duplicate_sets=len(sets),
                duplicate_files=sum(len(s.files) for s in sets),
                reclaimable_bytes=sum(s.reclaimable_bytes for s in sets),
            ).with_outcome(outcome).with_stage_time(Stage.HASH.value, time.time() - start_time)

        logger.info(f"Found {len(sets)} duplicate sets")
        return sets, stats.with_total_time(time.time() - total_start)

    @staticmethod
    def _collapsed_groups(
            backend: Backend,
            groups: Iterable[CandidateGroup],
            counts: Dict[str, int],
            progress_callback: Optional[Callable[[str, int, Optional[int]], None]],
            stopped_flag: Optional[Callable[[], bool]],
    ) -> Iterator[CandidateGroup]:
        """Collapses hardlinks per group and drops groups that became singletons."""
        processed = 0
        for group in groups:
            if stopped_flag and stopped_flag():
                logger.info("Duplicate resolution interrupted by user")
                return
            group, eliminated = backend.collapse_hardlinks(group)
            counts["eliminated"] += eliminated
            processed += 1
            if progress_callback:
                progress_callback(Stage.HASH.value, processed, None)
            if not group.is_candidate():
                counts["singletons"] += 1
                continue
            yield group

    def apply(
            self,
            sets: List[DuplicateSet],
            stopped_flag: Optional[Callable[[], bool]] = None
    ) -> List[ActionReport]:
        """Consolidate duplicate sets according to params.mode. Report mode does nothing."""
        if self.params.mode is ActionMode.REPORT:
            return []
        return self._actions.consolidate_all(sets, self.params.mode, stopped_flag=stopped_flag)
