"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/action_service.py
Consolidates confirmed duplicate sets: keeps the canonical member (first in
path order) and hardlinks or deletes every other member, including the extra
names of members that were already hardlinked.

Failures never abort the batch; each one is recorded in the ActionReport.
"""
import logging
import os
import stat
from dataclasses import replace
from typing import Callable, List, Optional, Tuple

from linkwise.core.interfaces import Hasher
from linkwise.core.models import ActionMode, ActionReport, ActionResult, DuplicateSet, FileRecord
from linkwise.services.file_service import FileService

logger = logging.getLogger(__name__)


class ActionService:
    def __init__(
            self,
            file_service: FileService = None,
            dry_run: bool = False,
            use_trash: bool = False,
            hasher: Optional[Hasher] = None,
    ):
        self.file_service = file_service or FileService()
        self.dry_run = dry_run
        self.use_trash = use_trash
        self.hasher = hasher  # when set, the canonical is re-hashed before acting

    @staticmethod
    def plan(sets: List[DuplicateSet]) -> Tuple[List[str], int]:
        """
        Paths that consolidation would replace or remove, and the bytes it would free.
        """
        paths = []
        total_bytes = 0
        for dup in sets:
            for member in dup.redundant:
                paths.extend(member.all_paths)
                total_bytes += member.size
        return paths, total_bytes

    def consolidate_all(
            self,
            sets: List[DuplicateSet],
            mode: ActionMode,
            stopped_flag: Optional[Callable[[], bool]] = None
    ) -> List[ActionReport]:
        reports = []
        for dup in sets:
            if stopped_flag and stopped_flag():
                logger.info("Consolidation interrupted by user")
                break
            reports.append(self.consolidate(dup, mode))
        return reports

    def consolidate(self, dup: DuplicateSet, mode: ActionMode) -> ActionReport:
        canonical = dup.canonical
        report = ActionReport(digest=dup.digest, canonical=canonical.path, mode=mode, dry_run=self.dry_run)
        if mode is ActionMode.REPORT:
            return report

        problem = None if self.dry_run else self._canonical_problem(dup)
        if problem:
            # Nothing safe to keep: every redundant path stays untouched.
            for member in dup.redundant:
                for path in member.all_paths:
                    report.results.append(self._failure(path, canonical, mode, problem))
            return report

        for member in dup.redundant:
            if mode is ActionMode.HARDLINK:
                results = self._hardlink_member(canonical, member)
            else:
                results = self._delete_member(canonical, member)
            report.results.extend(results)

        return report

    def _hardlink_member(self, canonical: FileRecord, member: FileRecord) -> List[ActionResult]:
        if member.device != canonical.device:
            return [
                self._failure(path, canonical, ActionMode.HARDLINK, "cross-device: cannot hardlink across filesystems")
                for path in member.all_paths
            ]

        results = []
        for path in member.all_paths:
            if self.dry_run:
                results.append(self._success(path, canonical, ActionMode.HARDLINK, "dry run: would hardlink"))
                continue

            if self.file_service.is_same_inode(canonical.path, path):
                results.append(self._success(path, canonical, ActionMode.HARDLINK, "already hardlinked"))
                continue

            problem = self._changed_since_scan(path, member)
            if problem:
                results.append(self._failure(path, canonical, ActionMode.HARDLINK, problem))
                continue

            try:
                self.file_service.replace_with_hardlink(canonical.path, path)
            except OSError as e:
                results.append(self._failure(path, canonical, ActionMode.HARDLINK, str(e)))
                continue
            results.append(self._success(path, canonical, ActionMode.HARDLINK, "hardlinked"))

        self._credit_reclaimed(results, member)
        return results

    def _delete_member(self, canonical: FileRecord, member: FileRecord) -> List[ActionResult]:
        results = []
        for path in member.all_paths:
            if self.dry_run:
                results.append(self._success(path, canonical, ActionMode.DELETE, "dry run: would delete"))
                continue

            problem = self._changed_since_scan(path, member)
            if problem:
                results.append(self._failure(path, canonical, ActionMode.DELETE, problem))
                continue

            try:
                if self.use_trash:
                    self.file_service.move_to_trash(path)
                else:
                    self.file_service.remove(path)
            except (OSError, RuntimeError) as e:
                results.append(self._failure(path, canonical, ActionMode.DELETE, str(e)))
                continue
            results.append(self._success(
                path, canonical, ActionMode.DELETE, "moved to trash" if self.use_trash else "deleted"
            ))

        self._credit_reclaimed(results, member)
        return results

    def _canonical_problem(self, dup: DuplicateSet) -> Optional[str]:
        canonical = dup.canonical
        if not os.path.isfile(canonical.path):
            return "canonical file is missing"
        problem = self._changed_since_scan(canonical.path, canonical)
        if problem:
            return f"canonical {problem}"
        if self.hasher is not None:
            try:
                digest = self.hasher.compute_full_hash(replace(canonical, digest=None))
            except OSError as e:
                return f"canonical unreadable: {e}"
            if digest != dup.digest:
                return "canonical content changed since scan"
        return None

    @staticmethod
    def _changed_since_scan(path: str, member: FileRecord) -> Optional[str]:
        """Refuse to touch a path that is gone or no longer looks like the scanned file."""
        try:
            st = os.lstat(path)
        except OSError as e:
            return f"cannot stat: {e}"
        if not stat.S_ISREG(st.st_mode):
            return "no longer a regular file"
        if st.st_size != member.size:
            return "size changed since scan"
        return None

    @staticmethod
    def _credit_reclaimed(results: List[ActionResult], member: FileRecord) -> None:
        """Space is only freed once every name of the member's inode has been handled."""
        if results and all(r.success for r in results) and results[-1].message != "already hardlinked":
            results[-1].bytes_reclaimed = member.size

    @staticmethod
    def _success(path: str, canonical: FileRecord, mode: ActionMode, message: str) -> ActionResult:
        logger.info(f"{mode.display_name}: {path} -> {canonical.path} ({message})")
        return ActionResult(path=path, canonical=canonical.path, action=mode, success=True, message=message)

    @staticmethod
    def _failure(path: str, canonical: FileRecord, mode: ActionMode, message: str) -> ActionResult:
        logger.warning(f"{mode.display_name} failed for {path}: {message}")
        return ActionResult(path=path, canonical=canonical.path, action=mode, success=False, message=message)
