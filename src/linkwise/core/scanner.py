"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/scanner.py
Walks one or more root directories and yields a FileRecord per regular file.
Features:
- One lstat() per entry; symlinks (broken or not) and special files are skipped
- Zero-byte files are counted, never cataloged
- Nested or repeated roots are walked once
- Pull-based: records are yielded as they are found, nothing is accumulated
"""

import os
import stat
import time
import logging
from pathlib import Path
from typing import Iterator, List, Optional, Callable

from linkwise.core.models import FileRecord, Stage
from linkwise.core.interfaces import FileScanner

logger = logging.getLogger(__name__)


class FileScannerImpl(FileScanner):
    """
    Scans directories recursively and yields catalog records.

    Attributes:
        roots: Normalized root directories to scan
        zero_byte_count: Empty regular files seen (excluded from the catalog)
        error_count: Entries or directories that could not be read
        scanned_count: Filesystem entries examined
    """

    def __init__(self, roots: List[str]):
        self.roots = self._normalize_roots(roots)
        self.zero_byte_count = 0
        self.error_count = 0
        self.scanned_count = 0

    @staticmethod
    def _normalize_roots(roots: List[str]) -> List[str]:
        """Resolve roots and drop any root nested inside another one."""
        resolved = sorted({str(Path(r).resolve()) for r in roots})
        kept: List[str] = []
        for root in resolved:
            if any(root == k or root.startswith(k.rstrip(os.sep) + os.sep) for k in kept):
                logger.debug(f"Skipping nested root: {root}")
                continue
            kept.append(root)
        return kept

    def scan(self,
             stopped_flag: Optional[Callable[[], bool]] = None,
             progress_callback: Optional[Callable[[str, int, object], None]] = None) -> Iterator[FileRecord]:
        """
        Yields records for every regular, non-empty file under the roots.
        Raises RuntimeError up front if a root is missing or not a directory.
        """
        for root in self.roots:
            root_path = Path(root)
            if not root_path.exists():
                error_msg = f"Directory does not exist: {root}"
                logger.error(error_msg)
                raise RuntimeError(error_msg)
            if not root_path.is_dir():
                error_msg = f"Not a directory: {root}"
                logger.error(error_msg)
                raise RuntimeError(error_msg)

        return self._walk(stopped_flag, progress_callback)

    def _walk(self,
              stopped_flag: Optional[Callable[[], bool]],
              progress_callback: Optional[Callable[[str, int, object], None]]) -> Iterator[FileRecord]:
        progress_interval = 5000
        progress_counter = 0
        start_time = time.time()

        for root in self.roots:
            logger.debug(f"Scanning directory: {root}")
            for dirpath, dirnames, filenames in os.walk(root, onerror=self._on_walk_error):
                if stopped_flag and stopped_flag():
                    logger.debug("Scan interrupted by user")
                    return
                dirnames.sort()

                for filename in sorted(filenames):
                    record = self._process_entry(os.path.join(dirpath, filename))
                    self.scanned_count += 1
                    progress_counter += 1
                    if record is not None:
                        yield record

                    if progress_callback and progress_counter >= progress_interval:
                        progress_callback(Stage.SCAN.value, self.scanned_count, None)
                        progress_counter = 0

        if progress_callback and progress_counter > 0:
            progress_callback(Stage.SCAN.value, self.scanned_count, None)

        logger.debug(f"Total scan time: {time.time() - start_time:.2f} seconds")
        logger.debug(
            f"Scan completed: {self.scanned_count} entries, "
            f"{self.zero_byte_count} zero-byte, {self.error_count} errors"
        )

    def _on_walk_error(self, error: OSError) -> None:
        self.error_count += 1
        logger.warning(f"Cannot read directory {error.filename}: {error.strerror}")

    def _process_entry(self, path: str) -> Optional[FileRecord]:
        """
        Stat an entry once and turn it into a FileRecord if it is a regular, non-empty file.
        """
        try:
            st = os.lstat(path)
        except OSError as e:
            self.error_count += 1
            logger.warning(f"Could not stat {path}: {e}")
            return None

        if not stat.S_ISREG(st.st_mode):
            logger.debug(f"Skipping non-regular entry: {path}")
            return None

        if st.st_size == 0:
            self.zero_byte_count += 1
            logger.debug(f"Skipping zero-byte file: {path}")
            return None

        return FileRecord.from_stat(path, st)
