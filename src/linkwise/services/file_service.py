"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/file_service.py
Filesystem mutations used by the action engine: atomic hardlink replacement,
permanent removal and safe deletion to the system trash.
"""
import logging
import os
import uuid
from pathlib import Path

from send2trash import send2trash

logger = logging.getLogger(__name__)


class FileService:
    """
    Filesystem operations with one failure mode: an OSError (or RuntimeError
    for trash) carrying a readable message. Callers decide how to report it.
    """

    @staticmethod
    def is_same_inode(path_a: str, path_b: str) -> bool:
        """True when both paths name the same inode."""
        try:
            return os.path.samefile(path_a, path_b)
        except OSError:
            return False

    @staticmethod
    def replace_with_hardlink(canonical: str, target: str) -> None:
        """
        Atomically replaces `target` with a hardlink to `canonical`.

        The link is created under a temporary name in the target's directory and
        renamed over the target, so a crash leaves either the old file or the
        new link in place, never nothing.
        """
        target_path = Path(target)
        tmp_path = target_path.with_name(f".{target_path.name}.{uuid.uuid4().hex[:8]}.linkwise-tmp")

        os.link(canonical, tmp_path)
        try:
            os.replace(tmp_path, target_path)
        except OSError:
            try:
                os.unlink(tmp_path)
            except OSError as cleanup_error:
                logger.error(f"Failed to remove temporary link {tmp_path}: {cleanup_error}")
            raise

    @staticmethod
    def remove(file_path: str) -> None:
        """Permanently removes a file."""
        os.unlink(file_path)

    @staticmethod
    def move_to_trash(file_path: str):
        """Moves a file to the system trash."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        try:
            send2trash(str(path))
        except Exception as e:
            raise RuntimeError(f"Failed to move to trash: {e}") from e

