"""
Interchangeable storage backends for grouping and duplicate resolution.

- InMemoryBackend: dict-based, for catalogs that fit in RAM
- SQLiteBackend: batched inserts + aggregate queries, for very large catalogs
"""

from linkwise.core.grouper import FileGrouperImpl
from linkwise.core.interfaces import Backend
from linkwise.core.models import BackendKind, DeduplicationParams
from .memory import InMemoryBackend
from .sqlite_store import SQLiteBackend, BackendError


def create_backend(params: DeduplicationParams, grouper: FileGrouperImpl) -> Backend:
    """Builds the backend selected in params."""
    if params.backend is BackendKind.SQLITE:
        return SQLiteBackend(
            db_path=params.db_path,
            table_name=params.table_name,
            batch_size=params.batch_size,
            cross_device=params.cross_device,
        )
    return InMemoryBackend(grouper)


__all__ = ["InMemoryBackend", "SQLiteBackend", "BackendError", "create_backend"]
