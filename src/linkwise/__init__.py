"""
linkwise: duplicate file finder that consolidates identical files into hardlinks.

Core features:
- Multi-root scan with (device, size) grouping and hardlink-aware collapse
- xxHash64 front-block pre-filter, always confirmed by a cryptographic full digest
- In-memory or SQLite catalog backends producing identical duplicate sets
- Report, hardlink (atomic replace) and delete (optionally via send2trash) modes
- CLI interface for headless/server usage
"""

# Get version
from importlib.metadata import PackageNotFoundError, version as _version

try:
    __version__ = _version("linkwise")
except PackageNotFoundError:
    # running from a source checkout without installation
    __version__ = "0.0.0"

# Public API: only what users should import directly
from linkwise.commands import DeduplicationCommand
from linkwise.core import (
    DeduplicationParams, ActionMode, BackendKind, FileRecord, DuplicateSet, RunStatistics, ActionReport,
)
from linkwise.backends import BackendError
from linkwise.utils.convert_utils import ConvertUtils
from linkwise.services import ActionService, FileService, ReportService

__all__ = [
    "DeduplicationCommand",
    "DeduplicationParams",
    "ActionMode",
    "BackendKind",
    "FileRecord",
    "DuplicateSet",
    "RunStatistics",
    "ActionReport",
    "BackendError",
    "ConvertUtils",
    "ActionService",
    "FileService",
    "ReportService",
    "__version__",
]
