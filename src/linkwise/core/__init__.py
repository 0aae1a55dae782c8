"""
Core deduplication engine: scanner, hasher, grouper, and pipeline stages.

This package contains the performance-critical foundation of linkwise:
- FileScannerImpl: multi-root traversal yielding one FileRecord per regular file
- HasherImpl: streamed cryptographic full digests + xxHash64 front-block digests
- FileGrouperImpl: (device, size) grouping, hardlink collapse, digest splitting
- DuplicateResolver: front-block pre-filter → full digest confirmation
- Models: FileRecord, CandidateGroup, DuplicateSet, RunStatistics and configuration

All components are pure Python with no UI dependencies.
"""

from .scanner import FileScannerImpl
from .grouper import FileGrouperImpl
from .hasher import HasherImpl, HashlibAlgorithmImpl, XXHashAlgorithmImpl
from .stages import DuplicateResolver, SizeStageImpl, HardlinkStage
from .models import (
    FileRecord, CandidateGroup, DuplicateSet, GroupKey, RunStatistics, ResolveOutcome,
    ActionMode, BackendKind, ActionResult, ActionReport, DeduplicationParams)

__all__ = [
    "FileScannerImpl",
    "FileGrouperImpl",
    "HasherImpl",
    "HashlibAlgorithmImpl",
    "XXHashAlgorithmImpl",
    "DuplicateResolver",
    "SizeStageImpl",
    "HardlinkStage",
    "FileRecord",
    "CandidateGroup",
    "DuplicateSet",
    "GroupKey",
    "RunStatistics",
    "ResolveOutcome",
    "ActionMode",
    "BackendKind",
    "ActionResult",
    "ActionReport",
    "DeduplicationParams",
]
