"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

interfaces.py

Defines core interfaces (Protocols) used throughout the deduplication system.
These protocols enforce structural typing using Python's `typing.Protocol` to ensure
consistency across modules while maintaining flexibility and modularity.

Key Components:
---------------
- HashAlgorithm: Factory for incremental hash objects (hashlib / xxhash style).
- Hasher: Interface for computing partial and full digests of catalog records.
- FileScanner: Interface for walking roots and yielding catalog records.
- Backend: Storage substrate for grouping, hardlink collapse and duplicate resolution.
"""

from typing import Protocol, Iterable, Iterator, List, Optional, Callable, Tuple
from linkwise.core.models import (
    FileRecord,
    CandidateGroup,
    DuplicateSet,
    ResolveOutcome,
)


# ===== Interfaces =====

class HashObject(Protocol):
    def update(self, data: bytes) -> None: ...
    def digest(self) -> bytes: ...


class HashAlgorithm(Protocol):
    """
    Interface for generic hash algorithms.

    Allows plugging in different hashing functions like SHA-256 or xxHash
    without affecting the rest of the deduplication logic.
    """
    name: str

    def new(self) -> HashObject:
        """Returns a fresh incremental hash object."""
        ...


class Hasher(Protocol):
    """Interface for hashing different parts of a file."""
    def compute_front_hash(self, record: FileRecord, block_size: int) -> bytes: ...
    def compute_full_hash(self, record: FileRecord) -> bytes: ...


class FileScanner(Protocol):
    """
    Interface for scanning file systems and collecting file metadata.
    """
    zero_byte_count: int
    error_count: int
    scanned_count: int

    def scan(
        self,
        stopped_flag: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> Iterator[FileRecord]:
        """
        Yield one record per regular, non-empty file under the configured roots.

        Args:
            stopped_flag: Function that returns True if operation should be canceled.
            progress_callback: Optional callback for reporting progress (stage, current, total).
        """
        ...


class GroupResolver(Protocol):
    """Turns one candidate group into confirmed duplicate sets."""
    def resolve(self, group: CandidateGroup) -> Tuple[List[DuplicateSet], ResolveOutcome]: ...


class Backend(Protocol):
    """
    Storage substrate implementing grouping, hardlink collapse and
    duplicate resolution. Both implementations must return identical
    duplicate set membership for the same catalog.
    """

    def load_catalog(self, records: Iterable[FileRecord]) -> int:
        """Store every record; returns how many were stored."""
        ...

    def candidate_groups(self) -> Tuple[Iterator[CandidateGroup], int]:
        """
        Returns groups with 2+ members sharing (device, size), and the number
        of singleton groups discarded as unique sizes.
        """
        ...

    def collapse_hardlinks(self, group: CandidateGroup) -> Tuple[CandidateGroup, int]:
        """Keep one representative per shared inode; returns the group and the eliminated count."""
        ...

    def duplicate_sets(
        self,
        groups: Iterable[CandidateGroup],
        resolver: GroupResolver
    ) -> Tuple[List[DuplicateSet], ResolveOutcome]:
        """Digest every group and return sets of byte-identical files."""
        ...

    def close(self) -> None:
        ...
