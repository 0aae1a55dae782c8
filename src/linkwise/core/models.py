"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/models.py
Data models and domain logic for catalog scanning, grouping and consolidation.
"""

import hashlib
import os
import tempfile
import re
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import List, Dict, NamedTuple, Optional, Tuple


# =============================
# Enums
# =============================

class ActionMode(Enum):
    """
    What to do with confirmed duplicates.
    """
    REPORT = "report"
    HARDLINK = "hardlink"
    DELETE = "delete"

    @property
    def display_name(self) -> str:
        """Human-readable name for UI display."""
        mapping = {
            ActionMode.REPORT: "Report only",
            ActionMode.HARDLINK: "Hardlink",
            ActionMode.DELETE: "Delete",
        }
        return mapping.get(self, self.value)

    @property
    def is_destructive(self) -> bool:
        return self is not ActionMode.REPORT

    def __repr__(self) -> str:
        return self.value


class BackendKind(Enum):
    """
    Storage substrate used for grouping and duplicate resolution.
    """
    MEMORY = "memory"
    SQLITE = "sqlite"

    @property
    def description(self) -> str:
        """Detailed description for help text."""
        mapping = {
            BackendKind.MEMORY: "Process memory (~1KB per file)",
            BackendKind.SQLITE: "SQLite catalog on disk (batched inserts + aggregate queries)",
        }
        return mapping.get(self, self.value)

    def __repr__(self) -> str:
        return self.value


class Stage(str, Enum):
    SCAN = "Scanning"
    SIZE = "Size grouping"
    HASH = "Hashing"


# ======================
#  Core Data Models
# ======================

class GroupKey(NamedTuple):
    """Composite key of a candidate group. device is None for cross-device grouping."""
    device: Optional[int]
    size: int


@dataclass
class FileRecord:
    """
    One regular file found by the scanner.
    Carries the stat metadata needed for grouping, hardlink resolution and actions.
    """
    path: str
    device: int
    inode: int
    size: int  # in bytes
    nlink: int = 1
    mode: int = 0
    uid: int = 0
    gid: int = 0
    digest: Optional[bytes] = None
    aliases: Tuple[str, ...] = ()  # other paths of the same inode, set by hardlink collapse
    record_id: Optional[int] = None  # primary key when loaded from the sqlite catalog

    def __post_init__(self):
        if self.size <= 0:
            raise ValueError(f"FileRecord requires a positive size: {self.path}")

    @classmethod
    def from_stat(cls, path: str, st: os.stat_result) -> "FileRecord":
        return cls(
            path=path,
            device=st.st_dev,
            inode=st.st_ino,
            size=st.st_size,
            nlink=st.st_nlink,
            mode=st.st_mode,
            uid=st.st_uid,
            gid=st.st_gid,
        )

    @property
    def inode_key(self) -> Tuple[int, int]:
        return self.device, self.inode

    @property
    def all_paths(self) -> Tuple[str, ...]:
        """The record's own path followed by its hardlink aliases."""
        return (self.path,) + tuple(self.aliases)

    def __repr__(self):
        return f"<FileRecord path={self.path}, size={self.size}, inode={self.inode}>"


@dataclass
class CandidateGroup:
    """
    Files sharing device and size, not yet confirmed duplicates.
    """
    key: GroupKey
    files: List[FileRecord] = field(default_factory=list)

    @property
    def size(self) -> int:
        return self.key.size

    def add_file(self, record: FileRecord) -> None:
        if record.size != self.key.size:
            raise ValueError("Cannot add file with different size to a group.")
        if self.key.device is not None and record.device != self.key.device:
            raise ValueError("Cannot add file from a different device to a group.")
        self.files.append(record)

    def is_candidate(self) -> bool:
        """True if this group can still contain a duplicate."""
        return len(self.files) >= 2

    def __repr__(self):
        return f"<CandidateGroup device={self.key.device}, size={self.key.size}, count={len(self.files)}>"


@dataclass
class DuplicateSet:
    """
    Files confirmed byte-identical by full digest.
    Members are kept in path order; the first one is the canonical member.
    """
    digest: bytes
    size: int
    files: List[FileRecord]

    def __post_init__(self):
        if len(self.files) < 2:
            raise ValueError("A duplicate set needs at least two files.")
        self.files = sorted(self.files, key=lambda f: f.path)

    @property
    def canonical(self) -> FileRecord:
        return self.files[0]

    @property
    def redundant(self) -> List[FileRecord]:
        return self.files[1:]

    @property
    def paths(self) -> List[str]:
        return [f.path for f in self.files]

    @property
    def reclaimable_bytes(self) -> int:
        return self.size * len(self.redundant)

    def __repr__(self):
        return f"<DuplicateSet digest={self.digest.hex()[:12]}, size={self.size}, count={len(self.files)}>"


@dataclass
class ResolveOutcome:
    """Counters produced while resolving candidate groups into duplicate sets."""
    files_compared: int = 0
    partial_hash_eliminations: int = 0
    hash_failures: int = 0

    def merge(self, other: "ResolveOutcome") -> "ResolveOutcome":
        return ResolveOutcome(
            files_compared=self.files_compared + other.files_compared,
            partial_hash_eliminations=self.partial_hash_eliminations + other.partial_hash_eliminations,
            hash_failures=self.hash_failures + other.hash_failures,
        )


@dataclass(frozen=True)
class RunStatistics:
    """
    Counters collected during one run. Never mutated: every stage
    returns a new value through add().
    """
    files_scanned: int = 0
    zero_byte_files: int = 0
    scan_errors: int = 0
    files_cataloged: int = 0
    unique_size_eliminations: int = 0
    hardlink_eliminations: int = 0
    files_compared: int = 0
    partial_hash_eliminations: int = 0
    hash_failures: int = 0
    duplicate_sets: int = 0
    duplicate_files: int = 0
    reclaimable_bytes: int = 0
    stage_times: Tuple[Tuple[str, float], ...] = ()
    total_time: float = 0.0

    def add(self, **deltas: int) -> "RunStatistics":
        """Return a copy with the given counters incremented."""
        changes = {}
        for name, delta in deltas.items():
            if name in ("stage_times", "total_time"):
                raise ValueError(f"'{name}' is not a counter")
            changes[name] = getattr(self, name) + delta
        return replace(self, **changes)

    def with_stage_time(self, stage: str, duration: float) -> "RunStatistics":
        return replace(self, stage_times=self.stage_times + ((stage, duration),))

    def with_total_time(self, total_time: float) -> "RunStatistics":
        return replace(self, total_time=total_time)

    def with_outcome(self, outcome: ResolveOutcome) -> "RunStatistics":
        return self.add(
            files_compared=outcome.files_compared,
            partial_hash_eliminations=outcome.partial_hash_eliminations,
            hash_failures=outcome.hash_failures,
        )

    def as_dict(self) -> Dict[str, int]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in ("stage_times", "total_time")
        }

    def print_summary(self) -> str:
        lines = [
            "📊 Deduplication Statistics:",
            f"Total Execution Time: {self.total_time:.3f}s\n",
            "Stage: TIME",
        ]
        for stage, duration in self.stage_times:
            lines.append(f"{stage}: {duration:.3f}s")
        return "\n".join(lines)


@dataclass
class ActionResult:
    """Outcome of one consolidation step on one path."""
    path: str
    canonical: str
    action: ActionMode
    success: bool
    message: str = ""
    bytes_reclaimed: int = 0


@dataclass
class ActionReport:
    """Outcome of consolidating one duplicate set."""
    digest: bytes
    canonical: str
    mode: ActionMode
    dry_run: bool = False
    results: List[ActionResult] = field(default_factory=list)

    @property
    def succeeded(self) -> List[ActionResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> List[ActionResult]:
        return [r for r in self.results if not r.success]

    @property
    def bytes_reclaimed(self) -> int:
        return sum(r.bytes_reclaimed for r in self.succeeded)


"""
DTO for deduplication parameters with built-in validation.
Interface-agnostic, used by the CLI and by library callers.
"""
from linkwise.utils.convert_utils import ConvertUtils

MAX_BATCH_SIZE = 100_000  # rows per INSERT transaction in the sqlite backend
DEFAULT_BATCH_SIZE = 5_000
DEFAULT_PARTIAL_BLOCK_SIZE = 64 * 1024
DEFAULT_DB_PATH = os.path.join(tempfile.gettempdir(), "linkwise-catalog.sqlite3")
DEFAULT_TABLE_NAME = "files"

# Full digests decide destructive actions, so only cryptographic hashes qualify.
SUPPORTED_ALGORITHMS = ("sha256", "sha512", "blake2b", "sha3_256")

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class DeduplicationParams:
    """Parameters for one run, validated on creation."""
    roots: List[str]
    mode: ActionMode = ActionMode.REPORT
    backend: BackendKind = BackendKind.MEMORY
    batch_size: int = DEFAULT_BATCH_SIZE
    db_path: str = DEFAULT_DB_PATH
    table_name: str = DEFAULT_TABLE_NAME
    algorithm: str = "sha256"
    partial_block_size: int = DEFAULT_PARTIAL_BLOCK_SIZE
    workers: int = 1
    cross_device: bool = False
    dry_run: bool = False
    use_trash: bool = False

    def __post_init__(self):
        """Validate parameters immediately after creation."""
        if isinstance(self.roots, str):
            self.roots = [self.roots]
        self.roots = [r for r in (self.roots or []) if r]
        if not self.roots:
            raise ValueError("At least one root directory is required")

        if not 1 <= self.batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"Batch size must be between 1 and {MAX_BATCH_SIZE}")

        if self.partial_block_size < 0:
            raise ValueError("Partial block size cannot be negative")

        if self.workers < 1:
            raise ValueError("At least one hashing worker is required")

        self.algorithm = self.algorithm.strip().lower().replace("-", "_")
        if self.algorithm not in SUPPORTED_ALGORITHMS:
            raise ValueError(
                f"Unsupported digest algorithm '{self.algorithm}'. "
                f"Valid options: {', '.join(SUPPORTED_ALGORITHMS)}"
            )
        if self.algorithm not in hashlib.algorithms_available:
            raise ValueError(f"Digest algorithm '{self.algorithm}' is not available in this Python build")

        if not _IDENTIFIER.match(self.table_name):
            raise ValueError(f"Invalid table name: '{self.table_name}'")

        if not self.db_path:
            raise ValueError("Database path cannot be empty")

        if self.use_trash and self.mode is not ActionMode.DELETE:
            raise ValueError("Trash can only be used with delete mode")

    @staticmethod
    def from_human_readable(
            roots: List[str],
            block_size_str: str = "64K",
            mode: ActionMode = ActionMode.REPORT,
            backend: BackendKind = BackendKind.MEMORY,
            **kwargs,
    ) -> 'DeduplicationParams':
        """
        Factory method to create params from human-readable inputs.
        Useful for CLI argument parsing.
        """
        block_size = ConvertUtils.human_to_bytes(block_size_str)

        return DeduplicationParams(
            roots=list(roots),
            mode=mode,
            backend=backend,
            partial_block_size=block_size,
            **kwargs,
        )
