"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

backends/sqlite_store.py
External-store backend: the catalog lives in a SQLite table, grouping and
hardlink collapse are aggregate queries, and only one candidate group is
held in memory at a time.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from linkwise.core.models import (
    FileRecord, CandidateGroup, DuplicateSet, GroupKey, ResolveOutcome,
    DEFAULT_BATCH_SIZE, DEFAULT_TABLE_NAME, MAX_BATCH_SIZE,
)
from linkwise.core.interfaces import Backend, GroupResolver
from linkwise.core.stages import DuplicateResolver

logger = logging.getLogger(__name__)

_INT64_SPAN = 1 << 64
_INT64_MAX = (1 << 63) - 1
_IN_CHUNK = 500  # stays under SQLITE_MAX_VARIABLE_NUMBER on old builds


class BackendError(RuntimeError):
    """The external store failed; no partial analysis may be used."""


def _to_sql_int(value: int) -> int:
    """st_dev/st_ino are unsigned 64-bit; SQLite integers are signed."""
    return value - _INT64_SPAN if value > _INT64_MAX else value


def _from_sql_int(value: int) -> int:
    return value + _INT64_SPAN if value < 0 else value


class SQLiteBackend(Backend):
    """
    Catalog stored in one SQLite table that the run owns and re-creates.

    Attributes:
        db_path:
          Where the database file lives (":memory:" is accepted for tests).
        table_name:
          Name of the catalog table. Validated by DeduplicationParams.
        batch_size:
          Rows per INSERT transaction.
    """

    def __init__(self,
                 db_path: str,
                 table_name: str = DEFAULT_TABLE_NAME,
                 batch_size: int = DEFAULT_BATCH_SIZE,
                 cross_device: bool = False
                 ) -> None:
        """
        Opens the database and resets the catalog table.

        Raises:
            ValueError:
              `batch_size` is outside 1..MAX_BATCH_SIZE.
            BackendError:
              The database could not be opened or the schema could not be created.
        """
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"Batch size must be between 1 and {MAX_BATCH_SIZE}")

        self.db_path = db_path
        self.table_name = table_name
        self.batch_size = batch_size
        self.cross_device = cross_device
        self._conn: Optional[sqlite3.Connection] = None

        with self._store_errors("open catalog"):
            self._conn = sqlite3.connect(db_path)
            self._conn.row_factory = sqlite3.Row
            self._reset_schema()

    def __enter__(self) -> "SQLiteBackend":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    @contextmanager
    def _store_errors(self, action: str):
        try:
            yield
        except sqlite3.Error as e:
            logger.error(f"Catalog store failed to {action}: {e}")
            raise BackendError(f"Catalog store failed to {action}: {e}") from e

    def _reset_schema(self) -> None:
        t = self.table_name
        with self._conn:
            self._conn.execute(f"DROP TABLE IF EXISTS {t}")
            self._conn.execute(f"""
                CREATE TABLE {t} (
                    id integer primary key,
                    device int not null,
                    size int not null,
                    path blob not null,
                    nlink int not null,
                    inode int not null,
                    mode int,
                    uid int,
                    gid int,
                    digest blob,
                    alias_of int
                );
            """)
            self._conn.execute(f"CREATE INDEX {t}_inode_idx ON {t} (inode)")
            self._conn.execute(f"CREATE INDEX {t}_size_idx ON {t} (size, device)")
            self._conn.execute(f"CREATE INDEX {t}_digest_idx ON {t} (digest)")
        logger.debug(f"Reset catalog table '{t}' in {self.db_path}")

    # ----------------------------------------------------------------
    # Catalog
    # ----------------------------------------------------------------

    def load_catalog(self, records: Iterable[FileRecord]) -> int:
        """Inserts records in batches; every batch is committed on its own."""
        loaded = 0
        batch: List[Tuple] = []
        for record in records:
            batch.append((
                _to_sql_int(record.device),
                record.size,
                os.fsencode(record.path),
                record.nlink,
                _to_sql_int(record.inode),
                record.mode,
                record.uid,
                record.gid,
            ))
            if len(batch) >= self.batch_size:
                loaded += self._insert_batch(batch)
                batch = []
        if batch:
            loaded += self._insert_batch(batch)
        logger.debug(f"Loaded {loaded} records into {self.table_name}")
        return loaded

    def _insert_batch(self, batch: List[Tuple]) -> int:
        with self._store_errors("insert batch"), self._conn:
            self._conn.executemany(
                f"INSERT INTO {self.table_name} "
                "(device, size, path, nlink, inode, mode, uid, gid) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                batch
            )
        return len(batch)

    # ----------------------------------------------------------------
    # Grouping
    # ----------------------------------------------------------------

    def _key_columns(self) -> str:
        return "size" if self.cross_device else "device, size"

    def _group_filter(self, key: GroupKey) -> Tuple[str, Tuple]:
        if key.device is None:
            return "size = ?", (key.size,)
        return "size = ? AND device = ?", (key.size, _to_sql_int(key.device))

    def candidate_groups(self) -> Tuple[Iterator[CandidateGroup], int]:
        t = self.table_name
        cols = self._key_columns()
        with self._store_errors("group catalog"):
            unique = self._conn.execute(
                f"SELECT COUNT(*) FROM (SELECT 1 FROM {t} GROUP BY {cols} HAVING COUNT(*) = 1)"
            ).fetchone()[0]
            keys = [
                GroupKey(None if self.cross_device else _from_sql_int(row["device"]), row["size"])
                for row in self._conn.execute(
                    f"SELECT {'NULL AS device, size' if self.cross_device else cols} FROM {t} "
                    f"GROUP BY {cols} HAVING COUNT(*) > 1 ORDER BY {cols}"
                ).fetchall()
            ]
        logger.debug(f"Size grouping: {len(keys)} candidate groups, {unique} unique sizes")
        return self._iter_groups(keys), unique

    def _iter_groups(self, keys: List[GroupKey]) -> Iterator[CandidateGroup]:
        for key in keys:
            yield self._load_group(key)

    def _load_group(self, key: GroupKey) -> CandidateGroup:
        where, params = self._group_filter(key)
        with self._store_errors("load group"):
            rows = self._conn.execute(
                f"SELECT * FROM {self.table_name} WHERE {where} ORDER BY id", params
            ).fetchall()
        return CandidateGroup(key=key, files=self._records_from_rows(rows))

    @staticmethod
    def _record_from_row(row: sqlite3.Row, aliases: Sequence[str] = ()) -> FileRecord:
        return FileRecord(
            path=os.fsdecode(row["path"]),
            device=_from_sql_int(row["device"]),
            inode=_from_sql_int(row["inode"]),
            size=row["size"],
            nlink=row["nlink"],
            mode=row["mode"],
            uid=row["uid"],
            gid=row["gid"],
            digest=row["digest"],
            aliases=tuple(sorted(aliases)),
            record_id=row["id"],
        )

    def _records_from_rows(self, rows: List[sqlite3.Row]) -> List[FileRecord]:
        """Builds records from rows, folding alias rows into their representative."""
        aliases: Dict[int, List[str]] = {}
        for row in rows:
            if row["alias_of"] is not None:
                aliases.setdefault(row["alias_of"], []).append(os.fsdecode(row["path"]))
        return [
            self._record_from_row(row, aliases.get(row["id"], ()))
            for row in rows
            if row["alias_of"] is None
        ]

    # ----------------------------------------------------------------
    # Hardlinks
    # ----------------------------------------------------------------

    def collapse_hardlinks(self, group: CandidateGroup) -> Tuple[CandidateGroup, int]:
        """
        Marks every extra path of a shared inode with alias_of instead of deleting it,
        so the action engine can still reach all names of the inode.
        """
        t = self.table_name
        where, params = self._group_filter(group.key)
        eliminated = 0
        with self._store_errors("collapse hardlinks"):
            shared = self._conn.execute(
                f"SELECT device, inode, COUNT(*) AS cnt FROM {t} "
                f"WHERE {where} AND nlink > 1 AND alias_of IS NULL "
                "GROUP BY device, inode HAVING COUNT(*) > 1",
                params
            ).fetchall()
            if not shared:
                return group, 0

            with self._conn:
                for row in shared:
                    members = self._conn.execute(
                        f"SELECT id, path FROM {t} "
                        f"WHERE {where} AND device = ? AND inode = ? AND alias_of IS NULL",
                        params + (row["device"], row["inode"])
                    ).fetchall()
                    members.sort(key=lambda m: os.fsdecode(m["path"]))
                    rep_id = members[0]["id"]
                    self._conn.executemany(
                        f"UPDATE {t} SET alias_of = ? WHERE id = ? OR alias_of = ?",
                        [(rep_id, m["id"], m["id"]) for m in members[1:]]
                    )
                    self._conn.execute(f"UPDATE {t} SET nlink = 1 WHERE id = ?", (rep_id,))
                    eliminated += len(members) - 1

        logger.debug(f"Collapsed {eliminated} hardlinked entries in group {group.key}")
        return self._load_group(group.key), eliminated

    # ----------------------------------------------------------------
    # Duplicate resolution
    # ----------------------------------------------------------------

    def duplicate_sets(
            self,
            groups: Iterable[CandidateGroup],
            resolver: GroupResolver
    ) -> Tuple[List[DuplicateSet], ResolveOutcome]:
        """
        Digests each group, writes the digests back by primary key, then lets
        the store group by digest.
        """
        outcome = ResolveOutcome()
        for group in groups:
            _, group_outcome = resolver.resolve(group)
            outcome = outcome.merge(group_outcome)
            updates = [(f.digest, f.record_id) for f in group.files if f.digest is not None]
            if updates:
                with self._store_errors("store digests"), self._conn:
                    self._conn.executemany(
                        f"UPDATE {self.table_name} SET digest = ? WHERE id = ?", updates
                    )
        return DuplicateResolver.sort_sets(self._query_duplicate_sets()), outcome

    def _query_duplicate_sets(self) -> List[DuplicateSet]:
        t = self.table_name
        cols = self._key_columns()
        sets: List[DuplicateSet] = []
        with self._store_errors("query duplicate sets"):
            keys = self._conn.execute(
                f"SELECT {cols}, digest FROM {t} "
                "WHERE digest IS NOT NULL AND alias_of IS NULL "
                f"GROUP BY {cols}, digest HAVING COUNT(*) > 1"
            ).fetchall()
            for key in keys:
                where, params = self._group_filter(
                    GroupKey(None if self.cross_device else _from_sql_int(key["device"]), key["size"])
                )
                reps = self._conn.execute(
                    f"SELECT * FROM {t} WHERE {where} AND digest = ? AND alias_of IS NULL",
                    params + (key["digest"],)
                ).fetchall()
                alias_rows = self._alias_rows([r["id"] for r in reps])
                members = self._records_from_rows(list(reps) + alias_rows)
                sets.append(DuplicateSet(digest=key["digest"], size=key["size"], files=members))
        return sets

    def _alias_rows(self, rep_ids: List[int]) -> List[sqlite3.Row]:
        rows: List[sqlite3.Row] = []
        for start in range(0, len(rep_ids), _IN_CHUNK):
            chunk = rep_ids[start:start + _IN_CHUNK]
            placeholders = ", ".join("?" for _ in chunk)
            rows.extend(self._conn.execute(
                f"SELECT * FROM {self.table_name} WHERE alias_of IN ({placeholders})", chunk
            ).fetchall())
        return rows

    def close(self) -> None:
        """Closes the database."""
        if self._conn is None:
            return
        if self._conn.in_transaction:
            logger.warning("Closing catalog with uncommitted changes.")
        self._conn.close()
        self._conn = None
