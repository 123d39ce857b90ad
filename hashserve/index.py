"""SQLite-backed dedup index of stored objects.

Two tables are kept side by side. ``files`` is the legacy shape which has no
path column; paths for its rows are derived from the flat legacy layout.
``files_v2`` records the path of every object written since sharding by date
was introduced. All new rows go to ``files_v2``.
"""

import logging
import sqlite3
import threading
from collections import namedtuple
from pathlib import Path
from typing import Optional, Tuple

from .errors import ConflictError
from .layout import Generation, StorageLayout

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

SCHEMA = """
CREATE TABLE IF NOT EXISTS files (
    uuid TEXT PRIMARY KEY,
    filename TEXT,
    hash TEXT UNIQUE
);
CREATE TABLE IF NOT EXISTS files_v2 (
    uuid TEXT PRIMARY KEY,
    filename TEXT,
    hash TEXT UNIQUE,
    filepath TEXT
);
"""


class StoredObject(namedtuple("StoredObject", ["identifier",
                                               "filename",
                                               "hash",
                                               "path",
                                               "generation"])):
    """A persisted file: its identifier, the client supplied filename, the
    hex content hash, the path relative to its generation's root and the
    generation itself.
    """

    def __new__(cls, identifier, filename, hash, path, generation=Generation.V2):
        return super(StoredObject, cls).__new__(
            cls, identifier, filename, hash, path, Generation(generation)
        )


class DedupIndex(object):
    """Lookup of stored objects by content hash and by identifier across the
    legacy and v2 tables.

    Args:
        layout: Resolver used to derive paths for legacy rows.
        database: Path to the SQLite database file, or ``":memory:"``.
    """

    def __init__(self, layout: StorageLayout, database: str = MEMORY):
        self.layout = layout
        self.database = str(database)
        self._lock = threading.RLock()

        if self.database != MEMORY:
            Path(self.database).parent.mkdir(parents=True, exist_ok=True)

        self.conn = sqlite3.connect(self.database, check_same_thread=False, timeout=30.0)
        self.conn.row_factory = sqlite3.Row

        with self._lock, self.conn:
            self.conn.executescript(SCHEMA)

        logger.info("Opened dedup index at %s", self.database)

    def find_by_hash(self, hash: str) -> Optional[StoredObject]:
        """Return the object whose content hashes to `hash`, preferring a v2
        record over a legacy one.
        """
        with self._lock:
            row = self.conn.execute(
                "SELECT uuid, filename, hash, filepath FROM files_v2 WHERE hash = ?",
                (hash,),
            ).fetchone()
            if row is not None:
                return self._v2_record(row)

            row = self.conn.execute(
                "SELECT uuid, filename, hash FROM files WHERE hash = ?", (hash,)
            ).fetchone()
            if row is not None:
                return self._legacy_record(row)

        return None

    def find_by_identifier(self, identifier: str) -> Optional[StoredObject]:
        """Return the object stored under `identifier`. Legacy rows get their
        path from the flat legacy layout.
        """
        with self._lock:
            row = self.conn.execute(
                "SELECT uuid, filename, hash, filepath FROM files_v2 WHERE uuid = ?",
                (identifier,),
            ).fetchone()
            if row is not None:
                return self._v2_record(row)

            row = self.conn.execute(
                "SELECT uuid, filename, hash FROM files WHERE uuid = ?", (identifier,)
            ).fetchone()
            if row is not None:
                return self._legacy_record(row)

        return None

    def insert(self, record: StoredObject) -> StoredObject:
        """Write `record` into the v2 table.

        Raises:
            ConflictError: If the hash or identifier is already indexed in
                either generation.
        """
        with self._lock:
            legacy = self.conn.execute(
                "SELECT uuid FROM files WHERE hash = ? OR uuid = ?",
                (record.hash, record.identifier),
            ).fetchone()
            if legacy is not None:
                raise ConflictError()

            try:
                with self.conn:
                    self.conn.execute(
                        "INSERT INTO files_v2 (uuid, filename, hash, filepath) "
                        "VALUES (?, ?, ?, ?)",
                        (record.identifier, record.filename, record.hash, record.path),
                    )
            except sqlite3.IntegrityError as exc:
                raise ConflictError() from exc

        return record._replace(generation=Generation.V2)

    def insert_or_fetch(self, record: StoredObject) -> Tuple[StoredObject, bool]:
        """Insert `record`, or return the object already holding its hash.

        Returns:
            ``(stored, inserted)`` where `inserted` is ``False`` when an
            existing object won.
        """
        with self._lock:
            try:
                return self.insert(record), True
            except ConflictError:
                existing = self.find_by_hash(record.hash)
                if existing is None:
                    # Identifier collision, not duplicate content.
                    raise
                return existing, False

    def insert_legacy(self, record: StoredObject) -> StoredObject:
        """Write `record` into the legacy table. Only needed to seed or
        migrate data written by the legacy layout.

        Raises:
            ConflictError: If the hash or identifier is already indexed.
        """
        with self._lock:
            current = self.conn.execute(
                "SELECT uuid FROM files_v2 WHERE hash = ? OR uuid = ?",
                (record.hash, record.identifier),
            ).fetchone()
            if current is not None:
                raise ConflictError()

            try:
                with self.conn:
                    self.conn.execute(
                        "INSERT INTO files (uuid, filename, hash) VALUES (?, ?, ?)",
                        (record.identifier, record.filename, record.hash),
                    )
            except sqlite3.IntegrityError as exc:
                raise ConflictError() from exc

        return StoredObject(record.identifier,
                            record.filename,
                            record.hash,
                            self.layout.legacy_path(record.identifier, record.filename),
                            Generation.LEGACY)

    def count(self) -> int:
        """Return the number of objects indexed in both generations."""
        with self._lock:
            legacy = self.conn.execute("SELECT COUNT(*) FROM files").fetchone()[0]
            current = self.conn.execute("SELECT COUNT(*) FROM files_v2").fetchone()[0]
        return legacy + current

    def close(self) -> None:
        with self._lock:
            self.conn.close()

    def __contains__(self, identifier: str) -> bool:
        return self.find_by_identifier(identifier) is not None

    def __len__(self) -> int:
        return self.count()

    def _v2_record(self, row: sqlite3.Row) -> StoredObject:
        return StoredObject(row["uuid"],
                            row["filename"],
                            row["hash"],
                            row["filepath"],
                            Generation.V2)

    def _legacy_record(self, row: sqlite3.Row) -> StoredObject:
        return StoredObject(row["uuid"],
                            row["filename"],
                            row["hash"],
                            self.layout.legacy_path(row["uuid"], row["filename"]),
                            Generation.LEGACY)
