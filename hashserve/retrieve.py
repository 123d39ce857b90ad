"""Module for the RetrievalPipeline class."""

import io
import logging
import sqlite3
from contextlib import closing
from typing import Iterator, Tuple

import hashserve.utils as u
from .errors import BadRequest, NotFound, StorageError
from .index import DedupIndex, StoredObject
from .layout import StorageLayout

logger = logging.getLogger(__name__)


class RetrievalPipeline(object):
    """Resolve identifiers to stored bytes, falling back from the v2 index to
    the legacy one.
    """

    def __init__(self, index: DedupIndex, layout: StorageLayout,
                 chunk_size: int = u.CHUNK_SIZE):
        self.index = index
        self.layout = layout
        self.chunk_size = chunk_size

    def lookup(self, identifier: str) -> StoredObject:
        """Return the :class:`StoredObject` for `identifier`.

        Raises:
            BadRequest: If `identifier` is not a UUID. The index is not
                queried in that case.
            NotFound: If neither generation knows the identifier.
            StorageError: If the index can't be read.
        """
        canonical = u.canonical_identifier(identifier)
        if canonical is None:
            raise BadRequest("Invalid UUID")

        try:
            stored = self.index.find_by_identifier(canonical)
        except sqlite3.Error as exc:
            logger.error("Error retrieving file info from database: %s", exc)
            raise StorageError("Error retrieving file info from database") from exc

        if stored is None:
            raise NotFound()

        return stored

    def open(self, identifier: str) -> Tuple[StoredObject, io.IOBase]:
        """Return the stored object for `identifier` together with its bytes
        opened for reading. The caller owns the returned file.
        """
        stored = self.lookup(identifier)
        return stored, self.layout.open(stored.path, stored.generation)

    def stream(self, fileobj: io.IOBase) -> Iterator[bytes]:
        """Yield the contents of `fileobj` in chunks and close it afterwards."""
        with closing(fileobj):
            while True:
                data = fileobj.read(self.chunk_size)
                if not data:
                    break
                yield data

    def read(self, identifier: str) -> bytes:
        """Return the full contents stored under `identifier`."""
        _, fileobj = self.open(identifier)
        return b"".join(self.stream(fileobj))
