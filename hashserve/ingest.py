"""Module for the IngestionPipeline class."""

import logging
import secrets
import sqlite3
from collections import namedtuple
from contextlib import closing
from typing import Callable, IO, Iterable, Optional

from fs.errors import FSError

import hashserve.utils as u
from .errors import BadRequest, ConflictError, StorageError, Unauthorized
from .fetch import RemoteFetcher
from .index import DedupIndex, StoredObject
from .layout import Generation, StorageLayout, UNKNOWN_FILENAME

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_SIZE = 100 << 20


class Receipt(namedtuple("Receipt", ["identifier", "is_duplicate"])):
    """Outcome of an upload: the identifier to hand back to the client and
    whether it belongs to content that was already stored.
    """
    pass


class IngestionPipeline(object):
    """Authenticate, hash, deduplicate and persist uploaded files.

    Attributes:
        index: Dedup index the new records are written to.
        layout: Storage layout new objects are written with.
        api_key (str): Shared secret every upload must present.
        fetcher: Used for upload-by-URL. Defaults to a
            :class:`hashserve.fetch.RemoteFetcher` with its default limits.
        algorithm (str): Hash algorithm to use when computing file hash.
            Defaults to ``'sha256'``.
        max_upload_size (int): Largest local upload accepted, in bytes.
        new_identifier (callable): Returns a fresh identifier for each new
            object.
    """

    def __init__(self,
                 index: DedupIndex,
                 layout: StorageLayout,
                 api_key: str,
                 fetcher: Optional[RemoteFetcher] = None,
                 algorithm: str = "sha256",
                 max_upload_size: int = DEFAULT_MAX_UPLOAD_SIZE,
                 new_identifier: Callable[[], str] = u.new_identifier):
        self.index = index
        self.layout = layout
        self.api_key = api_key
        self.fetcher = fetcher or RemoteFetcher()
        self.algorithm = algorithm
        self.max_upload_size = max_upload_size
        self.new_identifier = new_identifier

    def authenticate(self, api_key: Optional[str]) -> None:
        """Raise :class:`Unauthorized` unless `api_key` matches
        :attr:`api_key`.
        """
        if api_key is None or not secrets.compare_digest(
                u.to_bytes(api_key), u.to_bytes(self.api_key)):
            raise Unauthorized()

    def upload(self,
               api_key: Optional[str],
               fileobj: Optional[IO[bytes]],
               filename: Optional[str] = None) -> Receipt:
        """Store a file uploaded by the client.

        Args:
            api_key: Shared secret presented with the request.
            fileobj: Seekable readable object holding the upload.
            filename: Client supplied file name.

        Returns:
            The :class:`Receipt` for the stored or already existing object.
        """
        self.authenticate(api_key)

        if fileobj is None:
            raise BadRequest("Error retrieving file")

        with closing(u.Stream(fileobj)) as stream:
            size = stream.size
            if size == 0:
                raise BadRequest("Uploaded file is empty")
            if size > self.max_upload_size:
                raise BadRequest("Uploaded file is too large")

            return self.put(stream, filename)

    def upload_url(self,
                   api_key: Optional[str],
                   url: Optional[str],
                   filename: Optional[str] = None) -> Receipt:
        """Fetch `url` and store its body under `filename` (``"unknown"``
        when omitted).
        """
        self.authenticate(api_key)

        if not url:
            raise BadRequest("URL parameter missing")

        with closing(self.fetcher.fetch(url)) as stream:
            if stream.size == 0:
                raise BadRequest("Fetched file is empty")

            return self.put(stream, filename)

    def put(self, stream: Iterable[bytes], filename: Optional[str] = None) -> Receipt:
        """Store contents of `stream` unless identical content is already
        indexed. `stream` must yield the same bytes every time it is
        iterated.
        """
        filename = filename or UNKNOWN_FILENAME
        hashid = self._computehash(stream)

        existing = self._lookup(hashid)
        if existing is not None:
            logger.info("Duplicate of %s uploaded as %r", existing.identifier, filename)
            return Receipt(existing.identifier, True)

        identifier = self.new_identifier()
        path = self.layout.v2_path(identifier, filename)
        self.layout.write(path, stream, Generation.V2)

        record = StoredObject(identifier, filename, hashid, path, Generation.V2)
        try:
            stored, inserted = self.index.insert_or_fetch(record)
        except (sqlite3.Error, ConflictError) as exc:
            logger.error("Error saving file info to database: %s", exc)
            raise StorageError("Error saving file info to database") from exc

        if not inserted:
            logger.info("Lost insert race for %s to %s", hashid, stored.identifier)
            self._discard(path)
            return Receipt(stored.identifier, True)

        logger.info("Stored %s as %s", identifier, path)
        return Receipt(identifier, False)

    def _computehash(self, stream: Iterable[bytes]) -> str:
        """Compute hash of file using :attr:`algorithm`."""
        try:
            return u.computehash(stream, self.algorithm)
        except IOError as exc:
            logger.error("Error calculating hash: %s", exc)
            raise StorageError("Error calculating hash") from exc

    def _lookup(self, hashid: str) -> Optional[StoredObject]:
        try:
            return self.index.find_by_hash(hashid)
        except sqlite3.Error as exc:
            logger.error("Error checking existing file: %s", exc)
            raise StorageError("Error checking existing file") from exc

    def _discard(self, path: str) -> None:
        """Remove bytes written for a record that was never indexed."""
        try:
            self.layout.remove(path, Generation.V2)
        except FSError as exc:
            logger.warning("Could not remove orphaned file %s: %s", path, exc)
