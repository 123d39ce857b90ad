"""Exceptions raised by the ingestion and retrieval pipelines.

Each exception carries the HTTP status it is rendered with and a plain-text
detail shown to the client.
"""


class HashServeError(Exception):
    """Base class for all hashserve errors."""

    status_code = 500
    default_detail = "Internal Server Error"

    def __init__(self, detail=None):
        self.detail = detail if detail is not None else self.default_detail
        super(HashServeError, self).__init__(self.detail)


class Unauthorized(HashServeError):
    """Missing or wrong shared secret."""

    status_code = 401
    default_detail = "Unauthorized"


class BadRequest(HashServeError):
    """Malformed client input."""

    status_code = 400
    default_detail = "Bad Request"


class NotFound(HashServeError):
    """Identifier is unknown to both index generations."""

    status_code = 404
    default_detail = "File not found"


class ConflictError(HashServeError):
    """Content hash or identifier already present in the index.

    Raised by :meth:`hashserve.index.DedupIndex.insert` and absorbed by the
    ingestion pipeline; it is never rendered to a client.
    """

    status_code = 409
    default_detail = "File already exists"


class StorageError(HashServeError):
    """Filesystem or index I/O failure."""

    status_code = 500
    default_detail = "Storage error"


class UpstreamError(HashServeError):
    """Fetching a remote file failed."""

    status_code = 500
    default_detail = "Error fetching file"
