"""hashserve is a content-addressed file storage service. Clients upload a
file, the service fingerprints it with SHA-256, and identical content is only
ever stored once. Every stored object gets a random UUID which is later used
to fetch the bytes back.

Objects are kept in two storage generations:

- legacy: a flat directory, ``<uploads>/<uuid>_<filename>``.
- v2: a date sharded directory, ``<uploadsv2>/YYYY/MM/DD/<uuid>_<filename>``,
  with the path recorded in the index.

New objects always go to v2; reads transparently fall back to legacy.
"""

from .__meta__ import (
    __title__,
    __summary__,
    __url__,
    __version__,
    __author__,
    __email__,
    __license__,
)

from .errors import (
    HashServeError,
    Unauthorized,
    BadRequest,
    NotFound,
    ConflictError,
    StorageError,
    UpstreamError,
)
from .layout import Generation, StorageLayout
from .index import DedupIndex, StoredObject
from .fetch import RemoteFetcher
from .ingest import IngestionPipeline, Receipt
from .retrieve import RetrievalPipeline
from .config import Settings


__all__ = (
    "HashServeError",
    "Unauthorized",
    "BadRequest",
    "NotFound",
    "ConflictError",
    "StorageError",
    "UpstreamError",
    "Generation",
    "StorageLayout",
    "DedupIndex",
    "StoredObject",
    "RemoteFetcher",
    "IngestionPipeline",
    "Receipt",
    "RetrievalPipeline",
    "Settings",
)
