"""
common utils for hashserve
"""

import hashlib
import io
import re
import uuid
from typing import Iterable, Iterator, Optional, Union
from urllib.parse import quote

import fs as pyfs
from fs.base import FS

CHUNK_SIZE = 64 * 1024

_UNSAFE_HEADER_CHARS = re.compile(r'[\x00-\x1f\x7f"\\]')


def to_bytes(data):
    if not isinstance(data, bytes):
        data = bytes(data, "utf8")
    return data


def computehash(stream: Iterable[bytes], algorithm: str = "sha256") -> str:
    """Compute the hex digest of every chunk yielded by `stream`.

    The stream is fully drained. Any ``IOError`` raised while reading is
    propagated to the caller.
    """
    digest = hashlib.new(algorithm)
    for data in stream:
        digest.update(to_bytes(data))
    return digest.hexdigest()


def new_identifier() -> str:
    """Return a new random (version 4) UUID string."""
    return str(uuid.uuid4())


def canonical_identifier(value: Optional[str]) -> Optional[str]:
    """Return the lowercase hyphenated form of `value`, or ``None`` when it is
    not a UUID.
    """
    if not value:
        return None
    try:
        return str(uuid.UUID(value))
    except (ValueError, TypeError, AttributeError):
        return None


def load_fs(root: Union[FS, str], create: bool = True) -> FS:
    """Return `root` when it already is a filesystem, otherwise open it as a
    path or FS URL.
    """
    if isinstance(root, FS):
        return root
    return pyfs.open_fs(root, create=create)


def content_disposition(filename: str) -> str:
    """Build an ``attachment`` Content-Disposition value for `filename`.

    Control characters, quotes and backslashes are dropped so the name cannot
    break out of the header. Names outside of ASCII get an ASCII fallback plus
    an RFC 5987 ``filename*`` parameter.
    """
    name = _UNSAFE_HEADER_CHARS.sub("", filename or "") or "unknown"
    try:
        name.encode("ascii")
    except UnicodeEncodeError:
        fallback = name.encode("ascii", "replace").decode("ascii").replace("?", "_")
        return "attachment; filename=\"{0}\"; filename*=UTF-8''{1}".format(
            fallback, quote(name, safe="")
        )
    return 'attachment; filename="{0}"'.format(name)


class Stream(object):
    """Common interface for seekable file-like objects.

    The object's original position will be restored when :meth:`close` is
    called. The object itself is left open for its owner to close.

    Successive readings of the stream is supported without having to manually
    set it's position back to ``0``.
    """

    def __init__(self, obj, chunk_size: int = CHUNK_SIZE):
        if not hasattr(obj, "read"):
            raise ValueError("Object must be a readable object.")

        self._obj = obj
        self._pos = obj.tell()
        self.chunk_size = chunk_size

    @property
    def size(self) -> int:
        """Total number of bytes in the underlying object."""
        current = self._obj.tell()
        try:
            self._obj.seek(0, io.SEEK_END)
            return self._obj.tell()
        finally:
            self._obj.seek(current)

    def __iter__(self) -> Iterator[bytes]:
        """Read underlying IO object from the start and yield chunks."""
        self._obj.seek(0)

        while True:
            data = self._obj.read(self.chunk_size)

            if not data:
                break

            yield to_bytes(data)

        self._obj.seek(0)

    def close(self):
        """Return underlying IO object to its original position."""
        self._obj.seek(self._pos)


class ReplayableStream(io.RawIOBase):
    """Wrap a single-read source so it can be read through more than once.

    The whole source is buffered in memory on construction, so it must only
    be used for bounded payloads. Reading past the end returns ``b""`` once
    and rewinds to the start, so the next full read yields the same bytes
    again.

    `source` is either a readable object or an iterable of ``bytes`` chunks.
    """

    def __init__(self, source, chunk_size: int = CHUNK_SIZE):
        super(ReplayableStream, self).__init__()
        self.chunk_size = chunk_size
        self._buffer = io.BytesIO()

        if hasattr(source, "read"):
            chunks = iter(lambda: source.read(chunk_size), b"")
        else:
            chunks = source

        for data in chunks:
            self._buffer.write(to_bytes(data))

        self._size = self._buffer.tell()
        self._buffer.seek(0)

    @property
    def size(self) -> int:
        return self._size

    def readable(self):
        return True

    def readinto(self, b):
        data = self._buffer.read(len(b))
        if not data:
            # Exhausted: rewind so the next reader starts over.
            self._buffer.seek(0)
            return 0
        n = len(data)
        b[:n] = data
        return n

    def __iter__(self) -> Iterator[bytes]:
        while True:
            data = self.read(self.chunk_size)
            if not data:
                break
            yield data

    def close(self):
        self._buffer.close()
        super(ReplayableStream, self).close()
