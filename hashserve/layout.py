"""Module for the StorageLayout class."""

import datetime
import enum
import io
import logging
from contextlib import closing
from typing import Callable, Iterable, Optional, Union

import fs as pyfs
from fs.base import FS
from fs.permissions import Permissions

import hashserve.utils as u
from .errors import StorageError

logger = logging.getLogger(__name__)

UNKNOWN_FILENAME = "unknown"


class Generation(str, enum.Enum):
    """On-disk layout generation an object was written with."""

    LEGACY = "legacy"
    V2 = "v2"


class StorageLayout(object):
    """Decides where the bytes of a stored object live.

    Attributes:
        legacy: Filesystem holding the flat legacy layout,
            ``<identifier>_<filename>``.
        v2: Filesystem holding the date sharded layout,
            ``YYYY/MM/DD/<identifier>_<filename>``.
        dmode (int, optional): Directory mode permission to set for
            subdirectories. Defaults to ``0o755`` which allows owner/group to
            read/write and everyone else to read and everyone to execute.
        today (callable, optional): Returns the ingestion date used for v2
            sharding. Defaults to the local calendar date.
    """

    def __init__(self,
                 legacy_root: Union[FS, str],
                 v2_root: Union[FS, str],
                 dmode: Optional[int] = 0o755,
                 today: Callable[[], datetime.date] = datetime.date.today):
        self.legacy = u.load_fs(legacy_root)
        self.v2 = u.load_fs(v2_root)
        self.dmode = dmode
        self.today = today

    def fs_for(self, generation: Generation) -> FS:
        """Return the filesystem backing `generation`."""
        if Generation(generation) is Generation.LEGACY:
            return self.legacy
        return self.v2

    def resolve_path(self,
                     identifier: str,
                     generation: Generation,
                     filename: str,
                     day: Optional[datetime.date] = None) -> str:
        """Build the relative path of an object inside its generation's
        filesystem. `day` is only used by the v2 layout and defaults to
        :attr:`today`.
        """
        if Generation(generation) is Generation.LEGACY:
            return self.legacy_path(identifier, filename)
        return self.v2_path(identifier, filename, day)

    def legacy_path(self, identifier: str, filename: str) -> str:
        return physical_name(identifier, filename)

    def v2_path(self,
                identifier: str,
                filename: str,
                day: Optional[datetime.date] = None) -> str:
        day = day or self.today()
        return pyfs.path.join(*shard_date(day),
                              physical_name(identifier, filename))

    def write(self,
              path: str,
              stream: Iterable[bytes],
              generation: Generation = Generation.V2) -> int:
        """Create the parent directories of `path` and copy `stream` into a
        new file there. The destination must not exist yet.

        Returns:
            Number of bytes written.

        Raises:
            StorageError: If a directory or the file can't be written.
        """
        filesystem = self.fs_for(generation)
        self._makedirs(filesystem, pyfs.path.dirname(path))

        written = 0
        try:
            with closing(filesystem.open(path, mode="xb")) as p:
                for data in stream:
                    data = u.to_bytes(data)
                    p.write(data)
                    written += len(data)
        except (pyfs.errors.FSError, IOError) as exc:
            logger.error("Error saving file %s: %s", path, exc)
            raise StorageError("Error saving file") from exc

        return written

    def open(self, path: str, generation: Generation, mode: str = "rb") -> io.IOBase:
        """Return open IOBase object for `path` in `generation`.

        Raises:
            StorageError: If the file doesn't exist or can't be opened.
        """
        try:
            return self.fs_for(generation).open(path, mode)
        except (pyfs.errors.FSError, IOError) as exc:
            logger.error("Error opening file %s (%s): %s",
                         path, Generation(generation).value, exc)
            raise StorageError("Error opening file") from exc

    def remove(self, path: str, generation: Generation = Generation.V2) -> None:
        """Delete the file at `path`. No exception is raised if the file
        doesn't exist.

        Parent directories are left in place even when empty. Another writer
        may have created them and not yet opened its file.
        """
        try:
            self.fs_for(generation).remove(path)
        except pyfs.errors.ResourceNotFound:
            return

    def _makedirs(self, filesystem: FS, dir_path: str) -> None:
        """Physically create the folder path on disk."""
        if not dir_path:
            return

        try:
            perms = Permissions.create(self.dmode)
            filesystem.makedirs(dir_path, permissions=perms, recreate=True)
        except (pyfs.errors.FSError, IOError) as exc:
            logger.error("Error creating directory %s: %s", dir_path, exc)
            raise StorageError("Error creating directory") from exc


def physical_name(identifier: str, filename: str) -> str:
    """Return the on-disk file name, ``<identifier>_<basename>``."""
    name = pyfs.path.basename(filename or "") or UNKNOWN_FILENAME
    return "{0}_{1}".format(identifier, name)


def shard_date(day: datetime.date):
    """Split `day` into ``[YYYY, MM, DD]`` directory names."""
    return ["{0:04d}".format(day.year),
            "{0:02d}".format(day.month),
            "{0:02d}".format(day.day)]
