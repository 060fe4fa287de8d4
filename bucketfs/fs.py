"""Filesystem facade over one S3 bucket.

Paths are mapped to object keys under an optional root prefix.  The bucket
has no directories: a path ending with ``/`` is a directory by naming
convention only, and ``mkdir``/``chmod`` and friends succeed without doing
anything.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from bucketfs.config import DEFAULT_MIN_PART_SIZE
from bucketfs.exceptions import ExistError, InvalidModeError, NotExistError
from bucketfs.file import S3File
from bucketfs.models import FileInfo, OpenMode, is_dir_key
from bucketfs.s3_utils import build_s3_key, make_s3_client
from bucketfs.store import ObjectStore

if TYPE_CHECKING:
    from datetime import datetime

    from bucketfs.config import S3FsConfig
    from bucketfs.s3_types import S3Client


class S3Fs:
    """Open, inspect, move and delete objects as if they were files."""

    def __init__(
        self,
        s3_client: S3Client,
        bucket: str,
        *,
        prefix: str = "",
        min_part_size: int = DEFAULT_MIN_PART_SIZE,
    ) -> None:
        """Serve *bucket* (optionally only keys under *prefix*) via *s3_client*."""
        if min_part_size <= 0:
            msg = f"min_part_size must be positive, got {min_part_size}"
            raise ValueError(msg)
        self._store = ObjectStore(s3_client, bucket)
        self._prefix = prefix.strip("/")
        self._min_part_size = min_part_size

    @classmethod
    def from_config(cls, config: S3FsConfig) -> S3Fs:
        """Build a filesystem (and its boto3 client) from *config*."""
        return cls(
            make_s3_client(config),
            config.bucket,
            prefix=config.prefix,
            min_part_size=config.min_part_size,
        )

    @property
    def name(self) -> str:
        """Human-readable identifier of the backing store, for diagnostics."""
        root = f"s3://{self._store.bucket}"
        return f"{root}/{self._prefix}" if self._prefix else root

    @property
    def min_part_size(self) -> int:
        return self._min_part_size

    def __repr__(self) -> str:
        return f"S3Fs({self.name!r})"

    # ------------------------------------------------------------------
    # Opening files
    # ------------------------------------------------------------------

    def open(self, path: str, mode: str | OpenMode = "r") -> S3File:
        """Open *path* and return a handle positioned at offset 0.

        *mode* is a Python mode string (``"r"``, ``"w+"``, ``"ab"`` ...) or an
        :class:`OpenMode` flag set.

        Raises
        ------
        NotExistError
            The object is missing and *mode* does not allow creating it.
        ExistError
            The object exists and *mode* asked for exclusive creation.
        InvalidModeError
            Malformed mode, or a directory path opened for writing.

        """
        flags = OpenMode.parse(mode)
        key = self._key(path)
        if is_dir_key(key):
            if flags.writable:
                raise InvalidModeError(mode, f"{path!r} is a directory")
            return self._new_handle(key, flags)

        exists = self._store.exists(key)
        if not exists and not flags & OpenMode.CREATE:
            raise NotExistError(path)
        if exists and flags & OpenMode.EXCLUSIVE:
            raise ExistError(path)

        handle = self._new_handle(key, flags, create=not exists)
        if flags & OpenMode.TRUNCATE:
            try:
                handle.truncate(0)
            except Exception:
                handle.abort()
                raise
        logger.trace(f"open {self.name}/{key} mode={flags!r} exists={exists}")
        return handle

    def open_file(self, path: str, flags: int) -> S3File:
        """Open *path* with ``os.O_*`` *flags* (see :meth:`open`)."""
        return self.open(path, OpenMode.from_os_flags(flags))

    def create(self, path: str) -> S3File:
        """Open *path* for reading and writing, creating or emptying it."""
        return self.open(path, "w+")

    def _new_handle(
        self,
        key: str,
        flags: OpenMode,
        *,
        create: bool = False,
    ) -> S3File:
        return S3File(
            self._store,
            key,
            flags,
            min_part_size=self._min_part_size,
            root=self._prefix,
            create=create,
        )

    # ------------------------------------------------------------------
    # Whole-object operations
    # ------------------------------------------------------------------

    def stat(self, path: str) -> FileInfo:
        """Size and modification time of *path*."""
        head = self._store.head(self._key(path))
        return FileInfo(name=path.lstrip("/"), size=head.size, mod_time=head.mod_time)

    def exists(self, path: str) -> bool:
        """Return True if an object exists at *path*."""
        return self._store.exists(self._key(path))

    def remove(self, path: str) -> None:
        """Delete the object at *path*; raises NotExistError if it is absent."""
        key = self._key(path)
        self._store.head(key)
        self._store.delete(key)
        logger.debug(f"removed {self.name}/{key}")

    def remove_all(self, path: str) -> int:
        """Delete every object whose key starts with *path*; return the count.

        Succeeds (returning 0) when nothing matches.
        """
        prefix = self._key(path)
        keys = [info.name for info in self._store.list_prefix(prefix)]
        for key in keys:
            self._store.delete(key)
        logger.debug(f"removed {len(keys)} object(s) under {self.name}/{prefix}")
        return len(keys)

    def rename(self, old_path: str, new_path: str) -> None:
        """Move *old_path* to *new_path* by copying, then deleting the source.

        Not atomic: if the delete fails after a successful copy, both keys
        exist and the error is raised.  Callers must tolerate the duplicate.
        """
        old_key = self._key(old_path)
        new_key = self._key(new_path)
        self._store.copy(old_key, new_key)
        self._store.delete(old_key)
        logger.debug(f"renamed {self.name}/{old_key} -> {new_key}")

    def listdir(self, path: str = "", limit: int = 0) -> list[FileInfo]:
        """List objects under *path* (at most *limit* when positive)."""
        with self.open(path) as handle:
            return handle.readdir(limit)

    # ------------------------------------------------------------------
    # No-ops: the bucket has no directory entries or POSIX metadata
    # ------------------------------------------------------------------

    def mkdir(self, path: str, perm: int = 0o777) -> None:  # noqa: ARG002
        """Succeed without doing anything; directories are key prefixes."""

    def mkdir_all(self, path: str, perm: int = 0o777) -> None:  # noqa: ARG002
        """Succeed without doing anything; directories are key prefixes."""

    def chmod(self, path: str, mode: int) -> None:  # noqa: ARG002
        """Succeed without doing anything; objects carry no mode bits."""

    def chown(self, path: str, uid: int, gid: int) -> None:  # noqa: ARG002
        """Succeed without doing anything; objects carry no owner."""

    def chtimes(
        self,
        path: str,  # noqa: ARG002
        atime: datetime,  # noqa: ARG002
        mtime: datetime,  # noqa: ARG002
    ) -> None:
        """Succeed without doing anything; the store sets modification times."""

    def _key(self, path: str) -> str:
        return build_s3_key(self._prefix, path)
