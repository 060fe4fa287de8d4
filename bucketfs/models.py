"""Open modes and metadata records for bucketfs."""

from __future__ import annotations

import enum
import os
from datetime import datetime  # noqa: TC003
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict

from bucketfs.exceptions import InvalidModeError

# ------------------------------------------------------------------
# Open mode
# ------------------------------------------------------------------


class OpenMode(enum.IntFlag):
    """Flag set describing how a handle was opened.

    Immutable for the lifetime of a handle and checked by every operation.
    """

    READ = enum.auto()
    WRITE = enum.auto()
    APPEND = enum.auto()
    CREATE = enum.auto()
    TRUNCATE = enum.auto()
    EXCLUSIVE = enum.auto()

    @property
    def readable(self) -> bool:
        """True when the handle may read."""
        return bool(self & OpenMode.READ)

    @property
    def writable(self) -> bool:
        """True when the handle may write."""
        return bool(self & OpenMode.WRITE)

    def validate(self) -> OpenMode:
        """Return *self* if the flag combination is coherent, else raise."""
        if not self & (OpenMode.READ | OpenMode.WRITE):
            raise InvalidModeError(self, "neither READ nor WRITE is set")
        write_only_flags = (
            OpenMode.APPEND | OpenMode.CREATE | OpenMode.TRUNCATE | OpenMode.EXCLUSIVE
        )
        if self & write_only_flags and not self.writable:
            raise InvalidModeError(self, "APPEND/CREATE/TRUNCATE/EXCLUSIVE need WRITE")
        if self & OpenMode.EXCLUSIVE and not self & OpenMode.CREATE:
            raise InvalidModeError(self, "EXCLUSIVE needs CREATE")
        if self & OpenMode.APPEND and self & OpenMode.TRUNCATE:
            raise InvalidModeError(self, "APPEND cannot be combined with TRUNCATE")
        return self

    @classmethod
    def parse(cls, mode: str | OpenMode) -> OpenMode:
        """Build a validated flag set from a Python mode string like ``"r+b"``.

        ``b`` is accepted and ignored (handles are always binary); ``t`` is
        rejected.
        """
        if isinstance(mode, OpenMode):
            return mode.validate()
        chars = set(mode)
        if len(chars) != len(mode) or not chars <= set("rwaxb+"):
            raise InvalidModeError(mode, "unknown or repeated mode characters")
        kinds = chars & set("rwax")
        if len(kinds) != 1:
            raise InvalidModeError(mode, "exactly one of r/w/a/x is required")
        flags = _MODE_KINDS[kinds.pop()]
        if "+" in chars:
            flags |= cls.READ | cls.WRITE
        return flags.validate()

    @classmethod
    def from_os_flags(cls, flags: int) -> OpenMode:
        """Translate ``os.O_*`` flags into an :class:`OpenMode`."""
        access = flags & (os.O_RDONLY | os.O_WRONLY | os.O_RDWR)
        if access == os.O_WRONLY:
            mode = cls.WRITE
        elif access == os.O_RDWR:
            mode = cls.READ | cls.WRITE
        else:
            mode = cls.READ
        for os_flag, own_flag in (
            (os.O_APPEND, cls.APPEND),
            (os.O_CREAT, cls.CREATE),
            (os.O_TRUNC, cls.TRUNCATE),
            (os.O_EXCL, cls.EXCLUSIVE),
        ):
            if flags & os_flag:
                mode |= own_flag
        return mode.validate()


_MODE_KINDS: dict[str, OpenMode] = {
    "r": OpenMode.READ,
    "w": OpenMode.WRITE | OpenMode.CREATE | OpenMode.TRUNCATE,
    "a": OpenMode.WRITE | OpenMode.CREATE | OpenMode.APPEND,
    "x": OpenMode.WRITE | OpenMode.CREATE | OpenMode.EXCLUSIVE,
}


# ------------------------------------------------------------------
# Metadata records
# ------------------------------------------------------------------


def is_dir_key(name: str) -> bool:
    """Return True when *name* has no final path segment.

    Buckets have no directories; a key that is empty or ends with ``/`` is
    treated as one by naming convention only.
    """
    return name == "" or name.endswith("/")


class FileInfo(BaseModel):
    """Size and modification time of one object, as a HEAD or listing reports."""

    model_config = ConfigDict(frozen=True)

    name: str
    size: int
    mod_time: datetime

    @property
    def is_dir(self) -> bool:
        """Derived from the name, see :func:`is_dir_key`."""
        return is_dir_key(self.name)

    @property
    def base_name(self) -> str:
        """Last path segment (empty for directory keys)."""
        if self.is_dir:
            return ""
        return PurePosixPath(self.name).name

    def format_display(self) -> str:
        """One-line ``ls``-style summary."""
        kind = "d" if self.is_dir else "-"
        stamp = self.mod_time.strftime("%Y-%m-%d %H:%M:%S")
        return f"{kind} {self.size:>12}  {stamp}  {self.name}"


class ObjectHead(BaseModel):
    """Metadata returned by a HEAD request on one key."""

    model_config = ConfigDict(frozen=True)

    key: str
    size: int
    mod_time: datetime
    content_type: str = ""
    etag: str = ""
