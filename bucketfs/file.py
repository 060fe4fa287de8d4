"""Seekable, writable file handle over a single S3 object.

The store only offers whole-object GET and whole-object replacement (PUT or
a completed multipart upload), so a handle keeps two cursors:

* the **position** (``tell()``), where the next read or write happens.  Reads
  pull from one forward-only GET stream; jumping backward re-opens it and
  jumping forward discards bytes from it.
* the **upload offset**, how many bytes of the new object content have been
  handed to the write path.  Bytes go into a pending buffer, and every
  ``min_part_size`` bytes become one multipart part.

Finalizing always replaces the entire object, so any remote byte the caller
did not overwrite must be re-submitted.  Writing past the upload offset
first copies the untouched remote bytes in between forward (gap-fill), and
``sync`` copies the remote tail forward unless the handle was truncated.

Reads always see the last synced content of the object, not the unsynced
writes of the same handle.
"""

from __future__ import annotations

import os
import threading
from typing import TYPE_CHECKING

from loguru import logger

from bucketfs.exceptions import (
    AppendOnlyError,
    ClosedError,
    EndOfStreamError,
    NotExistError,
    ReadOnlyError,
    WriteOnlyError,
)
from bucketfs.models import FileInfo, OpenMode
from bucketfs.multipart import MultipartUpload
from bucketfs.s3_utils import guess_content_type, strip_s3_prefix

if TYPE_CHECKING:
    from types import TracebackType

    from bucketfs.store import ObjectStore, ObjectStream


class S3File:
    """One open session on an object; created by :meth:`bucketfs.fs.S3Fs.open`.

    All public methods are serialized by a per-handle lock.  A handle is not
    meant to be shared by concurrent writers, but interleaved calls from
    several call sites never observe each other's partial state.
    """

    def __init__(
        self,
        store: ObjectStore,
        key: str,
        mode: OpenMode,
        *,
        min_part_size: int,
        root: str = "",
        create: bool = False,
    ) -> None:
        """Bind the handle to *key*; no request is made until it is used.

        With *create* the object does not exist yet and is written (possibly
        empty) on the first sync or close.
        """
        self._store = store
        self._key = key
        self._mode = mode
        self._min_part_size = min_part_size
        self._root = root
        self._lock = threading.Lock()
        self._closed = False
        self._truncated = False
        self._dirty = create

        self._position = 0
        self._stream: ObjectStream | None = None
        self._stream_offset = 0

        self._pending = bytearray()
        self._upload_offset = 0
        self._multipart: MultipartUpload | None = None

    def __repr__(self) -> str:
        return f"S3File({self.name!r}, mode={self._mode!r})"

    def __enter__(self) -> S3File:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self._closed:
            self.close()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        """Path of the object relative to the filesystem root."""
        return strip_s3_prefix(self._root, self._key)

    @property
    def key(self) -> str:
        """Full object key in the bucket."""
        return self._key

    @property
    def mode(self) -> OpenMode:
        return self._mode

    @property
    def closed(self) -> bool:
        return self._closed

    def readable(self) -> bool:
        return self._mode.readable

    def writable(self) -> bool:
        return self._mode.writable

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        """Current position of the handle."""
        with self._lock:
            self._check_open()
            return self._position

    def stat(self) -> FileInfo:
        """Size and modification time of the object as last synced."""
        with self._lock:
            self._check_open()
            head = self._store.head(self._key)
        return FileInfo(name=self.name, size=head.size, mod_time=head.mod_time)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def read(self, size: int | None = -1) -> bytes:
        """Read up to *size* bytes (all remaining when negative or None).

        Returns ``b""`` once the end of the object is reached.
        """
        with self._lock:
            self._check_open()
            self._check_readable()
            return self._read(size)

    def readinto(self, buffer: bytearray | memoryview) -> int:
        """Read into *buffer* and return the number of bytes stored."""
        view = memoryview(buffer).cast("B")
        data = self.read(len(view))
        view[: len(data)] = data
        return len(data)

    def read_at(self, size: int, offset: int) -> bytes:
        """Seek to *offset*, then read up to *size* bytes.

        The handle's position moves, so positioned reads on one handle must
        not run concurrently with other reads.
        """
        with self._lock:
            self._check_open()
            self._check_readable()
            self._seek(offset, os.SEEK_SET)
            return self._read(size)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Move the position and return it.

        Raises
        ------
        EndOfStreamError
            If the target is negative or beyond the end of the file; the
            position is left unchanged.

        """
        with self._lock:
            self._check_open()
            return self._seek(offset, whence)

    def _read(self, size: int | None) -> bytes:
        try:
            stream = self._open_stream()
        except NotExistError:
            # a CREATE handle may read before its object is first written
            if not self._mode & OpenMode.CREATE:
                raise
            return b""
        if size is None or size < 0:
            data = stream.read()
        else:
            data = _read_full(stream, size)
        self._stream_offset += len(data)
        self._position += len(data)
        return data

    def _seek(self, offset: int, whence: int) -> int:
        size = self._logical_size()
        if whence == os.SEEK_SET:
            target = offset
        elif whence == os.SEEK_CUR:
            target = self._position + offset
        elif whence == os.SEEK_END:
            target = size + offset
        else:
            msg = f"invalid whence ({whence})"
            raise ValueError(msg)
        if target < 0 or target > size:
            msg = f"{self.name}: seek to {target} outside [0, {size}]"
            raise EndOfStreamError(msg)
        if self._stream is not None and target < self._stream_offset:
            self._drop_stream()
        self._position = target
        return target

    def _open_stream(self) -> ObjectStream:
        """Return the GET stream, advanced to the current position."""
        if self._stream is not None and self._stream_offset > self._position:
            self._drop_stream()
        if self._stream is None:
            self._stream = self._store.get(self._key)
            self._stream_offset = 0
        if self._stream_offset < self._position:
            wanted = self._position - self._stream_offset
            self._stream_offset += self._discard(self._stream, wanted)
        return self._stream

    def _discard(self, stream: ObjectStream, count: int) -> int:
        """Skip *count* bytes of *stream* with bounded reads; return bytes skipped."""
        skipped = 0
        while skipped < count:
            chunk = stream.read(min(self._min_part_size, count - skipped))
            if not chunk:
                break
            skipped += len(chunk)
        return skipped

    def _drop_stream(self) -> None:
        if self._stream is not None:
            self._stream.close()
            logger.trace(f"{self.name}: read stream closed at {self._stream_offset}")
        self._stream = None
        self._stream_offset = 0

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """Write *data* at the current position and return ``len(data)``.

        Bytes are buffered locally and uploaded in parts; nothing is visible
        in the bucket before :meth:`sync` or :meth:`close`.
        """
        with self._lock:
            self._check_open()
            self._check_writable()
            return self._write_locked(bytes(data))

    def write_at(self, data: bytes | bytearray | memoryview, offset: int) -> int:
        """Seek to *offset*, then :meth:`write` *data*."""
        with self._lock:
            self._check_open()
            self._check_writable()
            self._seek(offset, os.SEEK_SET)
            return self._write_locked(bytes(data))

    def write_string(self, text: str) -> int:
        """Write *text* encoded as UTF-8; returns the number of bytes written."""
        return self.write(text.encode("utf-8"))

    def truncate(self, size: int) -> None:
        """Make the object exactly *size* bytes long on the next sync.

        Any unsynced write of this handle is discarded.  The first *size*
        bytes of the object are copied forward immediately, everything
        after them is dropped on finalize, and the position moves to *size*.
        Growing the object is not supported.
        """
        with self._lock:
            self._check_open()
            self._check_writable()
            if self._mode & OpenMode.APPEND:
                msg = f"{self.name}: cannot truncate a file opened for append"
                raise AppendOnlyError(msg)
            remote_size = self._remote_size()
            if size < 0 or size > remote_size:
                msg = f"{self.name}: truncate to {size} outside [0, {remote_size}]"
                raise EndOfStreamError(msg)

            self._abort_write_session()
            self._drop_stream()
            self._truncated = True
            self._dirty = True
            self._position = size
            try:
                self._copy_forward(size)
            except Exception:
                self._abort_write_session()
                raise
            logger.debug(f"{self.name}: truncated to {size}")

    def _write_locked(self, payload: bytes) -> int:
        if self._mode & OpenMode.APPEND:
            self._position = self._logical_size()
        try:
            self._write(payload)
        except Exception:
            self._abort_write_session()
            raise
        return len(payload)

    def _write(self, payload: bytes) -> None:
        start = self._position
        if start < self._upload_offset:
            flushed = self._upload_offset - len(self._pending)
            if start >= flushed:
                self._dirty = True
                self._overwrite_pending(start - flushed, payload)
                self._position = start + len(payload)
                return
            logger.debug(
                f"{self.name}: write at {start} lies in an uploaded part, "
                f"finalizing the first {self._upload_offset} bytes"
            )
            self._finalize()
        self._dirty = True
        if self._upload_offset < start:
            self._copy_forward(start)
        self._buffer(payload)
        self._position = self._upload_offset

    def _overwrite_pending(self, rel: int, payload: bytes) -> None:
        """Replace pending bytes from *rel* on, keeping whatever lies past *payload*."""
        tail = bytes(self._pending[rel + len(payload) :])
        self._upload_offset -= len(self._pending) - rel
        del self._pending[rel:]
        self._buffer(payload + tail)

    def _buffer(self, data: bytes) -> None:
        """Append *data* to the write path, uploading every full part."""
        self._pending += data
        self._upload_offset += len(data)
        while len(self._pending) >= self._min_part_size:
            part = bytes(self._pending[: self._min_part_size])
            if self._multipart is None:
                self._multipart = MultipartUpload(self._store, self._key)
            self._multipart.upload_part(part)
            del self._pending[: self._min_part_size]

    def _copy_forward(self, end: int) -> None:
        """Re-submit remote bytes ``[upload offset, end)`` through the write path."""
        if self._upload_offset >= end:
            return
        logger.trace(f"{self.name}: copying remote bytes {self._upload_offset}..{end}")
        stream = self._store.get(self._key)
        try:
            if self._discard(stream, self._upload_offset) < self._upload_offset:
                msg = f"{self.name}: object shorter than {self._upload_offset} bytes"
                raise EndOfStreamError(msg)
            while self._upload_offset < end:
                want = min(self._min_part_size, end - self._upload_offset)
                chunk = stream.read(want)
                if not chunk:
                    msg = f"{self.name}: object ended before byte {end}"
                    raise EndOfStreamError(msg)
                self._buffer(chunk)
        finally:
            stream.close()

    def _remote_size(self) -> int:
        try:
            return self._store.head(self._key).size
        except NotExistError:
            return 0

    def _logical_size(self) -> int:
        """Size the file would have if it were synced now."""
        remote = 0 if self._truncated else self._remote_size()
        return max(remote, self._upload_offset)

    # ------------------------------------------------------------------
    # Sync / close
    # ------------------------------------------------------------------

    def sync(self) -> None:
        """Persist everything written so far as the new object content.

        The handle stays open and keeps its position.
        """
        with self._lock:
            self._check_open()
            self._check_writable()
            if self._dirty:
                self._sync_locked()

    def close(self) -> None:
        """Finalize pending writes (as :meth:`sync` does) and release the handle.

        The handle is closed even when finalization fails; the error is
        still raised.
        """
        with self._lock:
            self._check_open()
            try:
                if self._mode.writable and self._dirty:
                    self._sync_locked()
            finally:
                self._drop_stream()
                self._abort_write_session()
                self._closed = True

    def abort(self) -> None:
        """Close the handle without persisting anything not yet synced.

        An active multipart upload is aborted on the server.
        """
        with self._lock:
            self._check_open()
            self._drop_stream()
            self._abort_write_session()
            self._closed = True

    def _sync_locked(self) -> None:
        try:
            self._finalize()
        except Exception:
            self._abort_write_session()
            raise

    def _finalize(self) -> None:
        if not self._truncated:
            self._copy_forward(self._remote_size())
        body = bytes(self._pending)
        if self._multipart is not None:
            if body:
                self._multipart.upload_part(body)
            self._multipart.complete()
        else:
            self._store.put(self._key, body, guess_content_type(self._key))
        logger.debug(f"{self.name}: synced {self._upload_offset} bytes")
        self._reset_write_session()
        self._drop_stream()

    def _abort_write_session(self) -> None:
        if self._multipart is not None:
            self._multipart.abort()
        self._reset_write_session()

    def _reset_write_session(self) -> None:
        self._pending = bytearray()
        self._upload_offset = 0
        self._multipart = None
        self._truncated = False
        self._dirty = False

    # ------------------------------------------------------------------
    # Directory listing
    # ------------------------------------------------------------------

    def readdir(self, limit: int = 0) -> list[FileInfo]:
        """List objects whose key starts with this handle's key.

        Stops after *limit* entries when *limit* is positive; otherwise pages
        through the whole listing.
        """
        with self._lock:
            self._check_open()
            entries: list[FileInfo] = []
            for info in self._store.list_prefix(self._key):
                name = strip_s3_prefix(self._root, info.name)
                entries.append(info.model_copy(update={"name": name}))
                if 0 < limit <= len(entries):
                    break
            return entries

    def readdirnames(self, limit: int = 0) -> list[str]:
        """Names of the entries :meth:`readdir` would return."""
        return [info.name for info in self.readdir(limit)]

    # ------------------------------------------------------------------
    # Mode checks
    # ------------------------------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            msg = f"{self.name}: file already closed"
            raise ClosedError(msg)

    def _check_readable(self) -> None:
        if not self._mode.readable:
            msg = f"{self.name}: file not opened for reading"
            raise WriteOnlyError(msg)

    def _check_writable(self) -> None:
        if not self._mode.writable:
            msg = f"{self.name}: file not opened for writing"
            raise ReadOnlyError(msg)


def _read_full(stream: ObjectStream, size: int) -> bytes:
    """Read *size* bytes, fewer only at end of stream."""
    chunks: list[bytes] = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            break
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)
