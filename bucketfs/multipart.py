"""Multipart upload session scoped to one handle's write session.

State machine::

    NO_UPLOAD --first part--> ACTIVE --complete()--> COMPLETED
        |                       |
        +-------abort()---------+-----------------> ABORTED

A failing ``upload_part`` or ``complete`` call aborts the session on the
server before the original error propagates, so no orphaned uploads are
left behind.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from bucketfs.s3_utils import guess_content_type

if TYPE_CHECKING:
    from bucketfs.store import ObjectStore


class UploadState(enum.Enum):
    """Lifecycle of a :class:`MultipartUpload`."""

    NO_UPLOAD = "no_upload"
    ACTIVE = "active"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True, slots=True)
class CompletedPart:
    """One uploaded part: its 1-based number and the store's ETag."""

    part_number: int
    etag: str


class MultipartUpload:
    """Assemble one object from sequentially numbered parts."""

    def __init__(self, store: ObjectStore, key: str) -> None:
        """Prepare a session for *key*; nothing is sent until the first part."""
        self._store = store
        self._key = key
        self._state = UploadState.NO_UPLOAD
        self._upload_id: str | None = None
        self._parts: list[CompletedPart] = []

    @property
    def state(self) -> UploadState:
        """Current lifecycle state."""
        return self._state

    @property
    def upload_id(self) -> str | None:
        """Store-assigned id, set once the session is active."""
        return self._upload_id

    @property
    def parts(self) -> tuple[CompletedPart, ...]:
        """Completed parts in part-number order."""
        return tuple(self._parts)

    def upload_part(self, data: bytes) -> CompletedPart:
        """Send *data* as the next part, starting the session if needed."""
        if self._state is UploadState.NO_UPLOAD:
            self._start(data)
        self._require_active("upload_part")
        part_number = len(self._parts) + 1
        try:
            etag = self._store.upload_part(
                self._key, self._active_id(), part_number, data
            )
        except Exception:
            self.abort()
            raise
        part = CompletedPart(part_number=part_number, etag=etag)
        self._parts.append(part)
        logger.trace(f"{self._key}: uploaded part {part_number} ({len(data)} bytes)")
        return part

    def complete(self) -> None:
        """Commit all parts as the new content of the object."""
        self._require_active("complete")
        try:
            self._store.complete_multipart(
                self._key,
                self._active_id(),
                [(p.part_number, p.etag) for p in self._parts],
            )
        except Exception:
            self.abort()
            raise
        self._state = UploadState.COMPLETED
        logger.debug(
            f"{self._key}: multipart upload completed ({len(self._parts)} parts)"
        )

    def abort(self) -> None:
        """Release the server-side session; no-op unless the session is active.

        A failing abort is logged rather than raised: callers abort while
        handling another error, which is the one they need to see.
        """
        if self._state is not UploadState.ACTIVE:
            self._state = UploadState.ABORTED
            return
        self._state = UploadState.ABORTED
        try:
            self._store.abort_multipart(self._key, self._active_id())
        except (ClientError, BotoCoreError) as e:
            logger.warning(
                f"{self._key}: failed to abort multipart upload {self._upload_id}: {e}"
            )
            return
        logger.debug(f"{self._key}: multipart upload {self._upload_id} aborted")

    def _start(self, first_part: bytes) -> None:
        content_type = guess_content_type(self._key)
        self._upload_id = self._store.create_multipart(self._key, content_type)
        self._state = UploadState.ACTIVE
        logger.debug(
            f"{self._key}: multipart upload {self._upload_id} started "
            f"(first part {len(first_part)} bytes, {content_type})"
        )

    def _require_active(self, operation: str) -> None:
        if self._state is not UploadState.ACTIVE:
            msg = f"{operation} on a {self._state.value} multipart upload"
            raise RuntimeError(msg)

    def _active_id(self) -> str:
        if self._upload_id is None:
            msg = "active multipart upload without an upload id"
            raise RuntimeError(msg)
        return self._upload_id
