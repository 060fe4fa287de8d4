"""Object store adapter: the narrow set of S3 calls bucketfs is built on.

:class:`ObjectStore` binds a boto3 S3 client to one bucket and exposes
exactly the operations a file handle needs: whole-object GET, HEAD, PUT,
the multipart upload protocol, delete, copy and prefix listing.  "Not found"
responses become :class:`~bucketfs.exceptions.NotExistError`; every other
client error is passed through untouched.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Protocol

from botocore.exceptions import ClientError
from loguru import logger

from bucketfs.exceptions import NotExistError
from bucketfs.models import FileInfo, ObjectHead
from bucketfs.s3_utils import iter_s3_objects, s3_retry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from bucketfs.s3_types import S3Client

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class ObjectStream(Protocol):
    """Forward-only body of a GET response (``botocore`` ``StreamingBody``)."""

    def read(self, amt: int | None = None) -> bytes:
        """Read up to *amt* bytes; ``b""`` at end of stream."""
        ...

    def close(self) -> None:
        """Release the underlying connection."""
        ...


def is_not_found(error: ClientError) -> bool:
    """Return True when *error* is the store's "no such key" response."""
    code = str(error.response.get("Error", {}).get("Code", ""))
    return code in _NOT_FOUND_CODES


def _as_utc(value: object) -> datetime:
    """Normalize a ``LastModified`` value to an aware UTC datetime."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return datetime.fromtimestamp(0, tz=timezone.utc)


class ObjectStore:
    """Operations on the objects of one bucket."""

    def __init__(self, s3_client: S3Client, bucket: str) -> None:
        """Bind *s3_client* to *bucket*."""
        self._client = s3_client
        self._bucket = bucket

    @property
    def bucket(self) -> str:
        """Name of the bucket this store operates on."""
        return self._bucket

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @s3_retry
    def get(self, key: str) -> ObjectStream:
        """Open a stream over the whole current content of *key*."""
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            if is_not_found(e):
                raise NotExistError(f"s3://{self._bucket}/{key}") from e
            raise
        logger.trace(f"GET s3://{self._bucket}/{key}")
        body: ObjectStream = resp["Body"]
        return body

    @s3_retry
    def head(self, key: str) -> ObjectHead:
        """Return size and modification time of *key*."""
        try:
            resp = self._client.head_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            if is_not_found(e):
                raise NotExistError(f"s3://{self._bucket}/{key}") from e
            raise
        return ObjectHead(
            key=key,
            size=int(resp.get("ContentLength", 0)),
            mod_time=_as_utc(resp.get("LastModified")),
            content_type=str(resp.get("ContentType", "")),
            etag=str(resp.get("ETag", "")),
        )

    def exists(self, key: str) -> bool:
        """Return True if *key* exists, False otherwise."""
        try:
            self.head(key)
        except NotExistError:
            return False
        return True

    def list_prefix(self, prefix: str) -> Iterator[FileInfo]:
        """Yield a :class:`FileInfo` for every key starting with *prefix*."""
        for obj in iter_s3_objects(self._client, self._bucket, prefix):
            yield FileInfo(
                name=str(obj["Key"]),
                size=int(obj.get("Size", 0)),
                mod_time=_as_utc(obj.get("LastModified")),
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put(self, key: str, data: bytes, content_type: str) -> None:
        """Replace *key* with *data* in a single request."""
        self._client.put_object(
            Bucket=self._bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        logger.trace(f"PUT s3://{self._bucket}/{key} ({len(data)} bytes)")

    def create_multipart(self, key: str, content_type: str) -> str:
        """Start a multipart upload for *key* and return its upload id."""
        resp: dict[str, Any] = self._client.create_multipart_upload(
            Bucket=self._bucket,
            Key=key,
            ContentType=content_type,
        )
        return str(resp["UploadId"])

    def upload_part(
        self,
        key: str,
        upload_id: str,
        part_number: int,
        data: bytes,
    ) -> str:
        """Upload part *part_number* and return its ETag."""
        resp: dict[str, Any] = self._client.upload_part(
            Bucket=self._bucket,
            Key=key,
            UploadId=upload_id,
            PartNumber=part_number,
            Body=data,
            ContentLength=len(data),
        )
        return str(resp["ETag"])

    def complete_multipart(
        self,
        key: str,
        upload_id: str,
        parts: list[tuple[int, str]],
    ) -> None:
        """Assemble *parts* (``(part_number, etag)`` in ascending order)."""
        self._client.complete_multipart_upload(
            Bucket=self._bucket,
            Key=key,
            UploadId=upload_id,
            MultipartUpload={
                "Parts": [{"ETag": etag, "PartNumber": num} for num, etag in parts]
            },
        )

    def abort_multipart(self, key: str, upload_id: str) -> None:
        """Discard the multipart upload *upload_id* and its stored parts."""
        self._client.abort_multipart_upload(
            Bucket=self._bucket,
            Key=key,
            UploadId=upload_id,
        )

    def delete(self, key: str) -> None:
        """Delete *key* (succeeds even when the key is already gone)."""
        self._client.delete_object(Bucket=self._bucket, Key=key)
        logger.trace(f"DELETE s3://{self._bucket}/{key}")

    def copy(self, src_key: str, dst_key: str) -> None:
        """Server-side copy of *src_key* to *dst_key* within the bucket."""
        try:
            self._client.copy_object(
                Bucket=self._bucket,
                Key=dst_key,
                CopySource={"Bucket": self._bucket, "Key": src_key},
            )
        except ClientError as e:
            if is_not_found(e):
                raise NotExistError(f"s3://{self._bucket}/{src_key}") from e
            raise
