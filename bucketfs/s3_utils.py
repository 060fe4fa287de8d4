"""Shared S3 utilities used by the object store adapter and the CLI."""

from __future__ import annotations

import mimetypes
from typing import TYPE_CHECKING, Any

import boto3
import botocore.exceptions
from tenacity import (
    retry,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from bucketfs.exceptions import BucketFsError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from bucketfs.config import S3FsConfig
    from bucketfs.s3_types import S3Client

DEFAULT_CONTENT_TYPE = "application/octet-stream"

s3_retry = retry(
    retry=retry_if_exception_type(
        (OSError, ConnectionError, botocore.exceptions.ConnectionError)
    )
    & retry_if_not_exception_type(BucketFsError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    reraise=True,
)
"""Retry policy for idempotent S3 reads (GET, HEAD, LIST) on transport errors.

``NotExistError`` is an ``OSError`` too, but it is an answer from the store,
so bucketfs errors are never retried.
"""


def build_s3_key(prefix: str, path: str) -> str:
    """Map a filesystem *path* to the object key under *prefix*.

    Leading slashes are dropped (keys are never absolute); a trailing slash
    is kept because it marks a directory key.  An empty *prefix* maps the
    path as-is.
    """
    rel = path.lstrip("/")
    root = prefix.strip("/")
    if not root:
        return rel
    return f"{root}/{rel}"


def strip_s3_prefix(prefix: str, key: str) -> str:
    """Inverse of :func:`build_s3_key`: the path of *key* relative to *prefix*."""
    root = prefix.strip("/")
    if not root:
        return key
    if key == root:
        return ""
    if key.startswith(f"{root}/"):
        return key[len(root) + 1 :]
    return key


@s3_retry
def _list_page(s3_client: S3Client, kwargs: dict[str, str]) -> dict[str, Any]:
    """Fetch one ``list_objects_v2`` page."""
    return s3_client.list_objects_v2(**kwargs)


def iter_s3_objects(
    s3_client: S3Client,
    bucket: str,
    prefix: str,
) -> Iterator[dict[str, Any]]:
    """Yield every ``Contents`` entry under *prefix*, page by page.

    Pagination continues while the response is truncated and stops as soon
    as the caller stops iterating, so bounded listings only fetch the pages
    they need.
    """
    kwargs: dict[str, str] = {"Bucket": bucket}
    if prefix:
        kwargs["Prefix"] = prefix
    while True:
        resp = _list_page(s3_client, kwargs)
        yield from resp.get("Contents", [])
        token = resp.get("NextContinuationToken")
        if not resp.get("IsTruncated") or not token:
            break
        kwargs["ContinuationToken"] = token


def guess_content_type(key: str) -> str:
    """Content type for *key* based on its extension."""
    content_type, _ = mimetypes.guess_type(key)
    return content_type or DEFAULT_CONTENT_TYPE


def make_s3_client(config: S3FsConfig) -> S3Client:
    """Create a boto3 S3 client from bucketfs settings."""
    client: S3Client = boto3.Session().client(
        "s3",
        endpoint_url=config.endpoint_url or None,
        region_name=config.region_name or None,
    )
    return client
