"""Shared pytest fixtures for bucketfs tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import yaml
from loguru import logger

from bucketfs.fs import S3Fs
from bucketfs.store import ObjectStore
from tests.fixtures.fake_s3 import FakeS3Client

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

BUCKET = "test-bucket"
PART_SIZE = 8
"""Tiny part size so multipart paths run with a few bytes of data."""

_ENV_VARS = (
    "BUCKETFS_BUCKET",
    "BUCKETFS_PREFIX",
    "BUCKETFS_ENDPOINT_URL",
    "BUCKETFS_REGION",
    "BUCKETFS_MIN_PART_SIZE",
    "BUCKETFS_CONFIG",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's bucketfs environment out of every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_s3() -> FakeS3Client:
    """Empty fake bucket enforcing the multipart minimum part size."""
    return FakeS3Client(BUCKET, page_size=2, min_part_size=PART_SIZE)


@pytest.fixture
def store(fake_s3: FakeS3Client) -> ObjectStore:
    return ObjectStore(fake_s3, BUCKET)


@pytest.fixture
def fs(fake_s3: FakeS3Client) -> S3Fs:
    """Filesystem over the fake bucket with an 8-byte part size."""
    return S3Fs(fake_s3, BUCKET, min_part_size=PART_SIZE)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def write_test_config(path: Path, **s3: object) -> None:
    """Write a config YAML with the given ``s3`` section values."""
    path.write_text(yaml.safe_dump({"s3": s3}), encoding="utf-8")


def pattern(size: int) -> bytes:
    """Deterministic, non-repeating-per-part test payload of *size* bytes."""
    return bytes(i % 251 for i in range(size))


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Collect loguru messages (INFO and above) emitted during a test."""
    messages: list[str] = []
    handler_id = logger.add(
        lambda msg: messages.append(msg.record["message"]), level="INFO"
    )
    yield messages
    logger.remove(handler_id)
