"""End-to-end tests of S3Fs against moto's in-process S3.

Uses the real S3 part size so moto enforces the multipart minimum.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import boto3
import pytest
from moto import mock_aws

from bucketfs.config import DEFAULT_MIN_PART_SIZE, S3FsConfig
from bucketfs.exceptions import NotExistError
from bucketfs.fs import S3Fs

if TYPE_CHECKING:
    from collections.abc import Iterator

MOTO_BUCKET = "bucketfs-it"
MIB = 1024 * 1024


def _payload(size: int) -> bytes:
    block = bytes(range(256))
    return (block * (size // len(block) + 1))[:size]


@pytest.fixture
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set fake AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.delenv("AWS_PROFILE", raising=False)


@pytest.fixture
def moto_fs(aws_credentials: None) -> Iterator[S3Fs]:  # noqa: ARG001
    """S3Fs over a fresh moto bucket, built the way the CLI builds it."""
    with mock_aws():
        boto3.client("s3", region_name="us-east-1").create_bucket(Bucket=MOTO_BUCKET)
        cfg = S3FsConfig(bucket=MOTO_BUCKET, prefix="it", region_name="us-east-1")
        yield S3Fs.from_config(cfg)


def test_small_round_trip(moto_fs: S3Fs) -> None:
    with moto_fs.open("hello.txt", "w") as f:
        f.write_string("hello, bucket")
    with moto_fs.open("hello.txt") as f:
        assert f.read() == b"hello, bucket"
    info = moto_fs.stat("hello.txt")
    assert info.size == 13


def test_multipart_write_and_random_access(moto_fs: S3Fs) -> None:
    data = _payload(2 * DEFAULT_MIN_PART_SIZE + MIB)
    with moto_fs.open("big.bin", "w") as f:
        f.write(data)
    assert moto_fs.stat("big.bin").size == len(data)

    offset = DEFAULT_MIN_PART_SIZE + 123
    with moto_fs.open("big.bin", "r+") as f:
        f.write_at(b"PATCH", offset)
    expected = data[:offset] + b"PATCH" + data[offset + 5 :]

    with moto_fs.open("big.bin") as f:
        assert f.read_at(10, offset - 2) == expected[offset - 2 : offset + 8]
        f.seek(0)
        assert f.read() == expected


def test_truncate_and_append(moto_fs: S3Fs) -> None:
    with moto_fs.open("log.txt", "w") as f:
        f.write(b"0123456789")
    with moto_fs.open("log.txt", "r+") as f:
        f.truncate(4)
    with moto_fs.open("log.txt", "a") as f:
        f.write(b"-end")
    with moto_fs.open("log.txt") as f:
        assert f.read() == b"0123-end"


def test_listing_rename_and_remove(moto_fs: S3Fs) -> None:
    for name in ("d/a", "d/b", "d/sub/c"):
        with moto_fs.open(name, "w") as f:
            f.write(name.encode())

    assert [i.name for i in moto_fs.listdir("d/")] == ["d/a", "d/b", "d/sub/c"]

    moto_fs.rename("d/a", "e/a")
    assert not moto_fs.exists("d/a")
    with moto_fs.open("e/a") as f:
        assert f.read() == b"d/a"

    assert moto_fs.remove_all("d/") == 2
    assert moto_fs.listdir("d/") == []


def test_missing_objects(moto_fs: S3Fs) -> None:
    with pytest.raises(NotExistError):
        moto_fs.open("nope")
    with pytest.raises(NotExistError):
        moto_fs.stat("nope")
    with pytest.raises(NotExistError):
        moto_fs.remove("nope")
    with pytest.raises(NotExistError):
        moto_fs.rename("nope", "other")
