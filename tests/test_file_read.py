"""Read-path tests for S3File: streaming reads, seeking and listing."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from bucketfs.exceptions import (
    ClosedError,
    EndOfStreamError,
    NotExistError,
    WriteOnlyError,
)
from bucketfs.fs import S3Fs
from tests.conftest import BUCKET, PART_SIZE, pattern

if TYPE_CHECKING:
    from tests.fixtures.fake_s3 import FakeS3Client

DATA = pattern(30)


@pytest.fixture
def seeded(fake_s3: FakeS3Client) -> FakeS3Client:
    fake_s3.seed("data.bin", DATA)
    return fake_s3


# ---------------------------------------------------------------------------
# Sequential reads
# ---------------------------------------------------------------------------


def test_read_all(fs: S3Fs, seeded: FakeS3Client) -> None:
    with fs.open("data.bin") as f:
        assert f.read() == DATA
        assert f.tell() == len(DATA)
        assert f.read() == b""


def test_read_in_chunks(fs: S3Fs, seeded: FakeS3Client) -> None:
    with fs.open("data.bin") as f:
        chunks = [f.read(7) for _ in range(5)]
    assert chunks[:4] == [DATA[0:7], DATA[7:14], DATA[14:21], DATA[21:28]]
    assert chunks[4] == DATA[28:]
    assert seeded.count("get_object") == 1


def test_readinto(fs: S3Fs, seeded: FakeS3Client) -> None:
    buf = bytearray(10)
    with fs.open("data.bin") as f:
        assert f.readinto(buf) == 10
        assert bytes(buf) == DATA[:10]
        f.seek(25)
        assert f.readinto(buf) == 5
        assert bytes(buf[:5]) == DATA[25:]


def test_read_at_moves_position(fs: S3Fs, seeded: FakeS3Client) -> None:
    with fs.open("data.bin") as f:
        assert f.read_at(4, 10) == DATA[10:14]
        assert f.tell() == 14
        assert f.read_at(4, 2) == DATA[2:6]
        assert f.read_at(10, 28) == DATA[28:]


def test_read_sees_synced_content_only(fs: S3Fs, seeded: FakeS3Client) -> None:
    with fs.open("data.bin", "r+") as f:
        f.write(b"XYZ")
        assert f.read_at(3, 0) == DATA[:3]
        f.sync()
        assert f.read_at(3, 0) == b"XYZ"


def test_read_before_first_sync_of_new_object(
    fs: S3Fs, fake_s3: FakeS3Client
) -> None:
    with fs.open("fresh.bin", "w+") as f:
        assert f.read() == b""
        f.write(b"abc")
        assert f.read() == b""
        assert f.tell() == 3
        f.sync()
        assert f.read_at(3, 0) == b"abc"
    assert fake_s3.content("fresh.bin") == b"abc"


def test_read_of_object_deleted_underneath(
    fs: S3Fs, seeded: FakeS3Client
) -> None:
    with fs.open("data.bin") as f:
        del seeded.objects["data.bin"]
        with pytest.raises(NotExistError):
            f.read()


# ---------------------------------------------------------------------------
# Seeking
# ---------------------------------------------------------------------------


def test_forward_seek_reuses_stream(fs: S3Fs, seeded: FakeS3Client) -> None:
    with fs.open("data.bin") as f:
        f.read(2)
        f.seek(20)
        assert f.read(3) == DATA[20:23]
    assert seeded.count("get_object") == 1


def test_backward_seek_reopens_stream(fs: S3Fs, seeded: FakeS3Client) -> None:
    with fs.open("data.bin") as f:
        f.read(12)
        f.seek(0)
        assert f.read(3) == DATA[:3]
    assert seeded.count("get_object") == 2


def test_seek_whence(fs: S3Fs, seeded: FakeS3Client) -> None:
    with fs.open("data.bin") as f:
        assert f.seek(5) == 5
        assert f.seek(3, os.SEEK_CUR) == 8
        assert f.seek(-4, os.SEEK_END) == 26
        assert f.read() == DATA[26:]
        assert f.seek(0, os.SEEK_END) == len(DATA)
        assert f.read(1) == b""


@pytest.mark.parametrize(
    ("offset", "whence"),
    [(31, os.SEEK_SET), (-1, os.SEEK_SET), (1, os.SEEK_END), (-40, os.SEEK_END)],
)
def test_seek_out_of_range_keeps_position(
    fs: S3Fs, seeded: FakeS3Client, offset: int, whence: int
) -> None:
    with fs.open("data.bin") as f:
        f.seek(7)
        with pytest.raises(EndOfStreamError):
            f.seek(offset, whence)
        assert f.tell() == 7


def test_seek_invalid_whence(fs: S3Fs, seeded: FakeS3Client) -> None:
    with fs.open("data.bin") as f, pytest.raises(ValueError, match="whence"):
        f.seek(0, 7)


def test_large_forward_seek_discards_in_bounded_reads(
    fs: S3Fs, fake_s3: FakeS3Client
) -> None:
    data = pattern(10 * PART_SIZE)
    fake_s3.seed("big.bin", data)
    target = 9 * PART_SIZE + 1
    with fs.open("big.bin") as f:
        f.seek(target)
        assert f.read(2) == data[target : target + 2]
    (body,) = fake_s3.bodies
    assert all(size is not None and size <= PART_SIZE for size in body.read_sizes)


# ---------------------------------------------------------------------------
# Mode and lifecycle errors
# ---------------------------------------------------------------------------


def test_read_on_write_only_handle(fs: S3Fs, seeded: FakeS3Client) -> None:
    f = fs.open_file("data.bin", os.O_WRONLY)
    with pytest.raises(WriteOnlyError):
        f.read()
    with pytest.raises(WriteOnlyError):
        f.read_at(1, 0)
    f.close()


def test_closed_handle_rejects_everything(fs: S3Fs, seeded: FakeS3Client) -> None:
    f = fs.open("data.bin")
    f.close()
    assert f.closed
    for op in (f.read, f.tell, f.stat, f.close):
        with pytest.raises(ClosedError):
            op()
    with pytest.raises(ClosedError):
        f.seek(0)


def test_handle_introspection(fs: S3Fs, seeded: FakeS3Client) -> None:
    with fs.open("data.bin") as f:
        assert f.readable()
        assert not f.writable()
        assert f.seekable()
        assert f.name == "data.bin"
        assert "data.bin" in repr(f)
        info = f.stat()
    assert info.name == "data.bin"
    assert info.size == len(DATA)


def test_handle_name_is_relative_to_prefix(fake_s3: FakeS3Client) -> None:
    fake_s3.seed("root/nested/a.txt", b"a")
    fs = S3Fs(fake_s3, BUCKET, prefix="root", min_part_size=PART_SIZE)
    with fs.open("/nested/a.txt") as f:
        assert f.key == "root/nested/a.txt"
        assert f.name == "nested/a.txt"
        assert f.read() == b"a"


# ---------------------------------------------------------------------------
# Directory listing
# ---------------------------------------------------------------------------


def test_readdir_lists_prefix(fs: S3Fs, fake_s3: FakeS3Client) -> None:
    for name in ("dir/a", "dir/b", "dir/sub/c", "other/d"):
        fake_s3.seed(name, b"xx")
    with fs.open("dir/") as d:
        names = d.readdirnames()
    assert names == ["dir/a", "dir/b", "dir/sub/c"]


def test_readdir_limit_stops_paging(fs: S3Fs, fake_s3: FakeS3Client) -> None:
    for i in range(7):
        fake_s3.seed(f"dir/{i}", b"x")
    with fs.open("dir/") as d:
        entries = d.readdir(3)
    assert [e.name for e in entries] == ["dir/0", "dir/1", "dir/2"]
    # page_size=2: the limit is reached on the second page
    assert fake_s3.count("list_objects_v2") == 2


def test_readdir_strips_root_prefix(fake_s3: FakeS3Client) -> None:
    fake_s3.seed("root/dir/a", b"abc")
    fake_s3.seed("rootless/x", b"x")
    fs = S3Fs(fake_s3, BUCKET, prefix="root", min_part_size=PART_SIZE)
    with fs.open("dir/") as d:
        entries = d.readdir()
    assert [(e.name, e.size) for e in entries] == [("dir/a", 3)]
