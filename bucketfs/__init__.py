"""bucketfs -- random-access file handles over S3 objects."""

from bucketfs.config import DEFAULT_MIN_PART_SIZE, S3FsConfig
from bucketfs.exceptions import (
    AppendOnlyError,
    BucketFsError,
    ClosedError,
    EndOfStreamError,
    ExistError,
    InvalidModeError,
    NotExistError,
    ReadOnlyError,
    WriteOnlyError,
)
from bucketfs.file import S3File
from bucketfs.fs import S3Fs
from bucketfs.models import FileInfo, OpenMode
from bucketfs.multipart import MultipartUpload, UploadState
from bucketfs.store import ObjectStore

__all__ = [
    "DEFAULT_MIN_PART_SIZE",
    "AppendOnlyError",
    "BucketFsError",
    "ClosedError",
    "EndOfStreamError",
    "ExistError",
    "FileInfo",
    "InvalidModeError",
    "MultipartUpload",
    "NotExistError",
    "ObjectStore",
    "OpenMode",
    "ReadOnlyError",
    "S3File",
    "S3Fs",
    "S3FsConfig",
    "UploadState",
    "WriteOnlyError",
]
