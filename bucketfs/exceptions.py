"""Custom exception hierarchy for bucketfs.

All library-specific exceptions inherit from ``BucketFsError`` so consumers
can catch ``except BucketFsError`` to handle any bucketfs failure.  Each one
also derives from the closest builtin, so ``except FileNotFoundError`` and
friends keep working for code written against local files.

Errors raised by the S3 client itself (``botocore.exceptions.ClientError``
and ``BotoCoreError``) are never wrapped; only "not found" responses are
translated to :class:`NotExistError`.
"""

import io


class BucketFsError(Exception):
    """Base exception for all bucketfs errors."""


class NotExistError(BucketFsError, FileNotFoundError):
    """Raised when an object is required but absent from the bucket."""


class ExistError(BucketFsError, FileExistsError):
    """Raised when an object exists but exclusive creation was requested."""


class ClosedError(BucketFsError, ValueError):
    """Raised on any operation against a closed file handle."""


class ReadOnlyError(BucketFsError, io.UnsupportedOperation):
    """Raised when a write-side operation hits a handle opened without write."""


class WriteOnlyError(BucketFsError, io.UnsupportedOperation):
    """Raised when reading from a handle opened without read."""


class AppendOnlyError(BucketFsError, io.UnsupportedOperation):
    """Raised when truncating a handle opened in append mode."""


class EndOfStreamError(BucketFsError, EOFError):
    """Raised when a seek target lies outside ``[0, size]``.

    Also raised when the remote object turns out shorter than the bytes a
    copy-forward needs (the object changed underneath the handle).
    """


class InvalidModeError(BucketFsError, ValueError):
    """Raised for a malformed mode string or an inconsistent flag set."""

    def __init__(self, mode: object, reason: str) -> None:
        """Initialize with the offending mode and a short explanation."""
        self.mode = mode
        super().__init__(f"invalid open mode {mode!r}: {reason}")
