"""Type definitions for S3 client interfaces."""

from __future__ import annotations

from typing import Any, Protocol


class S3Client(Protocol):
    """Structural protocol for a boto3 S3 client (subset used by bucketfs)."""

    def get_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:  # noqa: N803
        """Retrieve an object from S3."""
        ...

    def head_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:  # noqa: N803
        """Retrieve object metadata without the body."""
        ...

    def put_object(self, **kwargs: Any) -> dict[str, Any]:  # noqa: ANN401
        """Put an object to S3."""
        ...

    def create_multipart_upload(self, **kwargs: Any) -> dict[str, Any]:  # noqa: ANN401
        """Start a multipart upload and return its ``UploadId``."""
        ...

    def upload_part(self, **kwargs: Any) -> dict[str, Any]:  # noqa: ANN401
        """Upload one numbered part and return its ``ETag``."""
        ...

    def complete_multipart_upload(self, **kwargs: Any) -> dict[str, Any]:  # noqa: ANN401
        """Assemble the uploaded parts into the final object."""
        ...

    def abort_multipart_upload(self, **kwargs: Any) -> dict[str, Any]:  # noqa: ANN401
        """Discard a multipart upload and its parts."""
        ...

    def delete_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:  # noqa: N803
        """Delete an object."""
        ...

    def copy_object(self, **kwargs: Any) -> dict[str, Any]:  # noqa: ANN401
        """Server-side copy of an object."""
        ...

    def list_objects_v2(self, **kwargs: Any) -> dict[str, Any]:  # noqa: ANN401
        """List objects in a bucket."""
        ...

    def head_bucket(self, *, Bucket: str) -> dict[str, Any]:  # noqa: N803
        """Check that a bucket exists and is accessible."""
        ...
