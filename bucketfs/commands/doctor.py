"""``bucketfs doctor``: verify settings, credentials and bucket reachability.

Each check logs what it found and returns ``True`` on success, so the
checks can also be called on their own.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import boto3
import botocore.exceptions
from loguru import logger

from bucketfs.commands._helpers import load_config
from bucketfs.config import DEFAULT_MIN_PART_SIZE, get_config_path
from bucketfs.s3_utils import make_s3_client

if TYPE_CHECKING:
    import argparse

    from bucketfs.config import S3FsConfig


def run_doctor(args: argparse.Namespace) -> None:
    """Run the checks in order; bucket access is only probed when the rest pass."""
    cfg = load_config(args)
    results = [check_config(cfg), check_aws_credentials()]
    if all(results):
        results.append(check_bucket_access(cfg))

    if all(results):
        logger.info("doctor: all checks passed, bucketfs is ready to use")
    else:
        failed = results.count(False)
        logger.warning(
            f"doctor: some checks failed ({failed}), see the errors above"
        )


# ------------------------------------------------------------------
# Settings
# ------------------------------------------------------------------


def check_config(cfg: S3FsConfig) -> bool:
    """Report where settings come from and validate the merged result."""
    logger.info("doctor: settings")

    path = get_config_path()
    source = "found" if path.is_file() else "absent, using environment only"
    logger.info(f"  config file {path} ({source})")

    if not cfg.bucket:
        logger.error(
            "  no bucket configured: pass --bucket, set BUCKETFS_BUCKET "
            "or add s3.bucket to the config file"
        )
        return False

    if cfg.min_part_size < DEFAULT_MIN_PART_SIZE:
        logger.warning(
            f"  min_part_size={cfg.min_part_size} is below the S3 minimum of "
            f"{DEFAULT_MIN_PART_SIZE} bytes; S3 will reject multipart uploads"
        )

    target = f"s3://{cfg.bucket}/{cfg.prefix}".rstrip("/")
    endpoint = cfg.endpoint_url or "AWS"
    logger.info(f"  target {target} via {endpoint}")
    return True


# ------------------------------------------------------------------
# Credentials
# ------------------------------------------------------------------


def check_aws_credentials() -> bool:
    """Ask boto3's default credential chain for a usable access key."""
    logger.info("doctor: credentials")

    session = boto3.Session()
    credentials = session.get_credentials()
    access_key = (
        credentials.get_frozen_credentials().access_key if credentials else None
    )
    if not access_key:
        logger.error(
            "  boto3 resolved no access key; set AWS_ACCESS_KEY_ID and "
            "AWS_SECRET_ACCESS_KEY, use ~/.aws/credentials, or attach an IAM role"
        )
        return False

    masked = f"{access_key[:4]}...{access_key[-4:]}"
    logger.info(
        f"  access key {masked} "
        f"(profile {session.profile_name or 'default'}, "
        f"region {session.region_name or 'unset'})"
    )
    return True


# ------------------------------------------------------------------
# Bucket access
# ------------------------------------------------------------------


def check_bucket_access(cfg: S3FsConfig) -> bool:
    """HEAD the configured bucket with the client bucketfs itself would use."""
    logger.info(f"doctor: bucket {cfg.bucket}")
    client = make_s3_client(cfg)
    try:
        client.head_bucket(Bucket=cfg.bucket)
    except botocore.exceptions.ClientError as e:
        code = e.response.get("Error", {}).get("Code", "?")
        logger.error(f"  bucket {cfg.bucket!r} is not accessible (code {code})")
        return False
    except botocore.exceptions.BotoCoreError as e:
        logger.error(f"  request to bucket {cfg.bucket!r} failed: {e}")
        return False
    logger.info(f"  bucket {cfg.bucket!r} is reachable")
    return True
