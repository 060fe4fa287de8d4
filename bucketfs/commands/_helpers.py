"""Shared helpers for CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from bucketfs.config import S3FsConfig, get_config_path
from bucketfs.fs import S3Fs

if TYPE_CHECKING:
    import argparse


def load_config(args: argparse.Namespace) -> S3FsConfig:
    """Load config from file and env, then apply ``--bucket`` if given."""
    config_path = Path(args.config) if args.config else None
    cfg = S3FsConfig.load(config_path=config_path)
    if args.bucket:
        cfg = cfg.model_copy(update={"bucket": args.bucket})
    return cfg


def require_bucket(cfg: S3FsConfig) -> None:
    """Abort with a friendly message when no bucket is configured."""
    if cfg.bucket:
        return
    config_path = get_config_path()
    sys.exit(
        "Error: no bucket configured.\n"
        "Pass --bucket, set BUCKETFS_BUCKET, or add to the config file:\n"
        "  s3:\n    bucket: <name>\n"
        f"Config file: {config_path}"
    )


def open_fs(args: argparse.Namespace) -> S3Fs:
    """Build the filesystem for a command from config and CLI overrides."""
    cfg = load_config(args)
    require_bucket(cfg)
    return S3Fs.from_config(cfg)
