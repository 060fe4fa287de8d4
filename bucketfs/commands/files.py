"""Implementation of the file commands: ``ls``, ``stat``, ``cat``, ``put``,
``get``, ``rm`` and ``mv``.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from loguru import logger
from tqdm import tqdm

from bucketfs.commands._helpers import open_fs

if TYPE_CHECKING:
    import argparse

    from bucketfs.file import S3File


def run_ls(args: argparse.Namespace) -> None:
    """List objects under a path."""
    fs = open_fs(args)
    entries = fs.listdir(args.path, limit=args.limit)
    if not entries:
        logger.info(f"{fs.name}/{args.path}: no objects")
        return
    for info in entries:
        logger.info(info.format_display())


def run_stat(args: argparse.Namespace) -> None:
    """Show size and modification time of one object."""
    fs = open_fs(args)
    info = fs.stat(args.path)
    logger.info(
        f"{info.name}: size={info.size}, "
        f"modified={info.mod_time.isoformat()}, dir={info.is_dir}"
    )


def run_cat(args: argparse.Namespace) -> None:
    """Stream one object to stdout."""
    fs = open_fs(args)
    with fs.open(args.path) as src:
        _copy_stream(src, sys.stdout.buffer, fs.min_part_size)
    sys.stdout.buffer.flush()


def run_put(args: argparse.Namespace) -> None:
    """Upload a local file through a write handle."""
    fs = open_fs(args)
    local = Path(args.local)
    if not local.is_file():
        sys.exit(f"Error: local file not found: {local}")
    total = local.stat().st_size
    with (
        local.open("rb") as src,
        fs.open(args.path, "w") as dst,
        _progress(total, local.name) as bar,
    ):
        for chunk in iter(lambda: src.read(fs.min_part_size), b""):
            dst.write(chunk)
            bar.update(len(chunk))
    logger.info(f"Uploaded {local} -> {fs.name}/{args.path} ({total} bytes)")


def run_get(args: argparse.Namespace) -> None:
    """Download one object to a local file."""
    fs = open_fs(args)
    local = Path(args.local)
    total = fs.stat(args.path).size
    local.parent.mkdir(parents=True, exist_ok=True)
    with (
        fs.open(args.path) as src,
        local.open("wb") as dst,
        _progress(total, local.name) as bar,
    ):
        _copy_stream(src, dst, fs.min_part_size, progress=bar)
    logger.info(f"Downloaded {fs.name}/{args.path} -> {local} ({total} bytes)")


def run_rm(args: argparse.Namespace) -> None:
    """Delete one object, or everything under a prefix with ``--recursive``."""
    fs = open_fs(args)
    if args.recursive:
        count = fs.remove_all(args.path)
        logger.info(f"Removed {count} object(s) under {fs.name}/{args.path}")
        return
    fs.remove(args.path)
    logger.info(f"Removed {fs.name}/{args.path}")


def run_mv(args: argparse.Namespace) -> None:
    """Rename one object (copy, then delete the source)."""
    fs = open_fs(args)
    fs.rename(args.old, args.new)
    logger.info(f"Moved {fs.name}/{args.old} -> {args.new}")


def _copy_stream(
    src: S3File,
    dst: BinaryIO,
    chunk_size: int,
    *,
    progress: tqdm | None = None,
) -> None:
    """Copy *src* to *dst* in *chunk_size* reads."""
    while True:
        chunk = src.read(chunk_size)
        if not chunk:
            break
        dst.write(chunk)
        if progress is not None:
            progress.update(len(chunk))


def _progress(total: int, desc: str) -> tqdm:
    """Byte-count progress bar that disappears when done."""
    return tqdm(total=total, unit="B", unit_scale=True, desc=desc, leave=False)
