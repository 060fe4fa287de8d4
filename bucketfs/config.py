"""Configuration loading with priority: env > config file > defaults."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from loguru import logger
from pydantic import BaseModel, field_validator

DEFAULT_MIN_PART_SIZE = 5 * 1024 * 1024
"""Smallest part S3 accepts in a multipart upload (all parts but the last)."""

CONFIG_DIR = Path.home() / ".config" / "bucketfs"
CONFIG_PATH = CONFIG_DIR / "config.yaml"

_SECTION = "s3"


def get_config_path(config_path: Path | None = None) -> Path:
    """Return path to config file.

    Uses *config_path* if provided, otherwise BUCKETFS_CONFIG env var,
    otherwise default CONFIG_PATH.
    """
    if config_path is not None:
        return config_path
    path = os.environ.get("BUCKETFS_CONFIG")
    return Path(path) if path else CONFIG_PATH


def _load_raw_yaml(path: Path) -> dict[str, object]:
    """Load a YAML file and return its top-level mapping (or empty dict)."""
    if not path.is_file():
        return {}
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except yaml.YAMLError as e:
        logger.warning(f"Ignoring unreadable config {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Invalid config format in {path}; expected mapping.")
        return {}
    return data


class S3FsConfig(BaseModel):
    """Bucket location and upload tuning for :class:`bucketfs.fs.S3Fs`."""

    bucket: str = ""
    prefix: str = ""
    endpoint_url: str | None = None
    region_name: str | None = None
    min_part_size: int = DEFAULT_MIN_PART_SIZE

    @field_validator("min_part_size")
    @classmethod
    def _positive_part_size(cls, v: int) -> int:
        if v <= 0:
            msg = f"min_part_size must be positive, got {v}"
            raise ValueError(msg)
        return v

    @classmethod
    def _from_section(cls, data: dict[str, object]) -> S3FsConfig:
        """Build from a raw YAML top-level dict (reads the ``s3`` key)."""
        section = data.get(_SECTION, {})
        if not isinstance(section, dict):
            return cls()
        return cls(**{k: v for k, v in section.items() if k in cls.model_fields})

    @classmethod
    def from_file(cls, path: Path = CONFIG_PATH) -> S3FsConfig:
        """Load config from a YAML file.  Returns empty config if file is missing."""
        if not path.is_file():
            return cls()
        logger.trace(f"Loading config from {path}")
        return cls._from_section(_load_raw_yaml(path))

    @classmethod
    def from_env(cls) -> S3FsConfig:
        """Build config from environment variables.

        ``BUCKETFS_MIN_PART_SIZE`` is only applied when set, so an unset
        variable never overrides the file value.
        """
        cfg = cls(
            bucket=os.environ.get("BUCKETFS_BUCKET", ""),
            prefix=os.environ.get("BUCKETFS_PREFIX", ""),
            endpoint_url=os.environ.get("BUCKETFS_ENDPOINT_URL"),
            region_name=os.environ.get("BUCKETFS_REGION"),
        )
        part_size = os.environ.get("BUCKETFS_MIN_PART_SIZE")
        if part_size:
            cfg = cls(**{**cfg.model_dump(), "min_part_size": part_size})
        return cfg

    def merge(self, override: S3FsConfig) -> S3FsConfig:
        """Return a new config where *override* values take priority over self.

        Only non-empty / non-None values from *override* win; ``min_part_size``
        wins only when *override* explicitly set it.
        """
        min_part_size = self.min_part_size
        if "min_part_size" in override.model_fields_set:
            min_part_size = override.min_part_size
        return S3FsConfig(
            bucket=override.bucket or self.bucket,
            prefix=override.prefix or self.prefix,
            endpoint_url=override.endpoint_url or self.endpoint_url,
            region_name=override.region_name or self.region_name,
            min_part_size=min_part_size,
        )

    @classmethod
    def load(cls, config_path: Path | None = None) -> S3FsConfig:
        """Merge file and env: defaults < file < env."""
        path = get_config_path(config_path)
        file_cfg = cls.from_file(path)
        env_cfg = cls.from_env()
        return file_cfg.merge(env_cfg)
