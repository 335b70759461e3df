"""Run configuration.

Values come from explicit arguments first, then environment variables:

- PROXY_MANIFEST_ON_HASH_ERROR=empty|abort
- PROXY_MANIFEST_DRY_RUN=1
- PROXY_MANIFEST_BACKUP=1
- PROXY_MANIFEST_LOG_LEVEL=DEBUG|INFO|... (read by the CLI)
- PROXY_MANIFEST_TQDM=0|1 (read by common.progress)
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePath
from typing import Optional

from proxy_manifest.errors import UsageError

BUNDLE_FOLDER = "apiproxy"
MANIFEST_RELPATH = Path("manifests") / "manifest.xml"
DESCRIPTOR_SUFFIX = ".xml"


class OnHashError(str, Enum):
    """What the collector does when a single file cannot be hashed."""

    EMPTY = "empty"
    ABORT = "abort"


def _env_flag(name: str) -> bool:
    return os.getenv(name, "0").strip().lower() in ("1", "true", "yes")


def normalize_bundle_path(arg: str) -> Path:
    """Append the ``apiproxy`` folder unless the path already ends with it."""
    if PurePath(arg).name != BUNDLE_FOLDER:
        return Path(arg) / BUNDLE_FOLDER
    return Path(arg)


@dataclass
class RunConfig:
    bundle_dir: Path
    on_hash_error: OnHashError = OnHashError.EMPTY
    dry_run: bool = False
    backup: bool = False
    manifest_relpath: Path = MANIFEST_RELPATH

    @property
    def manifest_path(self) -> Path:
        return Path(self.bundle_dir) / self.manifest_relpath

    @classmethod
    def from_env(
        cls,
        bundle_dir: Path,
        *,
        on_hash_error: Optional[str] = None,
        dry_run: Optional[bool] = None,
        backup: Optional[bool] = None,
    ) -> "RunConfig":
        policy = on_hash_error or os.getenv("PROXY_MANIFEST_ON_HASH_ERROR") or OnHashError.EMPTY.value
        try:
            resolved = OnHashError(policy.strip().lower())
        except ValueError:
            raise UsageError(f"invalid on-hash-error policy: {policy!r} (expected 'empty' or 'abort')") from None
        return cls(
            bundle_dir=Path(bundle_dir),
            on_hash_error=resolved,
            dry_run=_env_flag("PROXY_MANIFEST_DRY_RUN") if dry_run is None else dry_run,
            backup=_env_flag("PROXY_MANIFEST_BACKUP") if backup is None else backup,
        )


__all__ = [
    "BUNDLE_FOLDER",
    "MANIFEST_RELPATH",
    "DESCRIPTOR_SUFFIX",
    "OnHashError",
    "RunConfig",
    "normalize_bundle_path",
]
