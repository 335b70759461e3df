"""Atomic-write helpers for the two output files.

Purpose
-------
Each output (manifest.xml, the proxy descriptor) is written to a temporary
file in the destination directory and moved into place with ``os.replace``,
so a reader sees either the previous bytes or the new bytes, never a
truncated file. An existing target keeps its permission bits; a new one gets
the usual 0666 minus the process umask. The run as a whole is still two
separate writes.

Backups
-------
With ``backup=True`` an existing target is copied to ``<name>.prev`` first.
The ``.prev`` suffix keeps backups of the descriptor from ending in ``.xml``,
which would make them descriptor candidates on the next run.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from proxy_manifest.errors import BundleIOError

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".prev"


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def compute_backup_path(p: Path) -> Path:
    return p.with_name(p.name + BACKUP_SUFFIX)


def atomic_backup_write(
    data: bytes,
    path: Path,
    *,
    backup: bool = False,
    dry_run: bool = False,
    log: Optional[logging.Logger] = None,
) -> Path:
    """Atomically write ``data`` to ``path``.

    In dry_run mode only logs what would happen. Parent directories are
    created. Returns the target path.
    """
    log = log or logger
    p = Path(path)
    if dry_run:
        log.info("dry run: would write %d bytes -> %s", len(data), p)
        if backup and p.exists():
            log.info("dry run: would back up %s -> %s", p, compute_backup_path(p))
        return p

    tmp: Optional[Path] = None
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        if backup and p.exists():
            shutil.copy2(p, compute_backup_path(p))
        with tempfile.NamedTemporaryFile("wb", delete=False, dir=str(p.parent), prefix=p.name + ".tmp.") as tf:
            tmp = Path(tf.name)
            tf.write(data)
        if p.exists():
            shutil.copymode(p, tmp)
        else:
            os.chmod(tmp, 0o666 & ~_current_umask())
        tmp.replace(p)
    except OSError as e:
        if tmp is not None and tmp.exists():
            tmp.unlink()
        raise BundleIOError(f"cannot write {p}: {e.strerror or e}", path=p) from e
    log.debug("wrote %d bytes -> %s", len(data), p)
    return p


__all__ = ["BACKUP_SUFFIX", "compute_backup_path", "atomic_backup_write"]
