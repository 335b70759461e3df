"""Deterministic collection of (logical name, digest) pairs for one category.

Entries are emitted sorted by logical name using plain string comparison,
independent of the order the filesystem lists them in.

A file that cannot be hashed does not abort the collection under the
default ``OnHashError.EMPTY`` policy: the entry is kept with the bare
``SHA-512:`` prefix as its version and a warning is logged. Failing to list
the directory itself always aborts.

Two files can only share a logical name through suffix stripping (``a`` and
``a.xml``). The first path in sorted order is kept and the other is logged
and ignored, where a plain name-to-file map would keep the last.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from proxy_manifest.common.progress import progress_bar
from proxy_manifest.config import OnHashError
from proxy_manifest.domains.enumerate import FileInfo, NameFn, list_dir, list_namespaced, namespaced
from proxy_manifest.domains.manifest import ResourceEntry
from proxy_manifest.errors import BundleIOError
from proxy_manifest.lib.hashing import file_digest, format_digest

logger = logging.getLogger(__name__)


def _index(named: Iterable[Tuple[str, FileInfo]], log: logging.Logger) -> Dict[str, FileInfo]:
    """Map logical name -> file. On a collision the first filename in sorted order is kept."""
    out: Dict[str, FileInfo] = {}
    for name, info in sorted(named, key=lambda pair: str(pair[1].path)):
        if name in out:
            log.warning("duplicate resource name %r: keeping %s, ignoring %s", name, out[name].path, info.path)
            continue
        out[name] = info
    return out


def _hash_sorted(
    named: Dict[str, FileInfo],
    *,
    on_hash_error: OnHashError,
    log: logging.Logger,
    desc: str,
    progress: Optional[bool],
) -> List[ResourceEntry]:
    entries: List[ResourceEntry] = []
    with progress_bar(total=len(named), desc=desc, enabled=progress) as bar:
        for name in sorted(named):
            info = named[name]
            try:
                entries.append(ResourceEntry(name=name, digest=format_digest(file_digest(info.path))))
            except BundleIOError as e:
                if on_hash_error is OnHashError.ABORT:
                    raise
                log.warning("hash failed for %s, recording empty digest: %s", info.path, e)
                entries.append(ResourceEntry(name=name, digest=format_digest(""), error=str(e)))
            bar.update(1)
    return entries


def collect(
    directory: Path,
    name_fn: NameFn,
    *,
    on_hash_error: OnHashError = OnHashError.EMPTY,
    log: Optional[logging.Logger] = None,
    progress: Optional[bool] = None,
) -> List[ResourceEntry]:
    """Hash every entry of ``directory`` and return entries sorted by logical name."""
    log = log or logger
    infos = list_dir(directory)
    named = _index(((name_fn(i), i) for i in infos), log)
    entries = _hash_sorted(named, on_hash_error=on_hash_error, log=log, desc=Path(directory).name, progress=progress)
    log.debug("collected %d entries from %s", len(entries), directory)
    return entries


def collect_resources(
    resources_dir: Path,
    *,
    on_hash_error: OnHashError = OnHashError.EMPTY,
    log: Optional[logging.Logger] = None,
    progress: Optional[bool] = None,
) -> List[ResourceEntry]:
    """Collect every namespace folder under ``resources/`` as one sorted category."""
    log = log or logger
    pairs = list_namespaced(resources_dir, log)
    named = _index(((namespaced(ns)(info), info) for ns, info in pairs), log)
    entries = _hash_sorted(named, on_hash_error=on_hash_error, log=log, desc="resources", progress=progress)
    log.debug("collected %d resources from %s", len(entries), resources_dir)
    return entries


__all__ = ["collect", "collect_resources"]
