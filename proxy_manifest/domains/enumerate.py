"""Directory enumeration and logical resource names.

Policies and proxy endpoints are flat folders; a file's logical name is its
filename without the ``.xml`` suffix. Resources live one level deeper, one
folder per namespace (``resources/jsc/util.js``), and are named
``<namespace>://<filename>`` (``jsc://util.js``).
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from proxy_manifest.errors import BundleIOError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileInfo:
    name: str
    path: Path
    is_dir: bool


NameFn = Callable[[FileInfo], str]


def list_dir(directory: Path) -> List[FileInfo]:
    """Immediate entries of ``directory`` in the order the filesystem reports them.

    Sorting is left to the collector.
    """
    d = Path(directory)
    try:
        with os.scandir(d) as it:
            return [FileInfo(name=e.name, path=Path(e.path), is_dir=e.is_dir()) for e in it]
    except OSError as e:
        raise BundleIOError(f"cannot list {d}: {e.strerror or e}", path=d) from e


def list_namespaced(resources_dir: Path, log: Optional[logging.Logger] = None) -> List[Tuple[str, FileInfo]]:
    """Two-level scan of ``resources/``: (namespace, entry) for every entry of every namespace folder."""
    log = log or logger
    out: List[Tuple[str, FileInfo]] = []
    for ns in list_dir(resources_dir):
        if not ns.is_dir:
            log.warning("skipping %s: resources must live in a namespace folder", ns.path)
            continue
        for entry in list_dir(ns.path):
            out.append((ns.name, entry))
    return out


def strip_suffix(suffix: str) -> NameFn:
    """Name function removing ``.<suffix>`` from the end of the filename, if present."""
    dotted = "." + suffix

    def _name(info: FileInfo) -> str:
        if info.name.endswith(dotted):
            return info.name[: -len(dotted)]
        return info.name

    return _name


def namespaced(namespace: str) -> NameFn:
    def _name(info: FileInfo) -> str:
        return f"{namespace}://{info.name}"

    return _name


__all__ = ["FileInfo", "NameFn", "list_dir", "list_namespaced", "strip_suffix", "namespaced"]
