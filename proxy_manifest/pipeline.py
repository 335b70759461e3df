"""Manifest generation run: collect, render, write, then patch the descriptor.

Order of operations in ``generate``:

1. find and parse the APIProxy descriptor (nothing is written if absent)
2. collect policies/, proxies/ and resources/<namespace>/
3. render and write manifests/manifest.xml
4. hash the written manifest and set the descriptor's ManifestVersion
5. rewrite the descriptor in place

Any failure in 1-2 leaves the bundle untouched. A failure in 5 leaves the
new manifest on disk next to the old descriptor.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from proxy_manifest.config import RunConfig
from proxy_manifest.domains import descriptor as descriptor_mod
from proxy_manifest.domains.collect import collect, collect_resources
from proxy_manifest.domains.enumerate import strip_suffix
from proxy_manifest.domains.manifest import CategoryDrift, ManifestDocument, build, diff_documents, parse_manifest
from proxy_manifest.domains.serialize import render
from proxy_manifest.errors import BundleIOError
from proxy_manifest.lib.hashing import bytes_digest, file_digest, format_digest
from proxy_manifest.lib.io_guards import atomic_backup_write

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    manifest_path: Path
    descriptor_path: Path
    manifest_digest: str
    counts: Dict[str, int] = field(default_factory=dict)
    hash_failures: int = 0
    dry_run: bool = False


@dataclass
class VerifyReport:
    manifest_path: Path
    descriptor_path: Path
    manifest_missing: bool = False
    bytes_match: bool = False
    descriptor_in_sync: bool = False
    drift: List[CategoryDrift] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.manifest_missing and self.bytes_match and self.descriptor_in_sync


def collect_document(config: RunConfig, log: Optional[logging.Logger] = None, progress: Optional[bool] = None) -> ManifestDocument:
    """Enumerate and hash the three populated categories of the bundle."""
    log = log or logger
    bundle = Path(config.bundle_dir)
    opts = dict(on_hash_error=config.on_hash_error, log=log, progress=progress)
    policies = collect(bundle / "policies", strip_suffix("xml"), **opts)
    proxies = collect(bundle / "proxies", strip_suffix("xml"), **opts)
    resources = collect_resources(bundle / "resources", **opts)
    return build(policies, proxies, resources)


def _load_descriptor(config: RunConfig, log: logging.Logger) -> Tuple[Path, descriptor_mod.ProxyDescriptor]:
    path, desc = descriptor_mod.find_and_parse(Path(config.bundle_dir), log=log)
    log.info("proxy descriptor: %s", path)
    return path, desc


def generate(config: RunConfig, log: Optional[logging.Logger] = None, progress: Optional[bool] = None) -> RunResult:
    log = log or logger
    descriptor_path, desc = _load_descriptor(config, log)
    doc = collect_document(config, log, progress)

    manifest_bytes = render(doc)
    manifest_path = config.manifest_path
    atomic_backup_write(manifest_bytes, manifest_path, backup=config.backup, dry_run=config.dry_run, log=log)
    if config.dry_run:
        manifest_hex = bytes_digest(manifest_bytes)
    else:
        log.info("wrote %s", manifest_path)
        manifest_hex = file_digest(manifest_path)

    updated = descriptor_mod.apply(desc, manifest_hex)
    atomic_backup_write(render(updated), descriptor_path, backup=config.backup, dry_run=config.dry_run, log=log)
    if not config.dry_run:
        log.info("wrote %s", descriptor_path)

    counts = {tag: len(entries) for tag, entries in doc.categories().items()}
    failures = sum(1 for entries in doc.categories().values() for e in entries if e.error)
    return RunResult(
        manifest_path=manifest_path,
        descriptor_path=descriptor_path,
        manifest_digest=format_digest(manifest_hex),
        counts=counts,
        hash_failures=failures,
        dry_run=config.dry_run,
    )


def verify(config: RunConfig, log: Optional[logging.Logger] = None, progress: Optional[bool] = None) -> VerifyReport:
    """Compare the manifest and descriptor on disk with what ``generate`` would write. Writes nothing."""
    log = log or logger
    descriptor_path, desc = _load_descriptor(config, log)
    expected = collect_document(config, log, progress)
    report = VerifyReport(manifest_path=config.manifest_path, descriptor_path=descriptor_path)

    try:
        on_disk = config.manifest_path.read_bytes()
    except FileNotFoundError:
        report.manifest_missing = True
        report.drift = diff_documents(expected, ManifestDocument())
        return report
    except OSError as e:
        raise BundleIOError(f"cannot read {config.manifest_path}: {e.strerror or e}", path=config.manifest_path) from e

    report.bytes_match = on_disk == render(expected)
    report.drift = diff_documents(expected, parse_manifest(on_disk))
    report.descriptor_in_sync = desc.manifest_version == format_digest(bytes_digest(on_disk))
    return report


__all__ = ["RunResult", "VerifyReport", "collect_document", "generate", "verify"]
