#!/usr/bin/env python3
"""Command line runner: regenerate (or check) an apiproxy bundle's manifest.

Usage:
    proxy-manifest path/to/apiproxy [--dry-run] [--check] [--backup]
                   [--on-hash-error empty|abort] [--log-level LEVEL]

If the given path does not end in ``apiproxy`` that folder is appended.

Exit status: 0 ok, 1 run failure, 2 usage error, 3 ``--check`` found drift.
"""
from __future__ import annotations
import argparse
import logging
import os
import sys
from pathlib import PurePath

from proxy_manifest.common.progress import Timer
from proxy_manifest.config import BUNDLE_FOLDER, OnHashError, RunConfig, normalize_bundle_path
from proxy_manifest.errors import ManifestError, UsageError
from proxy_manifest.pipeline import VerifyReport, generate, verify

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_DRIFT = 3

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

logger = logging.getLogger("proxy_manifest.cli")


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    p = _Parser(prog="proxy-manifest", description="Write manifests/manifest.xml for an apiproxy bundle and update its descriptor.")
    p.add_argument("bundle", help="apiproxy folder, or the folder containing it")
    p.add_argument(
        "--on-hash-error",
        choices=[o.value for o in OnHashError],
        default=None,
        help="empty: keep the entry with an empty digest (default); abort: stop the run",
    )
    p.add_argument("--dry-run", action="store_true", default=None, help="Compute everything, write nothing")
    p.add_argument("--check", action="store_true", help="Compare the manifest on disk with the bundle; no writes")
    p.add_argument("--backup", action="store_true", default=None, help="Copy existing outputs to <name>.prev before overwriting")
    p.add_argument("--log-level", default=None, help="Logging level (default: PROXY_MANIFEST_LOG_LEVEL or INFO)")
    return p


def _configure_logging(level_name: str | None) -> None:
    name = (level_name or os.getenv("PROXY_MANIFEST_LOG_LEVEL") or "INFO").upper()
    lvl = getattr(logging, name, None)
    if not isinstance(lvl, int):
        lvl = logging.INFO
    logging.basicConfig(level=lvl, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger().setLevel(lvl)


def _report_check(report: VerifyReport) -> int:
    if report.manifest_missing:
        logger.warning("manifest missing: %s", report.manifest_path)
    for d in report.drift:
        for name in d.added:
            logger.warning("%s: not in manifest: %s", d.category, name)
        for name in d.removed:
            logger.warning("%s: no longer in bundle: %s", d.category, name)
        for name in d.changed:
            logger.warning("%s: content changed: %s", d.category, name)
    if not report.manifest_missing and not report.bytes_match and not report.drift:
        logger.warning("manifest formatting differs from a fresh render: %s", report.manifest_path)
    if not report.manifest_missing and not report.descriptor_in_sync:
        logger.warning("ManifestVersion in %s does not match %s", report.descriptor_path.name, report.manifest_path.name)
    if report.ok:
        logger.info("manifest up to date: %s", report.manifest_path)
        return EXIT_OK
    return EXIT_DRIFT


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as e:
        _configure_logging(None)
        sys.stderr.write(parser.format_usage())
        logger.error("usage: %s", e)
        return EXIT_USAGE
    _configure_logging(args.log_level)

    bundle = normalize_bundle_path(args.bundle)
    if PurePath(args.bundle).name != BUNDLE_FOLDER:
        logger.info("adding suffix /apiproxy")

    try:
        config = RunConfig.from_env(bundle, on_hash_error=args.on_hash_error, dry_run=args.dry_run, backup=args.backup)
        if args.check:
            with Timer(f"check {bundle}", logger):
                return _report_check(verify(config))
        with Timer(f"manifest {bundle}", logger):
            result = generate(config)
    except UsageError as e:
        logger.error("usage: %s", e)
        return EXIT_USAGE
    except ManifestError as e:
        logger.error("%s", e)
        return EXIT_FAILURE

    logger.info(
        "%s %s (%s)",
        "would set" if result.dry_run else "set",
        result.manifest_digest[:24] + "...",
        ", ".join(f"{k}={v}" for k, v in result.counts.items()),
    )
    if result.hash_failures:
        logger.warning("%d file(s) could not be hashed and were recorded with an empty digest", result.hash_failures)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
