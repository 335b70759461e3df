#!/usr/bin/env python3
"""Print an apiproxy manifests/manifest.xml in a human-readable form.
"""
from __future__ import annotations
import argparse
from pathlib import Path
import sys

from proxy_manifest.domains.manifest import parse_manifest
from proxy_manifest.errors import SerializationError


def format_manifest(doc, width: int = 16) -> str:
    lines = []
    for tag, entries in doc.categories().items():
        lines.append(f"{tag} ({len(entries)})")
        for e in entries:
            prefix, _, hexd = e.digest.partition(":")
            short = (hexd[:width] + "...") if len(hexd) > width else (hexd or "<empty>")
            lines.append(f"  {e.name:<40} {prefix}:{short}")
    return "\n".join(lines)


def main(argv=None):
    p = argparse.ArgumentParser()
    p.add_argument('--manifest', required=True, help='Path to manifest.xml')
    p.add_argument('--width', type=int, default=16, help='Hex characters of each digest to show')
    args = p.parse_args(argv)
    m = Path(args.manifest)
    if not m.exists():
        print('(no manifest)')
        return 0
    try:
        doc = parse_manifest(m.read_bytes())
    except (OSError, SerializationError) as e:
        print(f'Error reading manifest: {e}', file=sys.stderr)
        return 2
    print(format_manifest(doc, width=args.width))
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
