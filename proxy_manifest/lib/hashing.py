"""SHA-512 content hashing for bundle files.

Digests travel as ``"SHA-512:<lowercase hex>"`` both inside the manifest and
in the descriptor's ManifestVersion element.
"""
from __future__ import annotations

import hashlib
from pathlib import Path

from proxy_manifest.errors import BundleIOError

DIGEST_PREFIX = "SHA-512:"
CHUNK_SIZE = 1 << 16


def file_digest(path: Path) -> str:
    """Return the lowercase hex SHA-512 of the file at ``path``.

    Raises BundleIOError when the file cannot be opened or a read fails
    part way; no partial digest is ever returned.
    """
    p = Path(path)
    h = hashlib.sha512()
    try:
        with p.open("rb") as fh:
            for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
                h.update(chunk)
    except OSError as e:
        raise BundleIOError(f"cannot hash {p}: {e.strerror or e}", path=p) from e
    return h.hexdigest()


def bytes_digest(data: bytes) -> str:
    return hashlib.sha512(data).hexdigest()


def format_digest(hex_digest: str) -> str:
    return DIGEST_PREFIX + hex_digest


__all__ = ["DIGEST_PREFIX", "file_digest", "bytes_digest", "format_digest"]
