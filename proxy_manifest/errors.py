"""Error kinds raised by the manifest pipeline.

Every stage raises on its first failure; the CLI maps these to one
diagnostic line and an exit status.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


class ManifestError(RuntimeError): ...


class UsageError(ManifestError): ...


class SerializationError(ManifestError): ...


class BundleIOError(ManifestError, OSError):
    """Missing or unreadable bundle directory or file."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        return self.args[0] if self.args else ""


class DescriptorNotFoundError(ManifestError):
    """No top-level file in the bundle parsed as an APIProxy descriptor."""

    def __init__(self, message: str, candidates: Sequence = ()):
        super().__init__(message)
        self.candidates = list(candidates)


__all__ = [
    "ManifestError",
    "UsageError",
    "SerializationError",
    "BundleIOError",
    "DescriptorNotFoundError",
]
