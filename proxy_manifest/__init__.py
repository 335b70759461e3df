"""Deterministic manifest generation for apiproxy bundles.

Typical use::

    from proxy_manifest import RunConfig, generate
    generate(RunConfig(bundle_dir=Path("myproxy/apiproxy")))
"""
from __future__ import annotations

from proxy_manifest.config import OnHashError, RunConfig, normalize_bundle_path
from proxy_manifest.errors import (
    BundleIOError,
    DescriptorNotFoundError,
    ManifestError,
    SerializationError,
    UsageError,
)
from proxy_manifest.pipeline import RunResult, VerifyReport, generate, verify

__version__ = "0.1.0"

__all__ = [
    "OnHashError",
    "RunConfig",
    "normalize_bundle_path",
    "BundleIOError",
    "DescriptorNotFoundError",
    "ManifestError",
    "SerializationError",
    "UsageError",
    "RunResult",
    "VerifyReport",
    "generate",
    "verify",
]
