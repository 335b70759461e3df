"""Locate, model and update the bundle's top-level APIProxy descriptor.

The descriptor file may have any name, so it is found by structure: every
``*.xml`` file in the bundle root is a candidate, candidates are tried in
sorted filename order, and the first one that is well-formed XML with an
``<APIProxy>`` root element wins.

Only ManifestVersion is ever changed. The parsed tree is kept and
re-serialized as a whole, so elements, attributes and comments this module
does not model are written back unchanged.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from lxml import etree

from proxy_manifest.config import DESCRIPTOR_SUFFIX
from proxy_manifest.domains.enumerate import list_dir
from proxy_manifest.errors import BundleIOError, DescriptorNotFoundError
from proxy_manifest.lib.hashing import format_digest

logger = logging.getLogger(__name__)

ROOT_TAG = "APIProxy"
MANIFEST_VERSION_TAG = "ManifestVersion"

# Child element order of the APIProxy schema.
FIELD_ORDER = (
    "Basepaths",
    "ConfigurationVersion",
    "CreatedAt",
    "CreatedBy",
    "Description",
    "DisplayName",
    "LastModifiedAt",
    "LastModifiedBy",
    "ManifestVersion",
    "Policies",
    "ProxyEndpoints",
    "Resources",
    "Spec",
    "TargetServers",
    "TargetEndpoints",
)


class CandidateStatus(str, Enum):
    MATCH = "match"
    MISMATCH = "mismatch"
    IO_FAILURE = "io_failure"


@dataclass(frozen=True)
class ConfigurationVersion:
    major: Optional[str] = None
    minor: Optional[str] = None


def _text(root: etree._Element, tag: str) -> Optional[str]:
    el = root.find(tag)
    if el is None:
        return None
    return el.text or ""


def _texts(root: etree._Element, container: str, item: str) -> Tuple[str, ...]:
    return tuple(el.text or "" for el in root.iterfind(f"{container}/{item}"))


@dataclass(frozen=True)
class ProxyDescriptor:
    """Typed view over a parsed APIProxy document.

    ``root`` is the full parsed tree; it is what gets serialized.
    """

    root: etree._Element = field(repr=False, compare=False)
    revision: Optional[str] = None
    name: Optional[str] = None
    basepaths: Tuple[str, ...] = ()
    configuration_version: ConfigurationVersion = ConfigurationVersion()
    created_at: Optional[str] = None
    created_by: Optional[str] = None
    description: Optional[str] = None
    display_name: Optional[str] = None
    last_modified_at: Optional[str] = None
    last_modified_by: Optional[str] = None
    manifest_version: Optional[str] = None
    policies: Tuple[str, ...] = ()
    proxy_endpoints: Tuple[str, ...] = ()
    resources: Tuple[str, ...] = ()
    spec: Optional[str] = None
    target_servers: Optional[str] = None
    target_endpoints: Tuple[str, ...] = ()

    @classmethod
    def from_element(cls, root: etree._Element) -> "ProxyDescriptor":
        cv = root.find("ConfigurationVersion")
        return cls(
            root=root,
            revision=root.get("revision"),
            name=root.get("name"),
            basepaths=tuple(el.text or "" for el in root.iterfind("Basepaths")),
            configuration_version=ConfigurationVersion(
                major=cv.get("majorVersion") if cv is not None else None,
                minor=cv.get("minorVersion") if cv is not None else None,
            ),
            created_at=_text(root, "CreatedAt"),
            created_by=_text(root, "CreatedBy"),
            description=_text(root, "Description"),
            display_name=_text(root, "DisplayName"),
            last_modified_at=_text(root, "LastModifiedAt"),
            last_modified_by=_text(root, "LastModifiedBy"),
            manifest_version=_text(root, MANIFEST_VERSION_TAG),
            policies=_texts(root, "Policies", "Policy"),
            proxy_endpoints=_texts(root, "ProxyEndpoints", "ProxyEndpoint"),
            resources=_texts(root, "Resources", "Resource"),
            spec=_text(root, "Spec"),
            target_servers=_text(root, "TargetServers"),
            target_endpoints=_texts(root, "TargetEndpoints", "TargetEndpoint"),
        )

    def to_element(self) -> etree._Element:
        return self.root


@dataclass(frozen=True)
class CandidateResult:
    path: Path
    status: CandidateStatus
    descriptor: Optional[ProxyDescriptor] = None
    reason: Optional[str] = None


def _parser() -> etree.XMLParser:
    return etree.XMLParser(remove_blank_text=True, resolve_entities=False, no_network=True)


def parse_candidate(path: Path) -> CandidateResult:
    """Try one file as the descriptor; never raises."""
    p = Path(path)
    try:
        data = p.read_bytes()
    except OSError as e:
        return CandidateResult(p, CandidateStatus.IO_FAILURE, reason=str(e.strerror or e))
    try:
        root = etree.fromstring(data, parser=_parser())
    except etree.XMLSyntaxError as e:
        return CandidateResult(p, CandidateStatus.MISMATCH, reason=f"not well-formed: {e}")
    if root.tag != ROOT_TAG:
        return CandidateResult(p, CandidateStatus.MISMATCH, reason=f"root element is <{root.tag}>, expected <{ROOT_TAG}>")
    return CandidateResult(p, CandidateStatus.MATCH, descriptor=ProxyDescriptor.from_element(root))


def candidate_paths(bundle_dir: Path) -> List[Path]:
    """Top-level ``*.xml`` files of the bundle, sorted by filename."""
    files = [i for i in list_dir(bundle_dir) if not i.is_dir and i.name.endswith(DESCRIPTOR_SUFFIX)]
    return [i.path for i in sorted(files, key=lambda i: i.name)]


def scan_candidates(bundle_dir: Path) -> List[CandidateResult]:
    """Parse every candidate and report each outcome (diagnostics; no early stop)."""
    return [parse_candidate(p) for p in candidate_paths(bundle_dir)]


def find_and_parse(bundle_dir: Path, log: Optional[logging.Logger] = None) -> Tuple[Path, ProxyDescriptor]:
    """Return the first candidate, in sorted filename order, that parses as an APIProxy."""
    log = log or logger
    try:
        paths = candidate_paths(bundle_dir)
    except BundleIOError as e:
        raise DescriptorNotFoundError(f"didn't find main proxy file: {e}") from e
    tried: List[CandidateResult] = []
    for p in paths:
        result = parse_candidate(p)
        if result.status is CandidateStatus.MATCH:
            log.debug("proxy descriptor: %s", p)
            return p, result.descriptor
        log.debug("not a proxy descriptor: %s (%s: %s)", p.name, result.status.value, result.reason)
        tried.append(result)
    raise DescriptorNotFoundError(
        f"didn't find main proxy file in {bundle_dir} ({len(tried)} candidate(s) tried)", candidates=tried
    )


def _insert_canonical(root: etree._Element, el: etree._Element) -> None:
    preceding = set(FIELD_ORDER[: FIELD_ORDER.index(el.tag)])
    anchor = None
    for child in root:
        if child.tag in preceding:
            anchor = child
    if anchor is None:
        root.insert(0, el)
    else:
        root.insert(root.index(anchor) + 1, el)


def apply(descriptor: ProxyDescriptor, manifest_digest: str) -> ProxyDescriptor:
    """Return a copy of ``descriptor`` with ManifestVersion set to ``SHA-512:<manifest_digest>``."""
    root = copy.deepcopy(descriptor.root)
    el = root.find(MANIFEST_VERSION_TAG)
    if el is None:
        el = etree.Element(MANIFEST_VERSION_TAG)
        _insert_canonical(root, el)
    el.text = format_digest(manifest_digest)
    return ProxyDescriptor.from_element(root)


__all__ = [
    "ROOT_TAG",
    "FIELD_ORDER",
    "CandidateStatus",
    "CandidateResult",
    "ConfigurationVersion",
    "ProxyDescriptor",
    "parse_candidate",
    "candidate_paths",
    "scan_candidates",
    "find_and_parse",
    "apply",
]
