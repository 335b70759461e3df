"""Manifest document model and builder.

The rendered document looks like::

    <Manifest name="manifest">
        <Policies>
            <VersionInfo resourceName="Verify-API-Key" version="SHA-512:..."/>
        </Policies>
        <ProxyEndpoints>...</ProxyEndpoints>
        <Resources>...</Resources>
        <SharedFlows/>
        <TargetEndpoints/>
    </Manifest>

SharedFlows and TargetEndpoints are always empty; the consuming schema
expects them to be present.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from lxml import etree

from proxy_manifest.errors import SerializationError

ROOT_TAG = "Manifest"
ENTRY_TAG = "VersionInfo"
CATEGORIES = ("Policies", "ProxyEndpoints", "Resources", "SharedFlows", "TargetEndpoints")


@dataclass(frozen=True)
class ResourceEntry:
    name: str
    digest: str
    # set when hashing failed and the entry was kept with an empty digest
    error: Optional[str] = field(default=None, compare=False)


@dataclass(frozen=True)
class ManifestDocument:
    policies: Tuple[ResourceEntry, ...] = ()
    proxy_endpoints: Tuple[ResourceEntry, ...] = ()
    resources: Tuple[ResourceEntry, ...] = ()
    shared_flows: Tuple[ResourceEntry, ...] = ()
    target_endpoints: Tuple[ResourceEntry, ...] = ()
    name: str = "manifest"

    def categories(self) -> Dict[str, Tuple[ResourceEntry, ...]]:
        """Category tag -> entries, in document order."""
        return {
            "Policies": self.policies,
            "ProxyEndpoints": self.proxy_endpoints,
            "Resources": self.resources,
            "SharedFlows": self.shared_flows,
            "TargetEndpoints": self.target_endpoints,
        }

    def to_element(self) -> etree._Element:
        root = etree.Element(ROOT_TAG)
        root.set("name", self.name)
        for tag, entries in self.categories().items():
            cat = etree.SubElement(root, tag)
            for e in entries:
                item = etree.SubElement(cat, ENTRY_TAG)
                item.set("resourceName", e.name)
                item.set("version", e.digest)
        return root


def build(
    policies: Iterable[ResourceEntry],
    proxies: Iterable[ResourceEntry],
    resources: Iterable[ResourceEntry],
) -> ManifestDocument:
    """Wrap three already-sorted category lists into a manifest document."""
    return ManifestDocument(
        policies=tuple(policies),
        proxy_endpoints=tuple(proxies),
        resources=tuple(resources),
    )


def parse_manifest(data: bytes) -> ManifestDocument:
    """Read a rendered manifest back into a ManifestDocument."""
    try:
        root = etree.fromstring(data)
    except etree.XMLSyntaxError as e:
        raise SerializationError(f"manifest is not well-formed XML: {e}") from e
    if root.tag != ROOT_TAG:
        raise SerializationError(f"unexpected manifest root element <{root.tag}>")
    found: Dict[str, Tuple[ResourceEntry, ...]] = {}
    for tag in CATEGORIES:
        cat = root.find(tag)
        if cat is None:
            found[tag] = ()
            continue
        found[tag] = tuple(
            ResourceEntry(name=item.get("resourceName", ""), digest=item.get("version", ""))
            for item in cat.iterfind(ENTRY_TAG)
        )
    return ManifestDocument(
        policies=found["Policies"],
        proxy_endpoints=found["ProxyEndpoints"],
        resources=found["Resources"],
        shared_flows=found["SharedFlows"],
        target_endpoints=found["TargetEndpoints"],
        name=root.get("name", "manifest"),
    )


@dataclass(frozen=True)
class CategoryDrift:
    category: str
    added: Tuple[str, ...] = ()
    removed: Tuple[str, ...] = ()
    changed: Tuple[str, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.added or self.removed or self.changed)


def diff_documents(expected: ManifestDocument, actual: ManifestDocument) -> List[CategoryDrift]:
    """Per-category names present only in one side, or present in both with different versions."""
    out: List[CategoryDrift] = []
    actual_cats = actual.categories()
    for tag, entries in expected.categories().items():
        want = {e.name: e.digest for e in entries}
        have = {e.name: e.digest for e in actual_cats[tag]}
        drift = CategoryDrift(
            category=tag,
            added=tuple(sorted(set(want) - set(have))),
            removed=tuple(sorted(set(have) - set(want))),
            changed=tuple(sorted(n for n in set(want) & set(have) if want[n] != have[n])),
        )
        if drift:
            out.append(drift)
    return out


__all__ = [
    "ResourceEntry",
    "ManifestDocument",
    "CategoryDrift",
    "CATEGORIES",
    "build",
    "parse_manifest",
    "diff_documents",
]
