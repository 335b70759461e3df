import hashlib
import os
import stat

import pytest

from conftest import DESCRIPTOR_XML, POLICY_XML, PROXY_ENDPOINT_XML, make_bundle
from proxy_manifest.config import OnHashError, RunConfig
from proxy_manifest.domains.descriptor import find_and_parse
from proxy_manifest.domains.manifest import parse_manifest
from proxy_manifest.errors import BundleIOError, DescriptorNotFoundError
from proxy_manifest.pipeline import generate, verify


def _sha(data: bytes) -> str:
    return "SHA-512:" + hashlib.sha512(data).hexdigest()


def test_end_to_end_scenario(bundle):
    result = generate(RunConfig(bundle_dir=bundle))

    manifest_bytes = (bundle / "manifests" / "manifest.xml").read_bytes()
    doc = parse_manifest(manifest_bytes)
    assert [(e.name, e.digest) for e in doc.policies] == [("Verify-API-Key", _sha(POLICY_XML))]
    assert [(e.name, e.digest) for e in doc.proxy_endpoints] == [("default", _sha(PROXY_ENDPOINT_XML))]
    assert [(e.name, e.digest) for e in doc.resources] == [("jsc://util.js", _sha(b"function util() { return 1; }\n"))]
    assert doc.shared_flows == () and doc.target_endpoints == ()

    _, desc = find_and_parse(bundle)
    assert desc.manifest_version == _sha(manifest_bytes)
    assert result.manifest_digest == _sha(manifest_bytes)
    assert result.descriptor_path == bundle / "orders.xml"
    assert result.counts == {"Policies": 1, "ProxyEndpoints": 1, "Resources": 1, "SharedFlows": 0, "TargetEndpoints": 0}
    assert result.hash_failures == 0


def test_descriptor_rest_is_unchanged(bundle):
    generate(RunConfig(bundle_dir=bundle))
    after = (bundle / "orders.xml").read_bytes()
    old_line = b"<ManifestVersion>SHA-512:old</ManifestVersion>"
    before = DESCRIPTOR_XML.replace(b"<Spec></Spec>", b"<Spec/>")
    head, _, tail = before.partition(old_line)
    assert after.startswith(head)
    assert after.endswith(tail)


def test_second_run_is_byte_identical(bundle):
    generate(RunConfig(bundle_dir=bundle))
    first = ((bundle / "manifests" / "manifest.xml").read_bytes(), (bundle / "orders.xml").read_bytes())
    generate(RunConfig(bundle_dir=bundle))
    second = ((bundle / "manifests" / "manifest.xml").read_bytes(), (bundle / "orders.xml").read_bytes())
    assert first == second


def test_new_manifest_gets_umask_permissions(bundle):
    old = os.umask(0o022)
    try:
        result = generate(RunConfig(bundle_dir=bundle))
    finally:
        os.umask(old)
    assert stat.S_IMODE(result.manifest_path.stat().st_mode) == 0o644


def test_missing_resources_aborts_before_any_write(tmp_path):
    bundle = make_bundle(tmp_path, resources=False)
    with pytest.raises(BundleIOError):
        generate(RunConfig(bundle_dir=bundle))
    assert not (bundle / "manifests" / "manifest.xml").exists()
    assert (bundle / "orders.xml").read_bytes() == DESCRIPTOR_XML


def test_no_descriptor_aborts_and_modifies_nothing(tmp_path):
    bundle = make_bundle(tmp_path, descriptor=b"<NotAProxy/>")
    before = {p: p.read_bytes() for p in bundle.rglob("*") if p.is_file()}
    with pytest.raises(DescriptorNotFoundError):
        generate(RunConfig(bundle_dir=bundle))
    after = {p: p.read_bytes() for p in bundle.rglob("*") if p.is_file()}
    assert before == after


def test_manifests_folder_is_created(bundle):
    (bundle / "manifests").rmdir()
    generate(RunConfig(bundle_dir=bundle))
    assert (bundle / "manifests" / "manifest.xml").is_file()


def test_dry_run_writes_nothing(bundle):
    result = generate(RunConfig(bundle_dir=bundle, dry_run=True))
    assert not (bundle / "manifests" / "manifest.xml").exists()
    assert (bundle / "orders.xml").read_bytes() == DESCRIPTOR_XML
    assert result.dry_run is True
    assert result.manifest_digest.startswith("SHA-512:")


def test_backup_keeps_previous_outputs(bundle):
    generate(RunConfig(bundle_dir=bundle))
    (bundle / "policies" / "Verify-API-Key.xml").write_bytes(b"<VerifyAPIKey/>")
    generate(RunConfig(bundle_dir=bundle, backup=True))
    assert (bundle / "orders.xml.prev").is_file()
    assert (bundle / "manifests" / "manifest.xml.prev").is_file()
    assert (bundle / "orders.xml.prev").read_bytes() != (bundle / "orders.xml").read_bytes()
    # backups never become descriptor candidates
    path, _ = find_and_parse(bundle)
    assert path.name == "orders.xml"


def test_hash_failure_policy_flows_through_config(bundle):
    (bundle / "policies" / "Nested.xml").mkdir()
    result = generate(RunConfig(bundle_dir=bundle))
    assert result.hash_failures == 1
    doc = parse_manifest((bundle / "manifests" / "manifest.xml").read_bytes())
    assert {e.name: e.digest for e in doc.policies}["Nested"] == "SHA-512:"

    with pytest.raises(BundleIOError):
        generate(RunConfig(bundle_dir=bundle, on_hash_error=OnHashError.ABORT))


def test_verify_clean_after_generate(bundle):
    generate(RunConfig(bundle_dir=bundle))
    report = verify(RunConfig(bundle_dir=bundle))
    assert report.ok
    assert report.drift == []


def test_verify_detects_changed_resource(bundle):
    generate(RunConfig(bundle_dir=bundle))
    manifest_before = (bundle / "manifests" / "manifest.xml").read_bytes()
    (bundle / "resources" / "jsc" / "util.js").write_bytes(b"changed")
    report = verify(RunConfig(bundle_dir=bundle))
    assert not report.ok
    assert report.descriptor_in_sync is True
    assert [(d.category, d.changed) for d in report.drift] == [("Resources", ("jsc://util.js",))]
    assert (bundle / "manifests" / "manifest.xml").read_bytes() == manifest_before


def test_verify_reports_missing_manifest(bundle):
    report = verify(RunConfig(bundle_dir=bundle))
    assert report.manifest_missing
    assert not report.ok
    assert {d.category for d in report.drift} == {"Policies", "ProxyEndpoints", "Resources"}


def test_verify_detects_stale_descriptor(bundle):
    generate(RunConfig(bundle_dir=bundle))
    (bundle / "orders.xml").write_bytes(DESCRIPTOR_XML)
    report = verify(RunConfig(bundle_dir=bundle))
    assert report.bytes_match
    assert not report.descriptor_in_sync
    assert not report.ok
