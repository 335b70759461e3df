import sys
from pathlib import Path

import pytest

# Ensure repository root is on sys.path so tests can import local modules
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

POLICY_XML = b"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<VerifyAPIKey async="false" continueOnError="false" enabled="true" name="Verify-API-Key">
    <APIKey ref="request.queryparam.apikey"/>
</VerifyAPIKey>
"""

PROXY_ENDPOINT_XML = b"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<ProxyEndpoint name="default">
    <HTTPProxyConnection>
        <BasePath>/v1/orders</BasePath>
    </HTTPProxyConnection>
</ProxyEndpoint>
"""

DESCRIPTOR_XML = b"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<APIProxy revision="3" name="orders">
    <Basepaths>/v1/orders</Basepaths>
    <ConfigurationVersion majorVersion="4" minorVersion="0"/>
    <CreatedAt>1500000000000</CreatedAt>
    <CreatedBy>dev@example.com</CreatedBy>
    <Description>Orders API</Description>
    <DisplayName>orders</DisplayName>
    <LastModifiedAt>1500000001000</LastModifiedAt>
    <LastModifiedBy>dev@example.com</LastModifiedBy>
    <ManifestVersion>SHA-512:old</ManifestVersion>
    <Policies>
        <Policy>Verify-API-Key</Policy>
    </Policies>
    <ProxyEndpoints>
        <ProxyEndpoint>default</ProxyEndpoint>
    </ProxyEndpoints>
    <Resources>
        <Resource>jsc://util.js</Resource>
    </Resources>
    <Spec></Spec>
    <TargetServers/>
    <TargetEndpoints/>
</APIProxy>
"""


def make_bundle(root: Path, *, descriptor: bytes = DESCRIPTOR_XML, resources: bool = True) -> Path:
    """Create a minimal apiproxy bundle under ``root`` and return the apiproxy folder."""
    bundle = root / "apiproxy"
    (bundle / "policies").mkdir(parents=True)
    (bundle / "proxies").mkdir()
    (bundle / "manifests").mkdir()
    (bundle / "policies" / "Verify-API-Key.xml").write_bytes(POLICY_XML)
    (bundle / "proxies" / "default.xml").write_bytes(PROXY_ENDPOINT_XML)
    if resources:
        (bundle / "resources" / "jsc").mkdir(parents=True)
        (bundle / "resources" / "jsc" / "util.js").write_bytes(b"function util() { return 1; }\n")
    (bundle / "orders.xml").write_bytes(descriptor)
    return bundle


@pytest.fixture
def bundle(tmp_path):
    return make_bundle(tmp_path)


@pytest.fixture(autouse=True)
def _no_progress(monkeypatch):
    # keep tqdm output out of captured stderr
    monkeypatch.setenv("PROXY_MANIFEST_TQDM", "0")
    for name in ("PROXY_MANIFEST_ON_HASH_ERROR", "PROXY_MANIFEST_DRY_RUN", "PROXY_MANIFEST_BACKUP", "PROXY_MANIFEST_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    yield
