"""
lac1 Resolver Tests

End-to-end resolution against an in-memory registry.
"""

import json

import pytest
from eth_account import Account
from eth_utils import to_checksum_address

from ssi.did.did_lac1 import encode_did
from ssi.errors import InvalidDID, NetworkNotConfigured, TransportFailure, UnsupportedDIDType
from ssi.resolver import config
from ssi.resolver.document import DocumentMode
from ssi.resolver.resolver import Lac1Resolver, NetworkConfig, get_resolver

from factories import (
    CHAIN_ID,
    DID,
    DID_TYPE,
    IDENTITY,
    NEW_CONTROLLER,
    NOW,
    PUBLIC_KEY,
    REGISTRY,
    VERSION,
    FakeRegistry,
    aka_event,
    attribute_event,
    delegate_event,
    linked_registry,
)

NETWORK = NetworkConfig(chain_id=CHAIN_ID, rpc_url="http://localhost:4545", name="openprotest")


class RecordingFactory:
    """registry_factory that hands out one fake registry and records calls"""

    def __init__(self, registry):
        self.registry = registry
        self.calls = []

    def __call__(self, network, registry_address):
        self.calls.append((network, registry_address))
        return self.registry


@pytest.fixture
def empty_factory():
    return RecordingFactory(FakeRegistry({}))


def _resolver(factory, mode=DocumentMode.REFERENCE, now=NOW):
    return Lac1Resolver([NETWORK], mode=mode, registry_factory=factory, clock=lambda: now)


class TestResolve:

    def test_fresh_identity(self, empty_factory):
        document = _resolver(empty_factory).resolve(DID)

        assert document["id"] == DID
        assert document["controller"] == DID
        [default] = document["verificationMethod"]
        assert default["id"] == f"{DID}#controller"
        assert default["blockchainAccountId"] == f"eip155:{CHAIN_ID}:{to_checksum_address(IDENTITY)}"
        assert document["authentication"] == [default]
        assert document["assertionMethod"] == [default]
        assert "alsoKnownAs" not in document
        assert "service" not in document

    def test_registry_is_built_for_did_network(self, empty_factory):
        _resolver(empty_factory).resolve(DID)
        assert empty_factory.calls == [(NETWORK, to_checksum_address(REGISTRY))]

    def test_rotated_controller(self):
        registry = linked_registry({10: [aka_event("id:1")]}, controller=NEW_CONTROLLER)

        document = _resolver(RecordingFactory(registry)).resolve(DID)

        assert document["controller"] == encode_did(DID_TYPE, CHAIN_ID, NEW_CONTROLLER, REGISTRY, VERSION)
        assert document["verificationMethod"][0]["blockchainAccountId"].endswith(
            to_checksum_address(NEW_CONTROLLER)
        )
        assert document["alsoKnownAs"] == ["id:1"]

    def test_full_history(self):
        registry = linked_registry({
            100: [attribute_event("vm//esecp256k1rm/hex", PUBLIC_KEY)],
            120: [delegate_event("sigAuth"), attribute_event("svc//mailbox/hex", "https://mail.example")],
            150: [delegate_event("sigAuth", valid_to=NOW - 1)],
        })

        document = _resolver(RecordingFactory(registry), mode=DocumentMode.EXPLICIT).resolve(DID)

        assert len(document["verificationMethod"]) == 2
        assert document["authentication"] == [f"{DID}#controller"]
        assert document["service"][0]["serviceEndpoint"] == "https://mail.example"
        assert registry.queried == [150, 120, 100]

    def test_delegate_account(self):
        """A delegate registered for a signing account shows up as its CAIP-10 id"""
        account = Account.from_key("0x" + "4c" * 32)
        registry = linked_registry({
            60: [delegate_event("sigAuth", account.address), delegate_event("veriKey", account.address)],
        })

        document = _resolver(RecordingFactory(registry), mode=DocumentMode.EXPLICIT).resolve(DID)

        [default, delegate] = document["verificationMethod"]
        assert delegate["blockchainAccountId"] == f"eip155:{CHAIN_ID}:{account.address}"
        assert document["authentication"] == [default["id"], delegate["id"]]
        assert document["assertionMethod"] == [default["id"], delegate["id"]]

    def test_clock_is_read_per_call(self):
        registry = linked_registry({5: [attribute_event("vm//esecp256k1rm/hex", PUBLIC_KEY, valid_to=NOW)]})
        times = iter([NOW, NOW + 1])
        resolver = Lac1Resolver([NETWORK], registry_factory=RecordingFactory(registry), clock=lambda: next(times))

        assert len(resolver.resolve(DID)["verificationMethod"]) == 2
        assert len(resolver.resolve(DID)["verificationMethod"]) == 1

    @pytest.mark.parametrize("did", [
        "did:lac:main:0xcd7ebd413d512b47d1d48e5ed27fe01c8c29fd98",
        "did:lac1:",
        "not-a-did",
        "did:lac1:1111111111",
    ])
    def test_invalid_did(self, empty_factory, did):
        with pytest.raises(InvalidDID):
            _resolver(empty_factory).resolve(did)
        assert empty_factory.calls == []

    def test_unsupported_type(self, empty_factory):
        did = encode_did("0002", CHAIN_ID, IDENTITY, REGISTRY, VERSION)
        with pytest.raises(UnsupportedDIDType):
            _resolver(empty_factory).resolve(did)

    def test_unknown_network(self, empty_factory):
        did = encode_did(DID_TYPE, 1, IDENTITY, REGISTRY, VERSION)
        with pytest.raises(NetworkNotConfigured):
            _resolver(empty_factory).resolve(did)
        assert empty_factory.calls == []

    def test_transport_failure_propagates(self):
        class DownRegistry(FakeRegistry):
            def changed(self, identity):
                raise TransportFailure("changed failed: connection refused")

        with pytest.raises(TransportFailure):
            _resolver(RecordingFactory(DownRegistry({}))).resolve(DID)


class TestNetworks:

    def test_find_network_by_hex_chain_id(self, empty_factory):
        resolver = _resolver(empty_factory)
        assert resolver.find_network("0x9e55c") is NETWORK
        assert resolver.find_network(CHAIN_ID) is NETWORK
        with pytest.raises(NetworkNotConfigured):
            resolver.find_network(1)

    @pytest.mark.parametrize("entry", [
        {"chainId": "0x9e55c", "rpcUrl": "http://node:4545"},
        {"chainId": 648540, "rpcUrl": "http://node:4545"},
        {"chain_id": "648540", "rpc_url": "http://node:4545"},
    ])
    def test_from_dict(self, entry):
        network = NetworkConfig.from_dict(entry)
        assert network.chain_id == CHAIN_ID
        assert network.rpc_url == "http://node:4545"

    def test_from_dict_requires_chain_and_url(self):
        with pytest.raises(ValueError):
            NetworkConfig.from_dict({"chainId": 1})
        with pytest.raises(ValueError):
            NetworkConfig.from_dict({"rpcUrl": "http://node:4545"})

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            Lac1Resolver([NETWORK], mode="compact")


def test_get_resolver_registration():
    factory = RecordingFactory(FakeRegistry({}))
    registration = get_resolver({
        "networks": [{"chainId": CHAIN_ID, "rpcUrl": "http://localhost:4545"}],
        "mode": "explicit",
        "registry_factory": factory,
    })

    assert set(registration) == {"lac1"}
    document = registration["lac1"](DID)
    assert document["authentication"] == [f"{DID}#controller"]


class TestEnvironmentConfig:

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("LAC1_RPC_URL", "LAC1_CHAIN_ID", "LAC1_REGISTRY_ADDRESS",
                     "LAC1_NETWORKS_FILE", "LAC1_DOCUMENT_MODE", "LAC1_RPC_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)

    def test_single_network(self, monkeypatch):
        monkeypatch.setenv("LAC1_RPC_URL", "http://localhost:4545")
        monkeypatch.setenv("LAC1_CHAIN_ID", "0x9e55c")
        monkeypatch.setenv("LAC1_REGISTRY_ADDRESS", REGISTRY)

        [network] = config.load_networks()
        assert network.chain_id == CHAIN_ID
        assert network.registry == REGISTRY

    def test_networks_file(self, monkeypatch, tmp_path):
        networks_file = tmp_path / "networks.json"
        networks_file.write_text(json.dumps([
            {"chainId": "0x9e55c", "rpcUrl": "http://a:4545", "name": "openprotest"},
            {"chainId": 1, "rpcUrl": "http://b:8545"},
        ]))
        monkeypatch.setenv("LAC1_NETWORKS_FILE", str(networks_file))

        networks = config.load_networks()
        assert [n.chain_id for n in networks] == [CHAIN_ID, 1]
        assert networks[0].name == "openprotest"

    def test_missing_network(self):
        with pytest.raises(ValueError):
            config.load_networks()

    def test_mode_and_timeout(self, monkeypatch):
        monkeypatch.setenv("LAC1_RPC_URL", "http://localhost:4545")
        monkeypatch.setenv("LAC1_CHAIN_ID", str(CHAIN_ID))
        monkeypatch.setenv("LAC1_DOCUMENT_MODE", "EXPLICIT")
        monkeypatch.setenv("LAC1_RPC_TIMEOUT", "5")

        resolver = config.resolver_from_env()
        assert resolver.mode is DocumentMode.EXPLICIT
        assert resolver.timeout == 5

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("LAC1_RPC_URL", "http://localhost:4545")
        monkeypatch.setenv("LAC1_CHAIN_ID", str(CHAIN_ID))

        resolver = config.resolver_from_env()
        assert resolver.mode is DocumentMode.REFERENCE
        assert resolver.timeout == 30
