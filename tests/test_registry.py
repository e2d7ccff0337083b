"""
DID Registry Reader Tests

Log decoding against the registry ABI and RPC error mapping.
"""

from unittest.mock import MagicMock

import pytest
from eth_abi import encode as abi_encode
from eth_utils import to_checksum_address
from hexbytes import HexBytes
from requests.exceptions import ConnectionError as RequestsConnectionError
from web3 import Web3
from web3.exceptions import Web3Exception

from blockchain.events import EventKind
from blockchain.registry import (
    DIDRegistryReader,
    event_topic,
    identity_topic,
    load_registry_abi,
)
from ssi.did.constants import string_to_bytes32
from ssi.errors import TransportFailure

from factories import DELEGATE, IDENTITY, REGISTRY


def _event_abi(name):
    return next(e for e in load_registry_abi() if e["type"] == "event" and e["name"] == name)


def _raw_log(event_name, values, block_number=42):
    event_abi = _event_abi(event_name)
    data_types = [i["type"] for i in event_abi["inputs"] if not i["indexed"]]
    return {
        "address": to_checksum_address(REGISTRY),
        "topics": [HexBytes(event_topic(event_abi)), HexBytes(identity_topic(IDENTITY))],
        "data": HexBytes(abi_encode(data_types, values)),
        "blockNumber": block_number,
        "blockHash": HexBytes(b"\x22" * 32),
        "transactionHash": HexBytes(b"\x11" * 32),
        "transactionIndex": 0,
        "logIndex": 0,
    }


@pytest.fixture
def reader():
    return DIDRegistryReader(Web3(), REGISTRY)


def test_identity_topic_is_left_padded():
    topic = identity_topic(IDENTITY)
    assert len(topic) == 66
    assert topic.endswith(IDENTITY[2:].lower())
    assert topic.startswith("0x" + "0" * 24)


def test_decode_attribute_changed(reader):
    log = _raw_log(
        "DIDAttributeChanged",
        [b"vm//esecp256k1rm/hex", b"\x04\x01\x02", 1_800_000_000, 1_700_000_000, 17, False],
    )

    event = reader.decode_log(log)

    assert event.kind is EventKind.ATTRIBUTE_CHANGED
    assert event.identity == to_checksum_address(IDENTITY)
    assert event.name == b"vm//esecp256k1rm/hex"
    assert event.value == b"\x04\x01\x02"
    assert event.valid_to == 1_800_000_000
    assert event.previous_change == 17
    assert event.block_number == 42
    assert event.transaction_hash == "0x" + "11" * 32


def test_decode_delegate_changed(reader):
    log = _raw_log(
        "DIDDelegateChanged",
        [string_to_bytes32("sigAuth"), DELEGATE, 1_800_000_000, 1_700_000_000, 3, False],
    )

    event = reader.decode_log(log)

    assert event.kind is EventKind.DELEGATE_CHANGED
    assert event.delegate_type == string_to_bytes32("sigAuth")
    assert event.delegate == to_checksum_address(DELEGATE)
    assert event.previous_change == 3


def test_decode_aka_changed(reader):
    log = _raw_log("AKAChanged", ["id:123", 1_800_000_000, 1_700_000_000, 0])

    event = reader.decode_log(log)

    assert event.kind is EventKind.AKA_CHANGED
    assert event.aka_id == "id:123"
    assert event.previous_change == 0


def test_decode_unknown_event_returns_none(reader):
    log = _raw_log("AKAChanged", ["id:123", 1, 1, 0])
    log["topics"][0] = HexBytes(b"\x00" * 32)
    assert reader.decode_log(log) is None


def test_query_logs_filters_by_identity_at_block():
    w3 = MagicMock()
    w3.eth.get_logs.return_value = ["log-a", "log-b"]
    reader = DIDRegistryReader(w3, REGISTRY)

    logs = reader.query_logs(IDENTITY, 100, 100)

    assert logs == ["log-a", "log-b"]
    w3.eth.get_logs.assert_called_once_with({
        "address": to_checksum_address(REGISTRY),
        "topics": [None, identity_topic(IDENTITY)],
        "fromBlock": 100,
        "toBlock": 100,
    })


def test_rpc_errors_become_transport_failures():
    w3 = MagicMock()
    w3.eth.get_logs.side_effect = RequestsConnectionError("connection refused")
    reader = DIDRegistryReader(w3, REGISTRY)

    with pytest.raises(TransportFailure):
        reader.query_logs(IDENTITY, 1, 1)

    reader.contract.functions.changed.return_value.call.side_effect = Web3Exception("boom")
    with pytest.raises(TransportFailure):
        reader.changed(IDENTITY)


def test_changed_and_controller_calls():
    w3 = MagicMock()
    reader = DIDRegistryReader(w3, REGISTRY)
    reader.contract.functions.changed.return_value.call.return_value = 1234
    reader.contract.functions.identityController.return_value.call.return_value = DELEGATE

    assert reader.changed(IDENTITY) == 1234
    assert reader.identity_controller(IDENTITY) == DELEGATE
    reader.contract.functions.changed.assert_called_with(to_checksum_address(IDENTITY))
