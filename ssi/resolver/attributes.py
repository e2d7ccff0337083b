"""
Attribute and Relationship Resolver

Turns registry attributes and delegates into verification methods,
relationship entries and services.

Attribute names follow `{type}/{controller}/{algorithm}/{encoding}`:

    vm/did:lac1:1iT5.../esecp256k1rm/hex     verification method
    auth/0xabc.../edd25519vk/base58          new key, bound to authentication
    asse///                                  bind an existing method id
    svc//mailbox/hex                         service of type "mailbox"

Relationship types: auth (authentication), asse (assertionMethod),
keya (keyAgreement), dele (capabilityDelegation), invo (capabilityInvocation).
"""

import base64
import json
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Hashable, Optional, Union

import base58
from eth_utils import keccak, to_canonical_address, to_checksum_address

from blockchain.events import ChangeEvent
from ssi.did.constants import (
    KEY_ALGORITHMS,
    LAC1_SIG_AUTH_BYTES32_DELEGATE_TYPE,
    LAC1_VERI_KEY_BYTES32_DELEGATE_TYPE,
    bytes32_to_string,
)

if TYPE_CHECKING:
    from ssi.resolver.replay import DocumentState

logger = logging.getLogger(__name__)

ATTRIBUTE_NAME_PATTERN = re.compile(r"(vm|auth|asse|keya|dele|invo|svc)/(.+)?/(\w+)?/(\w+)?$")
RELATIONSHIP_TYPES = ("auth", "asse", "keya", "dele", "invo")

DELEGATE_ALGORITHM = "esecp256k1rm"
BLOCKCHAIN_ENCODING = "blockchain"


@dataclass(frozen=True)
class AttributeKey:
    relationship: str
    controller: Optional[str]
    algorithm: Optional[str]
    encoding: Optional[str]


def parse_attribute_name(name: Union[bytes, str, None]) -> Optional[AttributeKey]:
    """
    Split an attribute name into its parts.

    Args:
        name: On-chain attribute name (NUL padded bytes) or plain string

    Returns:
        AttributeKey, or None when the name does not follow the convention
    """
    if name is None:
        return None
    if isinstance(name, bytes):
        name = bytes32_to_string(name)
    match = ATTRIBUTE_NAME_PATTERN.search(name)
    if not match:
        return None
    return AttributeKey(*match.groups())


def content_identifier(context: str, value: bytes) -> str:
    """
    Deterministic fragment for a verification method or service.

    base58(keccak256(utf8(context) || value)), so the same context/value pair
    always yields the same id regardless of when it was added.
    """
    return base58.b58encode(keccak(context.encode("utf-8") + value)).decode("ascii")


def compute_caip10(chain_id: int, address: Union[bytes, str]) -> str:
    """CAIP-10 account id, e.g. eip155:648540:0xAbC..."""
    return f"eip155:{chain_id}:{to_checksum_address(address)}"


def build_verification_method(
    did: str,
    algorithm: Optional[str],
    encoding: Optional[str],
    value: bytes,
    controller: str,
    method_id: str,
    chain_id: int
) -> dict:
    """
    Render one verification method with the key field selected by encoding.

    Raises:
        ValueError: If the algorithm is missing or the value cannot be
            rendered in the given encoding
    """
    if not algorithm:
        raise ValueError("Missing key algorithm")
    verification_method = {
        "id": f"{did}#{method_id}",
        "type": KEY_ALGORITHMS.get(algorithm, algorithm),
        "controller": controller,
    }
    if encoding is None or encoding == "hex":
        verification_method["publicKeyHex"] = value.hex()
    elif encoding == BLOCKCHAIN_ENCODING:
        verification_method["blockchainAccountId"] = compute_caip10(chain_id, value)
    elif encoding == "base64":
        verification_method["publicKeyBase64"] = base64.b64encode(value).decode("ascii")
    elif encoding == "base58":
        verification_method["publicKeyBase58"] = base58.b58encode(value).decode("ascii")
    elif encoding == "pem":
        verification_method["publicKeyPem"] = value.decode("utf-8")
    elif encoding == "json":
        verification_method["publicKeyJwk"] = json.loads(value.decode("utf-8"))
    else:
        raise ValueError(f"Unsupported key encoding: {encoding}")
    return verification_method


def apply_attribute(
    state: "DocumentState",
    did: str,
    chain_id: int,
    event: ChangeEvent,
    key: Hashable
) -> None:
    """
    Apply a still-valid DIDAttributeChanged event to the document state.

    Malformed names and undecodable values are skipped, never raised.
    """
    attribute = parse_attribute_name(event.name)
    if attribute is None:
        logger.debug(f"Ignoring attribute with unrecognised name {event.name!r}")
        return
    if attribute.encoding == BLOCKCHAIN_ENCODING:
        # Blockchain accounts are only taken from on-chain delegates
        return

    relationship = attribute.relationship
    controller = attribute.controller or did
    value = event.value or b""

    try:
        if relationship == "svc":
            if not attribute.algorithm:
                raise ValueError("Missing service type")
            state.services[key] = {
                "id": f"{did}#{content_identifier(relationship, value)}",
                "type": attribute.algorithm,
                "serviceEndpoint": value.decode("utf-8"),
            }
            return

        if relationship != "vm" and not attribute.algorithm and not attribute.encoding:
            state.relationships[relationship][key] = value.decode("utf-8")
            return

        verification_method = build_verification_method(
            did,
            attribute.algorithm,
            attribute.encoding,
            value,
            controller,
            content_identifier(controller, value),
            chain_id,
        )
    except ValueError as e:
        logger.warning(f"Skipping attribute {relationship} for {did}: {e}")
        return

    state.verification_methods[key] = verification_method
    if relationship in RELATIONSHIP_TYPES:
        state.relationships[relationship][key] = verification_method["id"]


def apply_delegate(
    state: "DocumentState",
    did: str,
    chain_id: int,
    event: ChangeEvent,
    key: Hashable
) -> None:
    """
    Apply a still-valid DIDDelegateChanged event.

    sigAuth delegates join authentication, veriKey delegates join
    assertionMethod; any other delegate type is ignored.
    """
    if event.delegate_type == LAC1_SIG_AUTH_BYTES32_DELEGATE_TYPE:
        relationship = "auth"
    elif event.delegate_type == LAC1_VERI_KEY_BYTES32_DELEGATE_TYPE:
        relationship = "asse"
    else:
        return

    delegate = to_canonical_address(event.delegate)
    verification_method = build_verification_method(
        did,
        DELEGATE_ALGORITHM,
        BLOCKCHAIN_ENCODING,
        delegate,
        did,
        content_identifier(did, delegate),
        chain_id,
    )
    state.verification_methods[key] = verification_method
    state.relationships[relationship][key] = verification_method["id"]
