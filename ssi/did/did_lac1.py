"""
lac1 DID Identifier Codec

Encodes and decodes did:lac1 identifiers. A lac1 DID embeds everything needed
to locate its on-chain history:

    did:lac1:<base58(version | typeCode | address | registry | chainId | checksum)>

- version (2 bytes): registry contract version
- typeCode (2 bytes): DID type, only "0001" is supported
- address (20 bytes): the identity address
- registry (20 bytes): DID registry contract address
- chainId (variable): minimal big-endian chain id
- checksum (4 bytes): first 4 bytes of keccak256 over all preceding bytes

The checksum detects accidental corruption, it is not a security feature.
"""

import re
from dataclasses import dataclass
from typing import Union

import base58
from eth_utils import keccak, to_canonical_address, to_checksum_address

from ssi.did.constants import LAC1_DID_METHOD_NAME, LAC1_DID_PREFIX, LAC1_DID_TYPE_CODE
from ssi.errors import InvalidDID, UnsupportedDIDType

CHECKSUM_LENGTH = 4
ADDRESS_LENGTH = 20
HEADER_LENGTH = 4  # version (2) + type code (2)
MIN_PAYLOAD_LENGTH = HEADER_LENGTH + 2 * ADDRESS_LENGTH + 1 + CHECKSUM_LENGTH

DID_PATTERN = re.compile(
    r"^did:" + LAC1_DID_METHOD_NAME + r":[123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz]+$"
)

ChainId = Union[int, str]


@dataclass(frozen=True)
class Lac1Identifier:
    """Fields recovered from a did:lac1 identifier."""

    address: str
    did_registry_address: str
    chain_id: str  # "0x" prefixed hex
    version: str
    did_type: str
    did_method: str = LAC1_DID_METHOD_NAME

    @property
    def chain_id_int(self) -> int:
        return int(self.chain_id, 16)


def checksum(payload: bytes) -> bytes:
    """Return the first 4 bytes of keccak256(payload)."""
    return keccak(payload)[:CHECKSUM_LENGTH]


def _strip_hex_prefix(value: str) -> str:
    return value[2:] if value.startswith("0x") else value


def _fixed_hex(value: str, length: int, label: str) -> bytes:
    raw = bytes.fromhex(_strip_hex_prefix(value))
    if len(raw) != length:
        raise ValueError(f"{label} must be {length} bytes, got {len(raw)}")
    return raw


def chain_id_to_int(chain_id: ChainId) -> int:
    """
    Normalise a chain id given as an int or a hex string ("0x9e55c" or "9e55c").
    """
    if isinstance(chain_id, int):
        value = chain_id
    else:
        value = int(_strip_hex_prefix(chain_id), 16)
    if value < 0:
        raise ValueError(f"Invalid chain id: {chain_id}")
    return value


def chain_id_to_bytes(chain_id: ChainId) -> bytes:
    value = chain_id_to_int(chain_id)
    return value.to_bytes(max(1, (value.bit_length() + 7) // 8), "big")


def version_to_hex(version_number: int) -> str:
    """
    Render a registry contract version as the 2-byte DID version field.

    Example:
        >>> version_to_hex(1)
        '0001'
    """
    if not 0 <= version_number < 256 * 256 - 1:
        raise ValueError(f"Invalid version number, got: {version_number}")
    return version_number.to_bytes(2, "big").hex()


def get_lacchain_data_buffer(chain_id: ChainId, address: str, did_registry: str) -> bytes:
    return (
        to_canonical_address(address)
        + to_canonical_address(did_registry)
        + chain_id_to_bytes(chain_id)
    )


def encode(
    did_type: str,
    chain_id: ChainId,
    address: str,
    did_registry: str,
    did_version: str
) -> str:
    """
    Encode the method specific part of a did:lac1 identifier.

    Args:
        did_type: 2-byte type code as hex (e.g. "0001")
        chain_id: Chain id as int or hex string
        address: Identity address (0x...)
        did_registry: DID registry contract address (0x...)
        did_version: 2-byte registry version as hex (e.g. "0001")

    Returns:
        Base58 string without the "did:lac1:" prefix

    Raises:
        ValueError: If an address or fixed-width field is malformed
    """
    payload = (
        _fixed_hex(did_version, 2, "DID version")
        + _fixed_hex(did_type, 2, "DID type")
        + get_lacchain_data_buffer(chain_id, address, did_registry)
    )
    return base58.b58encode(payload + checksum(payload)).decode("ascii")


def encode_did(
    did_type: str,
    chain_id: ChainId,
    address: str,
    did_registry: str,
    did_version: str
) -> str:
    """Same as encode() but returns the full "did:lac1:..." string."""
    return LAC1_DID_PREFIX + encode(did_type, chain_id, address, did_registry, did_version)


def is_valid_did(did: str) -> bool:
    return bool(DID_PATTERN.match(did or ""))


def decode(did: str) -> Lac1Identifier:
    """
    Decode a did:lac1 identifier.

    Args:
        did: Full DID ("did:lac1:...") or its base58 method specific part

    Returns:
        Lac1Identifier with checksummed addresses and a "0x" hex chain id

    Raises:
        InvalidDID: Bad base58, truncated payload or checksum mismatch
        UnsupportedDIDType: Checksum is fine but the type code is unknown

    Example:
        >>> ident = decode(encode_did("0001", 0x9e55c, addr, registry, "0001"))
        >>> ident.chain_id
        '0x9e55c'
    """
    trimmed = did[len(LAC1_DID_PREFIX):] if did.startswith(LAC1_DID_PREFIX) else did
    try:
        data = base58.b58decode(trimmed)
    except ValueError as e:
        raise InvalidDID(f"Invalid base58 payload: {e}") from e

    if len(data) < MIN_PAYLOAD_LENGTH:
        raise InvalidDID(f"DID payload too short: {len(data)} bytes")

    encoded_payload = data[:-CHECKSUM_LENGTH]
    if checksum(encoded_payload) != data[-CHECKSUM_LENGTH:]:
        raise InvalidDID("Checksum mismatch")

    version = data[0:2].hex()
    did_type = data[2:4].hex()
    # 0001 is the only type code the registry defines
    if did_type != LAC1_DID_TYPE_CODE:
        raise UnsupportedDIDType(f"Unsupported did type: {did_type}")

    address = to_checksum_address(data[4:24])
    did_registry_address = to_checksum_address(data[24:44])

    # Minimal chain id bytes may carry one leading zero nibble
    c = data[44:-CHECKSUM_LENGTH].hex()
    if c[0] == "0":
        c = c[1:]

    return Lac1Identifier(
        address=address,
        did_registry_address=did_registry_address,
        chain_id="0x" + c,
        version=version,
        did_type=did_type,
    )
