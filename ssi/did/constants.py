"""
lac1 DID Method Constants

Identifiers shared by the codec, the registry reader and the replay engine.
"""

LAC1_DID_METHOD_NAME = "lac1"
LAC1_DID_PREFIX = f"did:{LAC1_DID_METHOD_NAME}:"
LAC1_DID_TYPE_CODE = "0001"

# Registry event names (fixed contract ABI)
LAC1_DID_ATTRIBUTE_CHANGED_EVENT_NAME = "DIDAttributeChanged"
LAC1_DID_DELEGATE_CHANGED_EVENT_NAME = "DIDDelegateChanged"
LAC1_DID_AKA_CHANGED_EVENT_NAME = "AKAChanged"

LAC1_SIG_AUTH_DELEGATE_TYPE_NAME = "sigAuth"
LAC1_VERI_KEY_DELEGATE_TYPE_NAME = "veriKey"


def string_to_bytes32(value: str) -> bytes:
    """
    Right-pad a UTF-8 string with NUL bytes to 32 bytes (Solidity bytes32).

    Example:
        >>> string_to_bytes32("sigAuth")[:7]
        b'sigAuth'
    """
    return value.encode("utf-8")[:32].ljust(32, b"\x00")


def bytes32_to_string(value: bytes) -> str:
    """Decode a NUL padded bytes value back to a string; invalid UTF-8 becomes U+FFFD."""
    return value.decode("utf-8", errors="replace").rstrip("\x00")


LAC1_SIG_AUTH_BYTES32_DELEGATE_TYPE = string_to_bytes32(LAC1_SIG_AUTH_DELEGATE_TYPE_NAME)
LAC1_VERI_KEY_BYTES32_DELEGATE_TYPE = string_to_bytes32(LAC1_VERI_KEY_DELEGATE_TYPE_NAME)

DEFAULT_CONTROLLER_METHOD_TYPE = "EcdsaSecp256k1RecoveryMethod2020"

# Attribute name algorithm -> verification method type
KEY_ALGORITHMS = {
    "jwk": "JsonWebKey2020",
    "esecp256k1vk": "EcdsaSecp256k1VerificationKey2019",
    "esecp256k1rm": "EcdsaSecp256k1RecoveryMethod2020",
    "edd25519vk": "Ed25519VerificationKey2018",
    "gpgvk": "GpgVerificationKey2020",
    "rsavk": "RsaVerificationKey2018",
    "x25519ka": "X25519KeyAgreementKey2019",
    "ssecp256k1vk": "SchnorrSecp256k1VerificationKey2019",
}

DID_DOCUMENT_CONTEXT = [
    "https://w3id.org/did/v1",
    "https://w3id.org/security/suites/jws-2020/v1",
]
