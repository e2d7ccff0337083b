"""did:lac1 identifier codec"""

from .did_lac1 import (
    Lac1Identifier,
    checksum,
    encode,
    encode_did,
    decode,
    is_valid_did
)

__all__ = [
    'Lac1Identifier',
    'checksum',
    'encode',
    'encode_did',
    'decode',
    'is_valid_did'
]
