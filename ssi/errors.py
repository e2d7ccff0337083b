"""
DID Resolution Errors

Typed failures raised while resolving did:lac1 identifiers.
Codec and configuration errors are raised where they are detected;
transport errors are raised by the registry reader and abort the
whole resolve call.
"""


class DIDResolutionError(Exception):
    """Base class for every resolution failure."""
    pass


class InvalidDID(DIDResolutionError):
    """Raised when a DID string is malformed or fails its checksum."""
    pass


class UnsupportedDIDType(InvalidDID):
    """Raised when a well-formed DID carries an unknown type code."""
    pass


class NetworkNotConfigured(DIDResolutionError):
    """Raised when no configured network matches the DID's chain id."""
    pass


class TransportFailure(DIDResolutionError):
    """Raised when an RPC call or log query against the registry fails."""
    pass
