"""did:lac1 DID Document resolver"""

from .document import DocumentMode
from .resolver import Lac1Resolver, NetworkConfig, get_resolver

__all__ = [
    'DocumentMode',
    'Lac1Resolver',
    'NetworkConfig',
    'get_resolver'
]
