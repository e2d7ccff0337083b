"""
lac1 DID Resolver

Resolves did:lac1 identifiers to DID Documents:

1. Decode the DID -> identity address, registry address, chain id
2. Pick the configured network for that chain id
3. Walk the registry change log of the identity
4. Replay the history at the current time
5. Render the document (reference or explicit mode)

Nothing is cached between calls; every resolve reads the chain again.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from blockchain.change_log import RegistrySource, change_log
from blockchain.registry import DIDRegistryReader, connect
from ssi.did.did_lac1 import chain_id_to_int, decode, encode_did, is_valid_did
from ssi.errors import InvalidDID, NetworkNotConfigured
from ssi.resolver.document import DocumentMode, build_document, render
from ssi.resolver.replay import replay

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkConfig:
    """A chain the resolver can read from."""

    chain_id: int
    rpc_url: str
    registry: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NetworkConfig":
        """
        Accepts camelCase ({"chainId", "rpcUrl"}) or snake_case keys.
        chainId may be an int, a decimal string or a 0x hex string.
        """
        chain_id = data.get("chainId", data.get("chain_id"))
        rpc_url = data.get("rpcUrl", data.get("rpc_url"))
        if chain_id is None or not rpc_url:
            raise ValueError(f"Network entry needs chainId and rpcUrl: {data}")
        if isinstance(chain_id, str):
            chain_id = int(chain_id, 0)
        return cls(
            chain_id=chain_id,
            rpc_url=rpc_url,
            registry=data.get("registry"),
            name=data.get("name"),
        )


RegistryFactory = Callable[[NetworkConfig, str], RegistrySource]


class Lac1Resolver:
    """
    Stateless did:lac1 resolver.

    Example:
        >>> resolver = Lac1Resolver([NetworkConfig(648540, "http://localhost:4545")])
        >>> document = resolver.resolve("did:lac1:1iT5...")
        >>> document["verificationMethod"][0]["id"]
        'did:lac1:1iT5...#controller'
    """

    def __init__(
        self,
        networks: Iterable[NetworkConfig],
        mode: Union[DocumentMode, str] = DocumentMode.REFERENCE,
        registry_factory: Optional[RegistryFactory] = None,
        clock: Callable[[], float] = time.time,
        timeout: int = 30
    ):
        """
        Args:
            networks: Networks to resolve against, matched by chain id
            mode: Document rendering mode
            registry_factory: Builds a registry reader for (network, registry address);
                defaults to a web3 HTTP reader
            clock: Returns the current unix time, read once per resolve call
            timeout: RPC timeout in seconds for the default registry factory
        """
        self.networks: List[NetworkConfig] = list(networks)
        self.mode = DocumentMode(mode)
        self.clock = clock
        self.timeout = timeout
        self.registry_factory = registry_factory or self._web3_registry

    def _web3_registry(self, network: NetworkConfig, registry_address: str) -> RegistrySource:
        return DIDRegistryReader(connect(network.rpc_url, self.timeout), registry_address)

    def find_network(self, chain_id: Union[int, str]) -> NetworkConfig:
        chain_id = chain_id_to_int(chain_id)
        for network in self.networks:
            if network.chain_id == chain_id:
                return network
        raise NetworkNotConfigured(f"No available network for chain id {chain_id}")

    def resolve(self, did: str) -> dict:
        """
        Resolve a did:lac1 DID to its current DID Document.

        Raises:
            InvalidDID: Malformed DID or checksum mismatch
            UnsupportedDIDType: Unknown DID type code
            NetworkNotConfigured: No network for the DID's chain id
            TransportFailure: Registry RPC failure
        """
        if not is_valid_did(did):
            raise InvalidDID(f"Invalid DID: {did}")
        identifier = decode(did)
        network = self.find_network(identifier.chain_id)

        registry = self.registry_factory(network, identifier.did_registry_address)
        log = change_log(identifier.address, registry)

        controller_did = encode_did(
            identifier.did_type,
            identifier.chain_id,
            log.controller,
            identifier.did_registry_address,
            identifier.version,
        )
        now = int(self.clock())
        state = replay(did, identifier.chain_id_int, log.controller, log.history, now)
        document = render(build_document(state, did, controller_did), self.mode)

        logger.info(f"Resolved {did} ({len(log.history)} events, mode={self.mode.value})")
        return document


def get_resolver(config: Optional[Dict[str, Any]] = None) -> Dict[str, Callable[[str], dict]]:
    """
    did-resolver style registration: {"lac1": resolve}.

    Args:
        config: {"networks": [{"chainId", "rpcUrl", "registry"}, ...], "mode": "reference"}
    """
    config = config or {}
    networks = [NetworkConfig.from_dict(n) for n in config.get("networks", [])]
    resolver = Lac1Resolver(
        networks,
        mode=config.get("mode") or DocumentMode.REFERENCE,
        registry_factory=config.get("registry_factory"),
        timeout=config.get("timeout", 30),
    )
    return {"lac1": resolver.resolve}
