"""
DID Registry Reader

Read-only access to a lac1 DID registry contract over web3:

- changed(identity): block of the identity's latest change
- identityController(identity): current controller address
- eth_getLogs filtered by identity topic at an exact block
- decoding of raw logs into ChangeEvent objects using the fixed registry ABI

Transactions (attribute writes, controller rotation, ...) are not part of
this module.
"""

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

from eth_utils import keccak
from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import Web3Exception

from blockchain.events import ChangeEvent, EventKind
from ssi.errors import TransportFailure

logger = logging.getLogger(__name__)

ABI_PATH = Path(__file__).parent / "abis" / "DIDRegistry.json"


def load_registry_abi() -> List[Dict[str, Any]]:
    with open(ABI_PATH, "r") as f:
        return json.load(f)


def event_topic(event_abi: Dict[str, Any]) -> bytes:
    """keccak256 of the canonical event signature, e.g. AKAChanged(address,string,...)."""
    types = ",".join(i["type"] for i in event_abi["inputs"])
    return keccak(text=f"{event_abi['name']}({types})")


def identity_topic(identity: str) -> str:
    """Left-pad an address to a 32-byte log topic."""
    return "0x" + "0" * 24 + Web3.to_checksum_address(identity)[2:].lower()


@contextmanager
def rpc_call(operation: str):
    """Re-raise web3/HTTP failures as TransportFailure."""
    try:
        yield
    except (Web3Exception, RequestException) as e:
        raise TransportFailure(f"{operation} failed: {e}") from e


class DIDRegistryReader:
    """Read side of a DID registry contract"""

    def __init__(self, w3: Web3, registry_address: str, abi: Optional[List[Dict[str, Any]]] = None):
        """
        Args:
            w3: Web3 instance connected to the registry's chain
            registry_address: DID registry contract address
            abi: Registry ABI (defaults to blockchain/abis/DIDRegistry.json)
        """
        abi = abi or load_registry_abi()
        self.w3 = w3
        self.registry_address = Web3.to_checksum_address(registry_address)
        self.contract = w3.eth.contract(address=self.registry_address, abi=abi)
        self._event_names = {
            event_topic(entry): entry["name"]
            for entry in abi
            if entry.get("type") == "event"
        }

    def changed(self, identity: str) -> int:
        """Block number of the identity's latest change (0 if never changed)."""
        with rpc_call("changed"):
            return self.contract.functions.changed(Web3.to_checksum_address(identity)).call()

    def identity_controller(self, identity: str) -> str:
        with rpc_call("identityController"):
            return self.contract.functions.identityController(
                Web3.to_checksum_address(identity)
            ).call()

    def version(self) -> int:
        with rpc_call("version"):
            return self.contract.functions.version().call()

    def query_logs(self, identity: str, from_block: int, to_block: int) -> List[Any]:
        """
        Fetch raw registry logs whose first indexed topic is the identity.

        Args:
            identity: Identity address
            from_block: First block (inclusive)
            to_block: Last block (inclusive)

        Returns:
            Raw log entries in on-chain order
        """
        log_filter = {
            "address": self.registry_address,
            "topics": [None, identity_topic(identity)],
            "fromBlock": from_block,
            "toBlock": to_block,
        }
        with rpc_call("eth_getLogs"):
            return list(self.w3.eth.get_logs(log_filter))

    def decode_log(self, log: Any) -> Optional[ChangeEvent]:
        """
        Decode a raw log into a ChangeEvent.

        Returns:
            ChangeEvent, or None if the log is not a registry change event
        """
        topics = log["topics"]
        if not topics:
            return None
        topic0 = topics[0]
        topic0 = Web3.to_bytes(hexstr=topic0) if isinstance(topic0, str) else bytes(topic0)
        event_name = self._event_names.get(topic0)
        if event_name not in {kind.value for kind in EventKind}:
            return None

        decoded = getattr(self.contract.events, event_name)().process_log(log)
        tx_hash = decoded.get("transactionHash")
        return ChangeEvent.from_args(
            event_name,
            decoded["args"],
            block_number=decoded.get("blockNumber"),
            transaction_hash=Web3.to_hex(tx_hash) if tx_hash is not None else None,
        )


def connect(rpc_url: str, timeout: int = 30) -> Web3:
    """
    Create a Web3 HTTP connection.

    Args:
        rpc_url: JSON-RPC endpoint
        timeout: Per-request timeout in seconds
    """
    return Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
