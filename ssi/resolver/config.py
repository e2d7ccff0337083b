"""
Resolver Configuration

Reads resolver settings from the environment (and a local .env file):

    LAC1_RPC_URL            JSON-RPC endpoint of the network
    LAC1_CHAIN_ID           Chain id of that network (decimal or 0x hex)
    LAC1_REGISTRY_ADDRESS   DID registry address (optional)
    LAC1_NETWORKS_FILE      JSON list of {chainId, rpcUrl, registry, name}
    LAC1_DOCUMENT_MODE      "reference" (default) or "explicit"
    LAC1_RPC_TIMEOUT        RPC timeout in seconds (default 30)
"""

import json
import os
from typing import List

from dotenv import load_dotenv

from ssi.resolver.document import DocumentMode
from ssi.resolver.resolver import Lac1Resolver, NetworkConfig

load_dotenv()

DEFAULT_RPC_TIMEOUT = 30


def load_networks() -> List[NetworkConfig]:
    """
    Networks from LAC1_NETWORKS_FILE plus the single LAC1_RPC_URL/LAC1_CHAIN_ID network.

    Raises:
        ValueError: If no network is configured
    """
    networks = []

    networks_file = os.getenv("LAC1_NETWORKS_FILE")
    if networks_file:
        with open(networks_file, "r") as f:
            networks.extend(NetworkConfig.from_dict(entry) for entry in json.load(f))

    rpc_url = os.getenv("LAC1_RPC_URL")
    chain_id = os.getenv("LAC1_CHAIN_ID")
    if rpc_url and chain_id:
        networks.append(NetworkConfig(
            chain_id=int(chain_id, 0),
            rpc_url=rpc_url,
            registry=os.getenv("LAC1_REGISTRY_ADDRESS"),
        ))

    if not networks:
        raise ValueError(
            "Missing required environment variables: "
            "LAC1_RPC_URL and LAC1_CHAIN_ID, or LAC1_NETWORKS_FILE"
        )
    return networks


def get_document_mode() -> DocumentMode:
    return DocumentMode(os.getenv("LAC1_DOCUMENT_MODE", DocumentMode.REFERENCE.value).lower())


def get_rpc_timeout() -> int:
    return int(os.getenv("LAC1_RPC_TIMEOUT", DEFAULT_RPC_TIMEOUT))


def resolver_from_env() -> Lac1Resolver:
    """Build a resolver from the current environment."""
    return Lac1Resolver(
        load_networks(),
        mode=get_document_mode(),
        timeout=get_rpc_timeout(),
    )
