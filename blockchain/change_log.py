"""
DID Change Log Assembler

Recovers the full on-chain history of one identity. The registry stores only
the block of the latest change (`changed(identity)`); every event carries a
`previousChange` pointer to the block of the change before it, so the history
is a backward linked list over blocks:

    changed(identity) -> block N -> previousChange -> block M -> ... -> 0

The walk visits blocks newest -> oldest and prepends each block's events, so
the returned history is oldest -> newest. The next pointer must be strictly
smaller than the current one, which bounds the walk even when the registry
reports inconsistent pointers.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Protocol, Any, Optional

from blockchain.events import ChangeEvent

logger = logging.getLogger(__name__)


class RegistrySource(Protocol):
    """What the assembler needs from a registry (see blockchain.registry)."""

    def changed(self, identity: str) -> int: ...

    def identity_controller(self, identity: str) -> str: ...

    def query_logs(self, identity: str, from_block: int, to_block: int) -> List[Any]: ...

    def decode_log(self, log: Any) -> Optional[ChangeEvent]: ...


@dataclass
class ChangeLog:
    controller: str
    history: List[ChangeEvent] = field(default_factory=list)


def change_log(identity: str, registry: RegistrySource) -> ChangeLog:
    """
    Walk the previousChange chain of an identity.

    Args:
        identity: Identity address
        registry: Registry reader

    Returns:
        ChangeLog with the current controller and the oldest -> newest history.
        An identity that never changed is its own controller with no history.

    Raises:
        TransportFailure: If any registry call fails (the walk is aborted)
    """
    previous_change = registry.changed(identity)
    controller = registry.identity_controller(identity) if previous_change else identity

    history: List[ChangeEvent] = []
    visited = 0
    while previous_change:
        block_number = previous_change
        logs = registry.query_logs(identity, block_number, block_number)
        previous_change = None

        block_events = []
        for log in logs:
            event = registry.decode_log(log)
            if event is None:
                logger.warning(f"Skipping unrecognised registry log at block {block_number}")
                continue
            block_events.append(event)
            if event.previous_change < block_number:
                previous_change = event.previous_change

        history[:0] = block_events
        visited += 1
        logger.debug(
            f"Block {block_number}: {len(block_events)} events, next pointer {previous_change}"
        )

    logger.debug(f"Change log for {identity}: {len(history)} events in {visited} blocks")
    return ChangeLog(controller=controller, history=history)
