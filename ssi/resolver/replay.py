"""
DID Document Replay Engine

Folds an oldest -> newest change history into the current document state.

Every event maps to a derived key. All changes to "the same attribute" land in
the same slot, so re-setting an attribute overwrites it and an expired or
revoked one (validTo < now) removes it from every map.

The fold is a pure function of (history, now): `now` is passed in by the
caller instead of being read from the wall clock.
"""

from dataclasses import dataclass, field
from typing import Dict, Hashable, Iterable, List, Tuple

from blockchain.events import ChangeEvent, EventKind
from ssi.did.constants import DEFAULT_CONTROLLER_METHOD_TYPE
from ssi.resolver.attributes import (
    RELATIONSHIP_TYPES,
    apply_attribute,
    apply_delegate,
    compute_caip10,
)


@dataclass
class DocumentState:
    """Working maps of a single resolve call."""

    default_method: dict
    verification_methods: Dict[Hashable, dict] = field(default_factory=dict)
    services: Dict[Hashable, dict] = field(default_factory=dict)
    relationships: Dict[str, Dict[Hashable, str]] = field(
        default_factory=lambda: {relationship: {} for relationship in RELATIONSHIP_TYPES}
    )
    also_known_as: List[str] = field(default_factory=list)


def default_verification_method(did: str, chain_id: int, controller: str) -> dict:
    """The controller's blockchain account, always present in the document."""
    return {
        "id": f"{did}#controller",
        "type": DEFAULT_CONTROLLER_METHOD_TYPE,
        "controller": did,
        "blockchainAccountId": compute_caip10(chain_id, controller),
    }


def derive_key(event: ChangeEvent) -> Tuple:
    """
    Slot for an event: (event kind, attribute name | delegate type, value | delegate).
    """
    if event.kind is EventKind.DELEGATE_CHANGED:
        return (event.kind.value, event.delegate_type, (event.delegate or "").lower())
    return (event.kind.value, event.name, event.value)


def revoke(state: DocumentState, key: Hashable) -> None:
    for relationship in state.relationships.values():
        relationship.pop(key, None)
    state.verification_methods.pop(key, None)
    state.services.pop(key, None)


def apply_event(state: DocumentState, did: str, chain_id: int, event: ChangeEvent, now: int) -> None:
    key = derive_key(event)
    is_valid = event.valid_to is not None and event.valid_to >= now

    if event.kind is EventKind.ATTRIBUTE_CHANGED:
        if is_valid:
            apply_attribute(state, did, chain_id, event, key)
        else:
            revoke(state, key)
    elif event.kind is EventKind.DELEGATE_CHANGED:
        if is_valid:
            apply_delegate(state, did, chain_id, event, key)
        else:
            revoke(state, key)
    elif event.kind is EventKind.AKA_CHANGED:
        if is_valid:
            if event.aka_id not in state.also_known_as:
                state.also_known_as.append(event.aka_id)
        elif event.aka_id in state.also_known_as:
            state.also_known_as.remove(event.aka_id)
    else:
        raise ValueError(f"Unknown change event: {event.kind}")


def replay(
    did: str,
    chain_id: int,
    controller: str,
    history: Iterable[ChangeEvent],
    now: int
) -> DocumentState:
    """
    Replay a DID's history into its current state.

    Args:
        did: The DID being resolved
        chain_id: Integer chain id (used for CAIP-10 account ids)
        controller: Current controller address
        history: Change events, oldest first
        now: Unix timestamp; events with validTo >= now are in force

    Returns:
        DocumentState for build_document()
    """
    state = DocumentState(default_method=default_verification_method(did, chain_id, controller))
    for event in history:
        apply_event(state, did, chain_id, event, now)
    return state
