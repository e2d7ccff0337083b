"""
DID Registry Change Events

Typed view of the three registry events that make up a DID's history.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from ssi.did.constants import (
    LAC1_DID_AKA_CHANGED_EVENT_NAME,
    LAC1_DID_ATTRIBUTE_CHANGED_EVENT_NAME,
    LAC1_DID_DELEGATE_CHANGED_EVENT_NAME,
)


class EventKind(str, Enum):
    ATTRIBUTE_CHANGED = LAC1_DID_ATTRIBUTE_CHANGED_EVENT_NAME
    DELEGATE_CHANGED = LAC1_DID_DELEGATE_CHANGED_EVENT_NAME
    AKA_CHANGED = LAC1_DID_AKA_CHANGED_EVENT_NAME


@dataclass(frozen=True)
class ChangeEvent:
    """
    One decoded registry event.

    Attribute events carry name/value, delegate events carry
    delegate_type/delegate and AKA events carry aka_id.
    """

    kind: EventKind
    identity: str
    valid_to: int
    previous_change: int
    name: Optional[bytes] = None
    value: Optional[bytes] = None
    delegate_type: Optional[bytes] = None
    delegate: Optional[str] = None
    aka_id: Optional[str] = None
    change_time: Optional[int] = None
    compromised: bool = False
    block_number: Optional[int] = None
    transaction_hash: Optional[str] = None

    @classmethod
    def from_args(
        cls,
        event_name: str,
        args: Mapping[str, Any],
        block_number: Optional[int] = None,
        transaction_hash: Optional[str] = None
    ) -> "ChangeEvent":
        """
        Build an event from ABI-decoded arguments (camelCase names).

        Raises:
            ValueError: If event_name is not a registry change event
        """
        return cls(
            kind=EventKind(event_name),
            identity=args.get("identity"),
            valid_to=args.get("validTo"),
            previous_change=args.get("previousChange", 0),
            name=args.get("name"),
            value=args.get("value"),
            delegate_type=args.get("delegateType"),
            delegate=args.get("delegate"),
            aka_id=args.get("akaId"),
            change_time=args.get("changeTime"),
            compromised=bool(args.get("compromised", False)),
            block_number=block_number,
            transaction_hash=transaction_hash,
        )
