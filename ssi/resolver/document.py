"""
DID Document Formatter

Builds the DID Document from replayed state and renders it in one of two
shapes:

- reference (default): relationship arrays hold the full verification method
  objects, looked up by id in verificationMethod
- explicit: relationship arrays hold method ids, keeping only ids that still
  point at an existing verification method

In both shapes alsoKnownAs and service are left out when empty.
"""

import copy
from enum import Enum
from typing import List, Union

from ssi.did.constants import DID_DOCUMENT_CONTEXT
from ssi.resolver.replay import DocumentState


class DocumentMode(str, Enum):
    REFERENCE = "reference"
    EXPLICIT = "explicit"


# Document property -> attribute relationship type
RELATIONSHIP_PROPERTIES = {
    "authentication": "auth",
    "assertionMethod": "asse",
    "keyAgreement": "keya",
    "capabilityInvocation": "invo",
    "capabilityDelegation": "dele",
}


def build_document(state: DocumentState, did: str, controller_did: str) -> dict:
    """
    Assemble the raw document; relationships are lists of method ids.

    The default controller method leads verificationMethod, authentication
    and assertionMethod. Several slots can hold the same method (e.g. a
    sigAuth and a veriKey delegate for one address); only the first
    occurrence of each id is listed.
    """
    default_id = state.default_method["id"]
    verification_methods = {}
    for vm in [state.default_method] + list(state.verification_methods.values()):
        verification_methods.setdefault(vm["id"], vm)

    document = {
        "@context": list(DID_DOCUMENT_CONTEXT),
        "id": did,
        "alsoKnownAs": list(state.also_known_as),
        "controller": controller_did,
        "verificationMethod": list(verification_methods.values()),
    }
    for prop, relationship in RELATIONSHIP_PROPERTIES.items():
        ids = list(state.relationships[relationship].values())
        if relationship in ("auth", "asse"):
            ids = [default_id] + ids
        document[prop] = list(dict.fromkeys(ids))

    services = {}
    for service in state.services.values():
        services.setdefault(service["id"], service)
    if services:
        document["service"] = list(services.values())
    if not document["alsoKnownAs"]:
        del document["alsoKnownAs"]
    return document


def get_relationship(verification_methods: List[dict], relationship: List[str]) -> List[dict]:
    """Dereference method ids, dropping ids with no matching method."""
    by_id = {}
    for vm in verification_methods:
        by_id.setdefault(vm["id"], vm)
    return [by_id[vm_id] for vm_id in relationship if vm_id in by_id]


def get_existing_methods(verification_methods: List[dict], relationship: List[str]) -> List[str]:
    """Keep only ids that match a verification method."""
    known = {vm["id"] for vm in verification_methods}
    return [vm_id for vm_id in relationship if vm_id in known]


def render(document: dict, mode: Union[DocumentMode, str] = DocumentMode.REFERENCE) -> dict:
    """
    Render a raw document in the requested mode.

    Args:
        document: Output of build_document()
        mode: "reference" or "explicit"

    Returns:
        A new document dict; the input is left untouched

    Raises:
        ValueError: If mode is not a known DocumentMode
    """
    mode = DocumentMode(mode)
    rendered = copy.deepcopy(document)
    verification_methods = rendered["verificationMethod"]
    for prop in RELATIONSHIP_PROPERTIES:
        if mode is DocumentMode.REFERENCE:
            rendered[prop] = get_relationship(verification_methods, rendered[prop])
        else:
            rendered[prop] = get_existing_methods(verification_methods, rendered[prop])
    if not rendered.get("alsoKnownAs"):
        rendered.pop("alsoKnownAs", None)
    if not rendered.get("service"):
        rendered.pop("service", None)
    return rendered
