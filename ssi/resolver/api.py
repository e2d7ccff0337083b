"""
DID Resolver API

FastAPI service exposing did:lac1 resolution in the universal resolver
driver format:

    GET /1.0/identifiers/{did}?mode=reference|explicit

Responses carry didDocument, didResolutionMetadata and didDocumentMetadata.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ssi.errors import InvalidDID, NetworkNotConfigured, TransportFailure
from ssi.resolver.config import resolver_from_env
from ssi.resolver.document import DocumentMode
from ssi.resolver.resolver import Lac1Resolver

logger = logging.getLogger(__name__)

DID_LD_JSON = "application/did+ld+json"

app = FastAPI(
    title="lac1 DID Resolver",
    description="Resolve did:lac1 identifiers from on-chain registry history",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)

_resolver: Optional[Lac1Resolver] = None


def get_lac1_resolver() -> Lac1Resolver:
    """Get or create the resolver configured from the environment."""
    global _resolver
    if _resolver is None:
        _resolver = resolver_from_env()
    return _resolver


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "didDocument": None,
            "didResolutionMetadata": {"error": error, "message": message},
            "didDocumentMetadata": {},
        },
    )


@app.get("/")
async def health_check():
    """Health check endpoint"""
    return {
        "service": "lac1 DID Resolver",
        "status": "healthy",
        "version": "1.0.0"
    }


@app.get("/1.0/identifiers/{did}")
def resolve_did(
    did: str,
    mode: Optional[DocumentMode] = Query(None),
    resolver: Lac1Resolver = Depends(get_lac1_resolver)
) -> Dict[str, Any]:
    """
    Resolve a DID to its DID Document.

    Args:
        did: did:lac1 identifier
        mode: Override the configured document mode

    Returns:
        DID resolution result
    """
    if mode is not None and mode is not resolver.mode:
        resolver = Lac1Resolver(
            resolver.networks,
            mode=mode,
            registry_factory=resolver.registry_factory,
            clock=resolver.clock,
            timeout=resolver.timeout,
        )

    try:
        document = resolver.resolve(did)
    except InvalidDID as e:
        return _error(400, "invalidDid", str(e))
    except NetworkNotConfigured as e:
        return _error(404, "notFound", str(e))
    except TransportFailure as e:
        logger.error(f"Registry unreachable while resolving {did}: {e}")
        return _error(502, "internalError", str(e))

    return {
        "didDocument": document,
        "didResolutionMetadata": {"contentType": DID_LD_JSON},
        "didDocumentMetadata": {},
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8080)
