"""
Routes for the ledger Query API.

Read-only REST endpoints over the registry store. Listing endpoints
return the paging metadata as response headers, in the same order for
every kind: total, page of, pages, size.

Every path answers with and without a trailing slash.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from ..errors import NotImplementedCapabilityError
from ..model.types import ResourceKind
from ..query.engine import Page
from ..store.ram_store import RegistryStore

logger = logging.getLogger(__name__)

root_router = APIRouter(tags=["Ledger Discovery"])
router = APIRouter(tags=["Ledger Query"])

RESOURCES = [
    "subscriptions/",
    "flows/",
    "sources/",
    "nodes/",
    "devices/",
    "senders/",
    "receivers/",
]

SUBSCRIPTIONS_MESSAGE = "Subscriptions are not yet implemented for the ledger query API."

HEADER_PREFIX = "X-Streampunk-Ledger-"


# --- Dependencies ---


def get_store(request: Request) -> RegistryStore:
    """Get the registry store from app state."""
    return request.app.state.store


def get_query_params(request: Request) -> Dict[str, List[str]]:
    """Collect every value of every query parameter."""
    params = request.query_params
    return {key: params.getlist(key) for key in params.keys()}


def paging_headers(page: Page) -> Dict[str, str]:
    return {
        f"{HEADER_PREFIX}Total": str(page.total),
        f"{HEADER_PREFIX}PageOf": str(page.page_of),
        f"{HEADER_PREFIX}Pages": str(page.pages),
        f"{HEADER_PREFIX}Size": str(page.size),
    }


def _kind_or_404(collection: str) -> ResourceKind:
    try:
        return ResourceKind.from_plural(collection)
    except ValueError:
        raise HTTPException(status_code=404)


# --- Discovery Routes ---


@root_router.get("/")
async def api_root() -> List[str]:
    return ["x-nmos/"]


@root_router.get("/x-nmos")
@root_router.get("/x-nmos/")
async def api_types() -> List[str]:
    return ["query/"]


@root_router.get("/x-nmos/query")
@root_router.get("/x-nmos/query/")
async def api_versions(request: Request) -> List[str]:
    return [f"{request.app.state.settings.api_version}/"]


# --- Subscriptions ---


@router.api_route("/subscriptions", methods=["GET", "POST"])
@router.api_route("/subscriptions/", methods=["GET", "POST"])
@router.api_route("/subscriptions/{subscription_id}", methods=["GET", "DELETE"])
@router.api_route("/subscriptions/{subscription_id}/", methods=["GET", "DELETE"])
async def subscriptions() -> None:
    raise NotImplementedCapabilityError("subscriptions", SUBSCRIPTIONS_MESSAGE)


# --- Resource Routes ---


@router.get("")
@router.get("/")
async def list_resources() -> List[str]:
    return RESOURCES


@router.get("/{collection}")
@router.get("/{collection}/")
async def list_records(
    collection: str,
    store: RegistryStore = Depends(get_store),
    params: Dict[str, List[str]] = Depends(get_query_params),
) -> JSONResponse:
    """List the records of a collection, filtered and paged by query parameters."""
    kind = _kind_or_404(collection)
    page = store.get_all(kind, params)
    return JSONResponse(
        content=[record.to_dict() for record in page.records],
        headers=paging_headers(page),
    )


@router.get("/{collection}/{resource_id}")
@router.get("/{collection}/{resource_id}/")
async def get_record(
    collection: str,
    resource_id: str,
    store: RegistryStore = Depends(get_store),
) -> JSONResponse:
    """Get a single record by id."""
    kind = _kind_or_404(collection)
    record = store.get(kind, resource_id)
    return JSONResponse(content=record.to_dict())
