"""FastAPI route definitions for the TinyLink API and redirects.

API Endpoint Overview
=====================
::
    POST   /api/links
        ├─ LinkCreate (request body)
        └─ LinkSummary (201) or 400/409/500

    GET    /api/links
        └─ list[LinkSummary] (200), newest first

    GET    /api/links/:code
        └─ LinkSummary (200) or 404

    DELETE /api/links/:code
        └─ 204 or 404

    GET    /:code
        └─ 302 Redirect or 404/500 page

Key Behaviours
===============
- API routes are registered before the catch-all ``/{code}`` route.
- Client errors are turned into ``HTTPException`` here; server errors are
  left to the application's exception handlers.
- Redirects answer as soon as the lookup finishes; the click update runs
  detached.

Endpoints:
    /api/links:  Create and list links.
    /api/links/:code:  Read or delete one link.
    /:code:  Redirect to the target URL.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import HTMLResponse, RedirectResponse

from tinylink.allocator import CodeAllocator
from tinylink.cache import LinkCache
from tinylink.dependencies import (
    LinkServices,
    get_allocator,
    get_cache,
    get_redirect_handler,
    get_services,
    get_store,
)
from tinylink.errors import CodeTaken, InvalidFormat, LinkNotFound, ReservedPath, StorageError
from tinylink.redirect import RedirectHandler
from tinylink.schemas import LinkCreate, LinkSummary
from tinylink.store import LinkStore

__all__ = ["router"]

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND_PAGE = "<!doctype html><title>Not found</title><h1>Short link not found</h1>"
ERROR_PAGE = "<!doctype html><title>Error</title><h1>Something went wrong while redirecting.</h1>"


@router.post("/api/links", response_model=LinkSummary, status_code=201, tags=["links"])
async def create_link(
    payload: LinkCreate,
    allocator: CodeAllocator = Depends(get_allocator),
    cache: LinkCache | None = Depends(get_cache),
    services: LinkServices = Depends(get_services),
) -> LinkSummary:
    try:
        link = await allocator.allocate(payload.target_url, payload.code)
    except InvalidFormat as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except CodeTaken as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    # the code may belong to a deleted link that is still cached
    if cache is not None:
        await cache.evict(link.code)

    return LinkSummary.from_link(link, services.settings.short_url_base)


@router.get("/api/links", response_model=list[LinkSummary], tags=["links"])
async def list_links(
    store: LinkStore = Depends(get_store),
    services: LinkServices = Depends(get_services),
) -> list[LinkSummary]:
    links = await store.list_all()
    base_url = services.settings.short_url_base
    return [LinkSummary.from_link(link, base_url) for link in links]


@router.get("/api/links/{code}", response_model=LinkSummary, tags=["links"])
async def get_link(
    code: str,
    store: LinkStore = Depends(get_store),
    services: LinkServices = Depends(get_services),
) -> LinkSummary:
    link = await store.find_by_code(code)
    if link is None:
        raise HTTPException(status_code=404, detail="Short link not found.")
    return LinkSummary.from_link(link, services.settings.short_url_base)


@router.delete("/api/links/{code}", status_code=204, tags=["links"])
async def delete_link(
    code: str,
    store: LinkStore = Depends(get_store),
    cache: LinkCache | None = Depends(get_cache),
) -> Response:
    if not await store.delete_by_code(code):
        raise HTTPException(status_code=404, detail="Short link not found.")
    if cache is not None:
        await cache.evict(code)
    logger.info(f"Link deleted: {code}")
    return Response(status_code=204)


@router.get("/{code}", tags=["redirect"])
async def redirect_to_target(
    code: str,
    handler: RedirectHandler = Depends(get_redirect_handler),
) -> Response:
    try:
        target_url = await handler.resolve(code)
    except ReservedPath:
        return Response(status_code=404)
    except LinkNotFound:
        return HTMLResponse(NOT_FOUND_PAGE, status_code=404)
    except StorageError:
        logger.exception(f"Error in redirect for code: {code}")
        return HTMLResponse(ERROR_PAGE, status_code=500)

    return RedirectResponse(url=target_url, status_code=302)
