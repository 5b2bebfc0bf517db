"""Endpoint CRUD and history API."""
import math
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..errors import ConfigError
from ..schemas.endpoint import (
    EndpointCreate,
    EndpointResponse,
    EndpointStateResponse,
    ProbeResultResponse,
    RemoveResponse,
    ResultsPage,
)
from ..services.store import EndpointStore

router = APIRouter(prefix="/api/endpoints", tags=["endpoints"])


def get_store(request: Request) -> EndpointStore:
    """Dependency returning the store created in the app lifespan."""
    return request.app.state.store


@router.get("", response_model=List[EndpointStateResponse])
async def list_endpoints(store: EndpointStore = Depends(get_store)):
    """List every monitored URL with its latest result."""
    states = await store.endpoint_states()
    return [
        EndpointStateResponse(
            url=state.url,
            intervals=state.intervals,
            last_checked=state.last_checked,
            last_status=state.last_status,
            state=state.state,
        )
        for state in states
    ]


@router.post("", response_model=EndpointResponse, status_code=201)
async def add_endpoint(endpoint: EndpointCreate, store: EndpointStore = Depends(get_store)):
    """Add an endpoint. Takes effect the next time monitoring starts."""
    try:
        row = await store.add_endpoint(endpoint.url, endpoint.interval_seconds)
    except ConfigError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return EndpointResponse.model_validate(row)


@router.delete("", response_model=RemoveResponse)
async def remove_endpoint(
    url: str = Query(..., min_length=1),
    store: EndpointStore = Depends(get_store),
):
    """Remove every endpoint row for a URL. Its history stays queryable."""
    removed = await store.remove_endpoint(url)
    if not removed:
        raise HTTPException(status_code=404, detail=f"No endpoint matches {url}")
    return RemoveResponse(url=url, removed=removed)


@router.get("/history", response_model=ResultsPage)
async def get_history(
    url: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=500),
    store: EndpointStore = Depends(get_store),
):
    """Paginated probe results for a URL, newest first."""
    total = await store.count_results(url)
    rows = await store.history(url, limit=per_page, offset=(page - 1) * per_page)
    return ResultsPage(
        items=[ProbeResultResponse.model_validate(row) for row in rows],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=math.ceil(total / per_page) if total else 0,
    )
