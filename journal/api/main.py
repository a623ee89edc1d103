"""
HTTP API for journal entries and related-entry retrieval.
"""

from dataclasses import asdict

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from .schemas import (
    EntryDetailResponse,
    EntryListResponse,
    EntryRequest,
    EntryResponse,
    HealthResponse,
    RelatedEntriesResponse,
    RelatedEntryResponse,
    SimilarSearchRequest,
    SimilarSearchResponse,
    SimilarityResultResponse,
    TaskResponse,
)
from ..core.config import VERSION, debug_enabled, get_embedding_provider, get_entry_store, get_related_limit
from ..core.db import health_check
from ..core.entry_service import create_entry, delete_entry, update_entry
from ..core.errors import DimensionMismatch, EntryNotFound, StoreUnavailable, ValidationError
from ..core.search_service import find_related, find_similar
from ..util.logging import logger
from ..vector.types import SimilarityQuery

app = FastAPI(
    title="Journal API",
    version=VERSION,
    description="Journal entries with embedding-based related-entry retrieval",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_store():
    return get_entry_store()


def get_embedder():
    return get_embedding_provider()


def _entry_response(entry) -> EntryResponse:
    return EntryResponse(
        id=entry.id,
        title=entry.title,
        body=entry.body,
        has_embedding=entry.has_embedding,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


def _related_response(related) -> RelatedEntryResponse:
    return RelatedEntryResponse(
        id=related.id,
        title=related.title,
        body=related.body,
        created_at=related.created_at,
        similarity=related.similarity,
    )


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint(store=Depends(get_store)):
    """Check system health."""
    db_health = health_check(store.db_path) if hasattr(store, "db_path") else True
    try:
        entry_count = store.count()
        embedded_count = store.count_embedded()
    except StoreUnavailable:
        db_health = False
        entry_count = 0
        embedded_count = 0

    return HealthResponse(
        status="healthy" if db_health else "unhealthy",
        version=VERSION,
        db_health=db_health,
        entry_count=entry_count,
        embedded_count=embedded_count
    )


@app.post("/entries", response_model=EntryResponse, status_code=201)
def create_entry_endpoint(req: EntryRequest, store=Depends(get_store), embedder=Depends(get_embedder)):
    try:
        entry = create_entry(store, embedder, req.title, req.body)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _entry_response(entry)


@app.get("/entries", response_model=EntryListResponse)
def list_entries_endpoint(limit: int = Query(default=50, ge=1, le=500), store=Depends(get_store)):
    try:
        entries = store.list_entries(limit=limit)
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return EntryListResponse(entries=[_entry_response(e) for e in entries])


@app.get("/entries/{entry_id}", response_model=EntryDetailResponse)
def get_entry_endpoint(entry_id: str, store=Depends(get_store)):
    """Entry detail. The related section is omitted when the search fails."""
    try:
        entry = store.get(entry_id)
        tasks = store.list_tasks(entry_id)
    except EntryNotFound:
        raise HTTPException(status_code=404, detail="Entry not found")
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))

    try:
        related = [_related_response(r) for r in find_related(entry_id, store, limit=get_related_limit())]
    except (StoreUnavailable, EntryNotFound) as e:
        logger.warning(f"Related entries unavailable for {entry_id}: {e}")
        related = None

    base = _entry_response(entry)
    return EntryDetailResponse(
        **base.model_dump(),
        tasks=[TaskResponse(**asdict(t)) for t in tasks],
        related=related,
    )


@app.put("/entries/{entry_id}", response_model=EntryResponse)
def update_entry_endpoint(entry_id: str, req: EntryRequest, store=Depends(get_store), embedder=Depends(get_embedder)):
    try:
        entry = update_entry(store, embedder, entry_id, req.title, req.body)
    except EntryNotFound:
        raise HTTPException(status_code=404, detail="Entry not found")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _entry_response(entry)


@app.delete("/entries/{entry_id}", status_code=204)
def delete_entry_endpoint(entry_id: str, store=Depends(get_store)):
    try:
        delete_entry(store, entry_id)
    except EntryNotFound:
        raise HTTPException(status_code=404, detail="Entry not found")
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return Response(status_code=204)


@app.get("/entries/{entry_id}/related", response_model=RelatedEntriesResponse)
def related_entries_endpoint(entry_id: str, limit: int = Query(default=3, ge=1, le=50), store=Depends(get_store)):
    try:
        related = find_related(entry_id, store, limit=limit)
    except EntryNotFound:
        raise HTTPException(status_code=404, detail="Entry not found")
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return RelatedEntriesResponse(entry_id=entry_id, related=[_related_response(r) for r in related])


@app.post("/search/similar", response_model=SimilarSearchResponse)
def similar_search_endpoint(req: SimilarSearchRequest, store=Depends(get_store)):
    query = SimilarityQuery(
        query_vector=req.query_vector,
        exclude_ids=frozenset(req.exclude_ids),
        threshold=req.threshold,
        limit=req.limit,
    )
    try:
        results = find_similar(query, store)
    except DimensionMismatch as e:
        raise HTTPException(status_code=422, detail=str(e))
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return SimilarSearchResponse(
        results=[SimilarityResultResponse(entry_id=r.entry_id, similarity=r.similarity) for r in results]
    )
