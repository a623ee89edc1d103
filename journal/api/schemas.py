"""
Request and response models for the journal HTTP API.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class EntryRequest(BaseModel):
    title: str
    body: str

    @field_validator('title')
    @classmethod
    def title_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('title cannot be empty')
        return v

    @field_validator('body')
    @classmethod
    def body_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('body cannot be empty')
        return v


class EntryResponse(BaseModel):
    id: str
    title: str
    body: str
    has_embedding: bool
    created_at: datetime
    updated_at: datetime


class EntryListResponse(BaseModel):
    entries: List[EntryResponse]


class RelatedEntryResponse(BaseModel):
    id: str
    title: str
    body: str
    created_at: datetime
    similarity: float


class RelatedEntriesResponse(BaseModel):
    entry_id: str
    related: List[RelatedEntryResponse]


class TaskResponse(BaseModel):
    id: str
    entry_id: Optional[str]
    content: str
    completed: bool
    archived: bool
    due_date: Optional[str] = None
    created_at: datetime


class EntryDetailResponse(EntryResponse):
    tasks: List[TaskResponse] = []
    related: Optional[List[RelatedEntryResponse]] = None  # None when search could not run


class SimilarSearchRequest(BaseModel):
    query_vector: List[float]
    exclude_ids: List[str] = []
    threshold: float = Field(default=0.5, ge=-1.0, le=1.0)
    limit: int = Field(default=10, ge=0)

    @field_validator('query_vector')
    @classmethod
    def vector_must_not_be_empty(cls, v):
        if not v:
            raise ValueError('query_vector cannot be empty')
        return v


class SimilarityResultResponse(BaseModel):
    entry_id: str
    similarity: float


class SimilarSearchResponse(BaseModel):
    results: List[SimilarityResultResponse]


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    entry_count: int
    embedded_count: int
