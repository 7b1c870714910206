# core/models.py
"""Per-call configuration and input models for the RAG core"""
from datetime import datetime, timezone
from typing import List, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from core.enums import QueryScope


class RagConfig(BaseModel):
    """
    Immutable parameters supplied on every ingest/search call.

    chunk_size and chunk_overlap are in characters; the chunker converts them
    to word counts assuming ~6 characters per word (including the space).
    """
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    chunk_size: int = Field(default=1000, ge=6)
    chunk_overlap: int = Field(default=200, ge=0)
    top_k: int = Field(default=6, ge=1)
    model_name: str = "llama3.1:8b"
    embedding_model: str = "text-embedding-004"
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    strictness: Literal["factual", "balanced", "creative"] = "factual"
    answer_depth: Literal["concise", "standard", "detailed"] = "standard"


class PageContent(BaseModel):
    """Already-extracted text of one page of a paged document (e.g. PDF)."""
    page_number: int = Field(ge=1)
    text: str


class AnswerResponse(BaseModel):
    """Structured answer returned by the answer generator."""
    answer: str
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reasoning: str = ""
    follow_ups: List[str] = Field(default_factory=list)
    assumptions: List[str] = Field(default_factory=list)
    scope: QueryScope = QueryScope.NARROW
    inconsistency_detected: bool = False


def get_default_config() -> RagConfig:
    """Build a RagConfig from application settings."""
    from config import settings  # Lazy import

    return RagConfig(
        chunk_size=settings.DEFAULT_CHUNK_SIZE,
        chunk_overlap=settings.DEFAULT_CHUNK_OVERLAP,
        top_k=settings.DEFAULT_TOP_K,
        model_name=settings.LLM_MODEL_NAME,
        embedding_model=settings.DEFAULT_EMBEDDING_MODEL,
        temperature=settings.DEFAULT_TEMPERATURE,
        strictness=settings.DEFAULT_STRICTNESS,
        answer_depth=settings.DEFAULT_ANSWER_DEPTH,
    )


class Flashcard(BaseModel):
    """Question/answer pair derived from a document's text."""
    id: str = Field(default_factory=lambda: str(uuid4()))
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    source_doc: str = "Derived Knowledge"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
