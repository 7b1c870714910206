# api/schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from core.enums import DocumentStatus, RetrievalStrategy
from core.models import AnswerResponse, Flashcard, PageContent, RagConfig

class IngestRequest(BaseModel):
    """Already-extracted text: either the whole text or per-page text."""
    file_name: str = Field(min_length=1)
    file_type: str = "text/plain"
    text: Optional[str] = None
    pages: Optional[List[PageContent]] = None
    config: Optional[RagConfig] = None

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "IngestRequest":
        if (self.text is None) == (self.pages is None):
            raise ValueError("Provide exactly one of 'text' or 'pages'")
        return self

class DocumentSummary(BaseModel):
    id: str
    file_name: str
    file_type: str
    status: DocumentStatus
    content_hash: str
    chunks: int
    pages: int
    ingested_at: datetime

class ChunkItem(BaseModel):
    id: str
    chunk_index: int
    page_number: Optional[int] = None
    start_word: int
    end_word: int
    text: str

class DocumentDetail(DocumentSummary):
    chunk_items: List[ChunkItem]

class DocumentsListResponse(BaseModel):
    documents: List[DocumentSummary]

class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    config: Optional[RagConfig] = None

class SearchResultItem(BaseModel):
    chunk_id: str
    document_id: str
    source_file_name: str
    chunk_index: int
    page_number: Optional[int] = None
    content_snippet: str
    score: float
    strategy: RetrievalStrategy
    matched_keywords: List[str]

class SearchResponse(BaseModel):
    status: str
    query: str
    strategy: RetrievalStrategy
    results: List[SearchResultItem]
    total_results: int

class AskResponse(BaseModel):
    query: str
    answer: AnswerResponse
    citations: List[SearchResultItem]

class StatusResponse(BaseModel):
    documents_loaded: List[str] = Field(default_factory=list)
    document_count: int = 0
    chunks_available: int = 0
    ready_for_queries: bool = False

class DeleteResponse(BaseModel):
    status: str
    message: str

class FlashcardsResponse(BaseModel):
    document_id: str
    flashcards: List[Flashcard]
