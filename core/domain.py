# core/domain.py
"""Domain models and domain errors for the retrieval core"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from core.enums import DocumentStatus, ErrorCode, RetrievalStrategy


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============= Domain Models =============

@dataclass
class ChunkMetadata:
    """
    Positional and provenance data for a chunk.

    start_word/end_word are word offsets into the chunked text (page text for
    paged documents). document_id is a lookup key, not an object reference.
    """
    document_id: str
    chunk_index: int
    source_file_name: str
    start_word: int
    end_word: int
    page_number: Optional[int] = None
    trust_score: float = 1.0
    freshness: datetime = field(default_factory=utc_now)


@dataclass
class DocumentChunk:
    """Domain model for document chunks"""
    id: str
    text: str
    metadata: ChunkMetadata
    weight: float = 1.0
    embedding: Optional[List[float]] = None # Vector of float numbers


@dataclass
class IngestedDocument:
    """Domain model for documents"""
    id: str
    file_name: str
    file_type: str
    raw_text: str
    content_hash: str
    chunks: List[DocumentChunk] = field(default_factory=list)
    ingested_at: datetime = field(default_factory=utc_now)
    status: DocumentStatus = DocumentStatus.PROCESSING


@dataclass
class ChunkSearchResult:
    """Domain model for search results"""
    chunk: DocumentChunk
    score: float
    strategy_used: RetrievalStrategy
    matched_keywords: List[str] = field(default_factory=list)


# ============= Errors =============

class DocumentProcessingError(Exception):
    """Raised when document processing fails with a specific error code"""

    def __init__(self, message: str, error_code: ErrorCode):
        self.message = message
        self.error_code = error_code
        super().__init__(message)

    def __str__(self):
        # Format used for logging and API error details
        return f"[{self.error_code.value}] {self.message}"


class DuplicateDocumentError(DocumentProcessingError):
    """Content hash matches a document already in the store."""

    def __init__(self, file_name: str, existing_document_id: str):
        self.existing_document_id = existing_document_id
        super().__init__(
            f"Conflict detected: document '{file_name}' is identical to an existing document",
            ErrorCode.DUPLICATE_FILE
        )


class EmbeddingError(DocumentProcessingError):
    """The embedding provider failed; wraps the provider's exception."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.EMBEDDING_FAILED)
