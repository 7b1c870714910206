# core/interfaces.py
"""Core interfaces for the RAG system"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from core.domain import ChunkSearchResult, DocumentChunk, IngestedDocument
from core.models import AnswerResponse, Flashcard, PageContent, RagConfig

# ============= Embedding Service Interface =============
class IEmbeddingService(ABC):
    """
    Interface for embedding generation.

    Implementations: HashingEmbeddingService (lexical fingerprint),
    SentenceTransformerEmbedding. Any provider that maps (text, model id)
    to a fixed-length vector can be swapped in without touching scoring.
    """

    @abstractmethod
    async def embed(self, text: str, model_id: str) -> List[float]:
        """Generate the embedding vector for one text. May raise."""
        pass

# ============= Repository Interfaces =============
class IDocumentRepository(ABC):
    """
    Interface for document and chunk persistence.

    All save operations are whole-collection snapshots: they replace the
    previously stored collection. Documents are stored without their chunks;
    chunks are stored separately and re-attached by document_id on load.
    Implementations: SQLDocumentRepository, InMemoryDocumentRepository.
    """

    @abstractmethod
    async def load_documents(self) -> List[IngestedDocument]:
        """Load all stored documents (chunk lists empty)."""
        pass

    @abstractmethod
    async def load_chunks(self) -> List[DocumentChunk]:
        """Load all stored chunks in their saved order."""
        pass

    @abstractmethod
    async def save_documents(self, documents: List[IngestedDocument]) -> None:
        """Replace the stored document collection."""
        pass

    @abstractmethod
    async def save_chunks(self, chunks: List[DocumentChunk]) -> None:
        """Replace the stored chunk collection."""
        pass

    @abstractmethod
    async def delete_document(self, document_id: str) -> None:
        """Delete one document record and all of its chunks."""
        pass

    @abstractmethod
    async def clear_all(self) -> None:
        """Delete every document and chunk."""
        pass

# ============= Service Layer Interfaces =============
class IRAGService(ABC):
    """High-level RAG operations interface"""

    document_repo: IDocumentRepository
    embedding_service: IEmbeddingService

    @abstractmethod
    async def ensure_initialized(self) -> None:
        """Wait for the one-time load of persisted state."""
        pass

    @abstractmethod
    async def ingest_document(
        self, file_name: str, file_type: str, text: str, config: RagConfig
    ) -> IngestedDocument:
        """Normalize, deduplicate, chunk, embed and register a plain-text document."""
        pass

    @abstractmethod
    async def ingest_document_with_pages(
        self, file_name: str, file_type: str, pages: List[PageContent], config: RagConfig
    ) -> IngestedDocument:
        """Same as ingest_document, chunking each page independently."""
        pass

    @abstractmethod
    async def remove_document(self, document_id: str) -> bool:
        """Remove a document and its chunks. Returns False if it was absent."""
        pass

    @abstractmethod
    async def search(self, query: str, config: RagConfig) -> List[ChunkSearchResult]:
        """Rank all chunks against the query and return the top-K."""
        pass

    @abstractmethod
    async def list_documents(self) -> List[IngestedDocument]:
        """List all documents with their chunks"""
        pass

    @abstractmethod
    async def get_document(self, document_id: str) -> Optional[IngestedDocument]:
        """Get document by ID"""
        pass

    @abstractmethod
    async def clear_all(self) -> None:
        """Clear all documents and chunks"""
        pass

    @abstractmethod
    async def get_status(self) -> Dict[str, Any]:
        """Get system status"""
        pass

# ============= Answer Generation =============
class IAnswerGenerator(ABC):
    """
    Interface for the external answer-generation step.
    Receives the ranked chunks and the query; owns its own retry policy.
    """

    @abstractmethod
    def generate_answer(
        self, query: str, results: List[ChunkSearchResult], config: RagConfig
    ) -> AnswerResponse:
        """Produce a grounded answer from ranked context."""
        pass

    @abstractmethod
    def generate_flashcards(self, text: str, source_doc: str) -> List[Flashcard]:
        """Derive 3-5 question/answer pairs from text; empty list on failure."""
        pass
