# services/factory.py
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from config import settings
from core.interfaces import IDocumentRepository, IEmbeddingService, IAnswerGenerator
from infrastructure.embedding_services import HashingEmbeddingService
from infrastructure.repositories import SQLDocumentRepository
from services.llm_service import LLMService
from services.rag_service import RAGService

# Provider functions for each component
def get_embedding_service(provider: Optional[str] = None) -> IEmbeddingService:
    """Create embedding service based on configuration."""
    provider = provider or settings.EMBEDDING_PROVIDER
    if provider == "hashing":
        return HashingEmbeddingService(dimension=settings.EMBEDDING_DIMENSION)
    if provider == "sentence_transformers":
        # Imported lazily: loading torch is only worth it when this provider is selected
        from infrastructure.sentence_transformer_embedding import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(settings.SENTENCE_TRANSFORMER_MODEL)
    raise ValueError(f"Unknown embedding provider: {provider}")

def get_document_repository(session_factory: async_sessionmaker) -> IDocumentRepository:
    """Create document repository bound to a session maker."""
    return SQLDocumentRepository(session_factory)

def get_answer_generator() -> IAnswerGenerator:
    return LLMService(base_url=settings.LLM_BASE_URL, timeout=settings.REQUEST_TIMEOUT)

def build_rag_service(
    document_repo: IDocumentRepository,
    embedding_service: Optional[IEmbeddingService] = None
) -> RAGService:
    """
    Compose the RAG service from its collaborators.
    One instance per application; it owns the in-memory index.
    """
    return RAGService(
        document_repo=document_repo,
        embedding_service=embedding_service or get_embedding_service()
    )
