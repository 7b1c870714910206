# infrastructure/repositories.py
"""Document and chunk persistence implementations"""
import copy
import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.interfaces import IDocumentRepository
from core.domain import ChunkMetadata, DocumentChunk, IngestedDocument
from core.enums import DocumentStatus
from database.session import ChunkEntity, DocumentEntity
from config import settings

logger = logging.getLogger(settings.LOGGER_NAME)


def _as_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo on round trip; stored values are always UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SQLDocumentRepository(IDocumentRepository):
    """
    SQLAlchemy implementation. Each call opens its own session, so one
    repository instance can serve the long-lived RAGService.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    # ----- mapping -----

    @staticmethod
    def _document_to_domain(entity: DocumentEntity) -> IngestedDocument:
        return IngestedDocument(
            id=entity.id, # type: ignore
            file_name=entity.file_name, # type: ignore
            file_type=entity.file_type, # type: ignore
            raw_text=entity.raw_text, # type: ignore
            content_hash=entity.content_hash, # type: ignore
            chunks=[],
            ingested_at=_as_utc(entity.ingested_at), # type: ignore
            status=DocumentStatus.from_string(entity.status) # type: ignore
        )

    @staticmethod
    def _document_to_entity(document: IngestedDocument, position: int) -> DocumentEntity:
        return DocumentEntity(
            id=document.id,
            position=position,
            file_name=document.file_name,
            file_type=document.file_type,
            raw_text=document.raw_text,
            content_hash=document.content_hash,
            status=document.status.value,
            ingested_at=document.ingested_at
        )

    @staticmethod
    def _chunk_to_domain(entity: ChunkEntity) -> DocumentChunk:
        return DocumentChunk(
            id=entity.id, # type: ignore
            text=entity.text, # type: ignore
            weight=entity.weight, # type: ignore
            embedding=list(entity.embedding) if entity.embedding is not None else None, # type: ignore
            metadata=ChunkMetadata(
                document_id=entity.document_id, # type: ignore
                chunk_index=entity.chunk_index, # type: ignore
                source_file_name=entity.source_file_name, # type: ignore
                page_number=entity.page_number, # type: ignore
                start_word=entity.start_word, # type: ignore
                end_word=entity.end_word, # type: ignore
                trust_score=entity.trust_score, # type: ignore
                freshness=_as_utc(entity.freshness) # type: ignore
            )
        )

    @staticmethod
    def _chunk_to_entity(chunk: DocumentChunk, position: int) -> ChunkEntity:
        md = chunk.metadata
        return ChunkEntity(
            id=chunk.id,
            position=position,
            document_id=md.document_id,
            text=chunk.text,
            embedding=chunk.embedding,
            weight=chunk.weight,
            chunk_index=md.chunk_index,
            source_file_name=md.source_file_name,
            page_number=md.page_number,
            start_word=md.start_word,
            end_word=md.end_word,
            trust_score=md.trust_score,
            freshness=md.freshness
        )

    # ----- IDocumentRepository -----

    async def load_documents(self) -> List[IngestedDocument]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(DocumentEntity).order_by(DocumentEntity.position)
            )
            return [self._document_to_domain(doc) for doc in result.scalars().all()]

    async def load_chunks(self) -> List[DocumentChunk]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(ChunkEntity).order_by(ChunkEntity.position)
            )
            return [self._chunk_to_domain(chunk) for chunk in result.scalars().all()]

    async def save_documents(self, documents: List[IngestedDocument]) -> None:
        """Clear existing and add new (documents stored without chunks)."""
        async with self.session_factory() as session:
            try:
                await session.execute(delete(DocumentEntity))
                session.add_all([
                    self._document_to_entity(doc, position)
                    for position, doc in enumerate(documents)
                ])
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def save_chunks(self, chunks: List[DocumentChunk]) -> None:
        async with self.session_factory() as session:
            try:
                await session.execute(delete(ChunkEntity))
                session.add_all([
                    self._chunk_to_entity(chunk, position)
                    for position, chunk in enumerate(chunks)
                ])
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def delete_document(self, document_id: str) -> None:
        async with self.session_factory() as session:
            try:
                await session.execute(
                    delete(ChunkEntity).where(ChunkEntity.document_id == document_id)
                )
                await session.execute(
                    delete(DocumentEntity).where(DocumentEntity.id == document_id)
                )
                await session.commit()
            except Exception:
                await session.rollback()
                raise
        logger.info(f"Deleted document {document_id} from database")

    async def clear_all(self) -> None:
        async with self.session_factory() as session:
            try:
                await session.execute(delete(ChunkEntity))
                await session.execute(delete(DocumentEntity))
                await session.commit()
            except Exception:
                await session.rollback()
                raise


class InMemoryDocumentRepository(IDocumentRepository):
    """
    Process-local repository for tests and ephemeral runs.
    Stores deep copies so callers cannot mutate persisted state by reference.
    """

    def __init__(self):
        self._documents: List[IngestedDocument] = []
        self._chunks: List[DocumentChunk] = []

    async def load_documents(self) -> List[IngestedDocument]:
        return copy.deepcopy(self._documents)

    async def load_chunks(self) -> List[DocumentChunk]:
        return copy.deepcopy(self._chunks)

    async def save_documents(self, documents: List[IngestedDocument]) -> None:
        stored = []
        for doc in documents:
            doc_copy = copy.copy(doc)
            doc_copy.chunks = []
            stored.append(copy.deepcopy(doc_copy))
        self._documents = stored

    async def save_chunks(self, chunks: List[DocumentChunk]) -> None:
        self._chunks = copy.deepcopy(chunks)

    async def delete_document(self, document_id: str) -> None:
        self._documents = [d for d in self._documents if d.id != document_id]
        self._chunks = [c for c in self._chunks if c.metadata.document_id != document_id]

    async def clear_all(self) -> None:
        self._documents = []
        self._chunks = []
