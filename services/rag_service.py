# services/rag_service.py
"""In-memory document store and retrieval service"""
import asyncio
import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

from config import settings
from core.domain import (ChunkSearchResult, DocumentChunk, DocumentProcessingError,
                         DuplicateDocumentError, EmbeddingError, IngestedDocument)
from core.enums import DocumentStatus, ErrorCode
from core.interfaces import IDocumentRepository, IEmbeddingService, IRAGService
from core.models import PageContent, RagConfig
from services.chunking import create_chunks, renumber_chunks
from services.retrieval_strategies import determine_strategy
from services.scoring import RelevanceScorer
from utils.text import content_hash, normalize_text

logger = logging.getLogger(settings.LOGGER_NAME)


class RAGService(IRAGService):
    """
    Owns every ingested document and chunk for the running session.

    Chunks live in one flat arena (self._chunks) in ingestion order; each
    document also lists its own chunks. Chunks refer back to their document
    only through metadata.document_id.

    The in-memory collections are the source of truth. Persistence is a
    snapshot written after every mutation; its failures are logged and never
    undo or fail the mutation. Collection mutations never contain an await, so
    they are atomic under asyncio's cooperative scheduling. Repository writes
    are serialized by one lock, and a snapshot is taken only once the lock is
    held, so the last mutation is always the last write.
    """

    def __init__(
        self,
        document_repo: IDocumentRepository,
        embedding_service: IEmbeddingService,
        scorer: Optional[RelevanceScorer] = None
    ):
        self.document_repo = document_repo
        self.embedding_service = embedding_service
        self.scorer = scorer or RelevanceScorer()

        self._documents: List[IngestedDocument] = []
        self._chunks: List[DocumentChunk] = []
        self._init_task: Optional["asyncio.Task[None]"] = None
        self._write_lock = asyncio.Lock()

    # ============= Initialization =============

    async def ensure_initialized(self) -> None:
        """
        Load persisted state exactly once. Callers arriving while the load is
        in flight await the same task instead of starting another load.
        """
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._load_state())
        await asyncio.shield(self._init_task)

    async def initialize(self) -> None:
        """Alias used by the application lifespan."""
        await self.ensure_initialized()

    async def _load_state(self) -> None:
        try:
            docs = await self.document_repo.load_documents()
            chunks = await self.document_repo.load_chunks()
        except Exception as e:
            logger.error(f"Failed to load persisted state: {e}", exc_info=True)
            return

        # Chunks without a stored document cannot be removed; never load them
        known_ids = {doc.id for doc in docs}
        kept = [c for c in chunks if c.metadata.document_id in known_ids]
        if len(kept) != len(chunks):
            logger.warning(
                f"Dropped {len(chunks) - len(kept)} stored chunks with no matching document"
            )

        by_document: Dict[str, List[DocumentChunk]] = {}
        for chunk in kept:
            by_document.setdefault(chunk.metadata.document_id, []).append(chunk)

        for doc in docs:
            doc.chunks = by_document.get(doc.id, [])

        self._documents = docs
        self._chunks = kept

        if docs:
            logger.info(f"Loaded {len(docs)} documents ({len(kept)} chunks) from storage")

    async def _save_state(self) -> None:
        async with self._write_lock:
            # Snapshot under the lock: a mutation made while waiting is included
            documents = list(self._documents)
            chunks = list(self._chunks)
            try:
                await self.document_repo.save_documents(documents)
                await self.document_repo.save_chunks(chunks)
                logger.debug("State saved to storage successfully")
            except Exception as e:
                logger.error(f"Failed to save state to storage: {e}", exc_info=True)

    # ============= Ingestion =============

    def _find_duplicate(self, file_hash: str) -> Optional[IngestedDocument]:
        return next((d for d in self._documents if d.content_hash == file_hash), None)

    def _reject_if_duplicate(self, file_name: str, file_hash: str) -> None:
        duplicate = self._find_duplicate(file_hash)
        if duplicate:
            logger.warning(
                f"Rejected '{file_name}': identical to existing document "
                f"'{duplicate.file_name}' ({duplicate.id})"
            )
            raise DuplicateDocumentError(file_name, duplicate.id)

    async def _embed_chunks(self, chunks: List[DocumentChunk], config: RagConfig) -> None:
        """Embed all chunks concurrently; any single failure fails the batch."""
        try:
            embeddings = await asyncio.gather(*[
                self.embedding_service.embed(chunk.text, config.embedding_model)
                for chunk in chunks
            ])
        except Exception as e:
            raise EmbeddingError(f"Embedding provider failed: {e}") from e

        for chunk, embedding in zip(chunks, embeddings):
            chunk.embedding = embedding

    async def _ingest(
        self,
        file_name: str,
        file_type: str,
        clean_text: str,
        config: RagConfig,
        pages: Optional[List[PageContent]] = None
    ) -> IngestedDocument:
        await self.ensure_initialized()

        file_hash = content_hash(clean_text)
        self._reject_if_duplicate(file_name, file_hash)

        doc = IngestedDocument(
            id=str(uuid4()),
            file_name=file_name,
            file_type=file_type,
            raw_text=clean_text,
            content_hash=file_hash
        )

        try:
            if pages is None:
                chunks = create_chunks(clean_text, doc.id, file_name, config)
            else:
                chunks = []
                for page in pages:
                    chunks.extend(create_chunks(
                        normalize_text(page.text), doc.id, file_name, config, page.page_number
                    ))
            renumber_chunks(chunks)

            if not chunks:
                raise DocumentProcessingError(
                    f"No text content found in '{file_name}'", ErrorCode.NO_TEXT_FOUND
                )

            await self._embed_chunks(chunks, config)

            # Another ingest of the same content may have finished while we awaited
            self._reject_if_duplicate(file_name, file_hash)
        except DocumentProcessingError as e:
            doc.status = DocumentStatus.ERROR
            logger.error(f"Ingestion failed for '{file_name}': {e}")
            raise

        doc.chunks = chunks
        doc.status = DocumentStatus.INDEXED
        self._documents.append(doc)
        self._chunks.extend(chunks)

        logger.info(f"Indexed '{file_name}' as {doc.id}: {len(chunks)} chunks")
        await self._save_state()
        return doc

    async def ingest_document(
        self, file_name: str, file_type: str, text: str, config: RagConfig
    ) -> IngestedDocument:
        return await self._ingest(file_name, file_type, normalize_text(text), config)

    async def ingest_document_with_pages(
        self, file_name: str, file_type: str, pages: List[PageContent], config: RagConfig
    ) -> IngestedDocument:
        """Chunk each page on its own so no chunk spans a page boundary."""
        full_text = normalize_text('\n'.join(page.text for page in pages))
        return await self._ingest(file_name, file_type, full_text, config, pages=pages)

    # ============= Removal =============

    async def remove_document(self, document_id: str) -> bool:
        await self.ensure_initialized()

        documents = [d for d in self._documents if d.id != document_id]
        chunks = [c for c in self._chunks if c.metadata.document_id != document_id]
        if len(documents) == len(self._documents) and len(chunks) == len(self._chunks):
            logger.info(f"Remove requested for unknown document {document_id}; nothing to do")
            return False

        self._documents = documents
        self._chunks = chunks
        logger.info(f"Removed document {document_id}")

        async with self._write_lock:
            try:
                await self.document_repo.delete_document(document_id)
            except Exception as e:
                logger.error(f"Failed to delete document {document_id} from storage: {e}", exc_info=True)
        return True

    async def clear_all(self) -> None:
        await self.ensure_initialized()

        self._documents = []
        self._chunks = []
        logger.info("Cleared all documents")

        async with self._write_lock:
            try:
                await self.document_repo.clear_all()
            except Exception as e:
                logger.error(f"Failed to clear storage: {e}", exc_info=True)

    # ============= Retrieval =============

    async def search(self, query: str, config: RagConfig) -> List[ChunkSearchResult]:
        await self.ensure_initialized()

        strategy = determine_strategy(query)
        try:
            query_embedding = await self.embedding_service.embed(query, config.embedding_model)
        except Exception as e:
            raise EmbeddingError(f"Query embedding failed: {e}") from e

        results = self.scorer.rank(query, query_embedding, strategy, list(self._chunks), config)
        logger.info(
            f"Search ({strategy.value}) over {len(self._chunks)} chunks returned {len(results)} results"
        )
        return results

    # ============= Queries =============

    async def list_documents(self) -> List[IngestedDocument]:
        await self.ensure_initialized()
        return list(self._documents)

    async def get_document(self, document_id: str) -> Optional[IngestedDocument]:
        await self.ensure_initialized()
        return next((d for d in self._documents if d.id == document_id), None)

    async def get_status(self) -> Dict[str, Any]:
        await self.ensure_initialized()
        return {
            "documents_loaded": [d.file_name for d in self._documents],
            "document_count": len(self._documents),
            "chunks_available": len(self._chunks),
            "ready_for_queries": len(self._chunks) > 0
        }
