# api/endpoints.py
"""
API endpoints for document ingestion, retrieval and grounded answering.

Text extraction happens client-side: requests carry plain text or per-page
text. Every ingest/search request may carry its own RagConfig; when omitted the
defaults from settings apply.
"""
import asyncio
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request

from api.schemas import (
    AskResponse,
    ChunkItem,
    DeleteResponse,
    DocumentDetail,
    DocumentsListResponse,
    DocumentSummary,
    FlashcardsResponse,
    IngestRequest,
    SearchRequest,
    SearchResponse,
    SearchResultItem,
    StatusResponse,
)
from config import settings
from core.domain import ChunkSearchResult, DocumentProcessingError, IngestedDocument
from core.enums import ErrorCode
from core.interfaces import IAnswerGenerator, IRAGService
from core.models import RagConfig, get_default_config
from services.retrieval_strategies import determine_strategy
from utils.common import truncate_snippet, validate_document_id

router = APIRouter()

_ERROR_STATUS = {
    ErrorCode.DUPLICATE_FILE: 409,
    ErrorCode.NO_TEXT_FOUND: 422,
    ErrorCode.EMBEDDING_FAILED: 502,
}


# ---------- Dependencies ----------
def get_rag_service(request: Request) -> IRAGService:
    return request.app.state.rag_service


def get_answer_generator(request: Request) -> IAnswerGenerator:
    return request.app.state.answer_generator


# ---------- Helpers ----------
def _to_http_error(e: DocumentProcessingError) -> HTTPException:
    return HTTPException(status_code=_ERROR_STATUS.get(e.error_code, 500), detail=str(e))


def _resolve_config(config: Optional[RagConfig]) -> RagConfig:
    return config or get_default_config()


def _check_document_id(document_id: str) -> None:
    if not validate_document_id(document_id):
        raise HTTPException(status_code=422, detail="Invalid document ID format")


def _check_query(query: str) -> None:
    if len(query) > settings.MAX_QUERY_LENGTH:
        raise HTTPException(
            status_code=422,
            detail=f"Search query must be at most {settings.MAX_QUERY_LENGTH} characters"
        )


def _summary(doc: IngestedDocument) -> DocumentSummary:
    return DocumentSummary(
        id=doc.id,
        file_name=doc.file_name,
        file_type=doc.file_type,
        status=doc.status,
        content_hash=doc.content_hash,
        chunks=len(doc.chunks),
        pages=len({c.metadata.page_number for c in doc.chunks if c.metadata.page_number}),
        ingested_at=doc.ingested_at,
    )


def _result_item(result: ChunkSearchResult) -> SearchResultItem:
    md = result.chunk.metadata
    return SearchResultItem(
        chunk_id=result.chunk.id,
        document_id=md.document_id,
        source_file_name=md.source_file_name,
        chunk_index=md.chunk_index,
        page_number=md.page_number,
        content_snippet=truncate_snippet(result.chunk.text, settings.SNIPPET_LENGTH),
        score=result.score,
        strategy=result.strategy_used,
        matched_keywords=result.matched_keywords,
    )


# ---------- Documents ----------
@router.post("/documents", response_model=DocumentSummary, status_code=201)
async def ingest_document(
    ingest_request: IngestRequest,
    rag_service: IRAGService = Depends(get_rag_service),
) -> DocumentSummary:
    config = _resolve_config(ingest_request.config)
    try:
        if ingest_request.pages is not None:
            doc = await rag_service.ingest_document_with_pages(
                ingest_request.file_name, ingest_request.file_type, ingest_request.pages, config
            )
        else:
            doc = await rag_service.ingest_document(
                ingest_request.file_name, ingest_request.file_type, ingest_request.text or "", config
            )
    except DocumentProcessingError as e:
        raise _to_http_error(e)
    return _summary(doc)


@router.get("/documents", response_model=DocumentsListResponse)
async def list_documents(
    rag_service: IRAGService = Depends(get_rag_service),
) -> DocumentsListResponse:
    documents = await rag_service.list_documents()
    return DocumentsListResponse(documents=[_summary(d) for d in documents])


@router.get("/documents/{document_id}", response_model=DocumentDetail)
async def get_document(
    document_id: str,
    rag_service: IRAGService = Depends(get_rag_service),
) -> DocumentDetail:
    _check_document_id(document_id)
    doc = await rag_service.get_document(document_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")

    return DocumentDetail(
        **_summary(doc).model_dump(),
        chunk_items=[
            ChunkItem(
                id=c.id,
                chunk_index=c.metadata.chunk_index,
                page_number=c.metadata.page_number,
                start_word=c.metadata.start_word,
                end_word=c.metadata.end_word,
                text=c.text,
            )
            for c in doc.chunks
        ],
    )


@router.delete("/documents/{document_id}", response_model=DeleteResponse)
async def delete_document(
    document_id: str,
    rag_service: IRAGService = Depends(get_rag_service),
) -> DeleteResponse:
    _check_document_id(document_id)
    removed = await rag_service.remove_document(document_id)
    return DeleteResponse(
        status="success",
        message="Document deleted successfully" if removed else "Document not found; nothing to delete",
    )


@router.post("/documents/{document_id}/flashcards", response_model=FlashcardsResponse)
async def generate_flashcards(
    document_id: str,
    rag_service: IRAGService = Depends(get_rag_service),
    answer_generator: IAnswerGenerator = Depends(get_answer_generator),
) -> FlashcardsResponse:
    """Study cards from one document's text; an empty list when generation fails."""
    _check_document_id(document_id)
    doc = await rag_service.get_document(document_id)
    if not doc:
        raise HTTPException(status_code=404, detail="Document not found")

    flashcards = await asyncio.to_thread(
        answer_generator.generate_flashcards, doc.raw_text, doc.file_name
    )
    return FlashcardsResponse(document_id=doc.id, flashcards=flashcards)


@router.delete("/documents", response_model=DeleteResponse)
async def clear_all_documents(
    rag_service: IRAGService = Depends(get_rag_service),
) -> DeleteResponse:
    await rag_service.clear_all()
    return DeleteResponse(status="success", message="All documents cleared successfully")


# ---------- Search ----------
@router.post("/search", response_model=SearchResponse)
async def search_endpoint(
    search_request: SearchRequest,
    rag_service: IRAGService = Depends(get_rag_service),
) -> SearchResponse:
    _check_query(search_request.query)
    try:
        results = await rag_service.search(search_request.query, _resolve_config(search_request.config))
    except DocumentProcessingError as e:
        raise _to_http_error(e)

    items = [_result_item(r) for r in results]
    return SearchResponse(
        status="success",
        query=search_request.query,
        strategy=results[0].strategy_used if results else determine_strategy(search_request.query),
        results=items,
        total_results=len(items),
    )


@router.post("/ask", response_model=AskResponse)
async def ask_endpoint(
    search_request: SearchRequest,
    rag_service: IRAGService = Depends(get_rag_service),
    answer_generator: IAnswerGenerator = Depends(get_answer_generator),
) -> AskResponse:
    """Retrieve context, then hand it to the answer generator."""
    _check_query(search_request.query)

    status = await rag_service.get_status()
    if not status["ready_for_queries"]:
        raise HTTPException(status_code=400, detail="Please ingest a document first")

    config = _resolve_config(search_request.config)
    try:
        results: List[ChunkSearchResult] = await rag_service.search(search_request.query, config)
    except DocumentProcessingError as e:
        raise _to_http_error(e)

    # The answer generator blocks on HTTP; keep the event loop free
    answer = await asyncio.to_thread(
        answer_generator.generate_answer, search_request.query, results, config
    )
    return AskResponse(
        query=search_request.query,
        answer=answer,
        citations=[_result_item(r) for r in results],
    )


# ---------- Status ----------
@router.get("/status", response_model=StatusResponse)
async def get_status(
    rag_service: IRAGService = Depends(get_rag_service),
) -> StatusResponse:
    status = await rag_service.get_status()
    return StatusResponse(**status)
