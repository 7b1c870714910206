import asyncio
import sys
from pathlib import Path
from typing import List

import pytest

# Repo root = one level above tests/
REPO_ROOT = Path(__file__).resolve().parents[1]

# Flat layout: make `config`, `core`, `services`, ... importable without install
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from core.interfaces import IEmbeddingService  # noqa: E402
from core.models import RagConfig  # noqa: E402
from infrastructure.embedding_services import HashingEmbeddingService  # noqa: E402
from infrastructure.repositories import InMemoryDocumentRepository  # noqa: E402
from services.rag_service import RAGService  # noqa: E402


class FailingEmbeddingService(IEmbeddingService):
    """Fails once `fail_after` calls have succeeded."""

    def __init__(self, fail_after: int = 0):
        self.fail_after = fail_after
        self.calls = 0
        self._inner = HashingEmbeddingService()

    async def embed(self, text: str, model_id: str) -> List[float]:
        self.calls += 1
        if self.calls > self.fail_after:
            raise RuntimeError("embedding backend unavailable")
        return await self._inner.embed(text, model_id)


class FailingRepository(InMemoryDocumentRepository):
    """Loads fine, every write fails."""

    async def save_documents(self, documents):
        raise OSError("disk full")

    async def save_chunks(self, chunks):
        raise OSError("disk full")

    async def delete_document(self, document_id):
        raise OSError("disk full")

    async def clear_all(self):
        raise OSError("disk full")


class SlowCountingRepository(InMemoryDocumentRepository):
    """Counts loads and yields to the event loop while loading."""

    def __init__(self):
        super().__init__()
        self.load_calls = 0

    async def load_documents(self):
        self.load_calls += 1
        await asyncio.sleep(0.01)
        return await super().load_documents()


@pytest.fixture
def config() -> RagConfig:
    # 10 words per chunk, 2 words of overlap
    return RagConfig(chunk_size=60, chunk_overlap=12, top_k=5)


@pytest.fixture
def repository() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture
def rag_service(repository) -> RAGService:
    return RAGService(document_repo=repository, embedding_service=HashingEmbeddingService())


class SlowSavingRepository(InMemoryDocumentRepository):
    """Signals when a snapshot save starts, then holds it open for `delay` seconds."""

    def __init__(self, delay: float = 0.05):
        super().__init__()
        self.delay = delay
        self.save_started = asyncio.Event()

    async def save_documents(self, documents):
        self.save_started.set()
        await asyncio.sleep(self.delay)
        await super().save_documents(documents)
