# services/chunking.py
"""Word-window chunking with positional and provenance metadata"""
import logging
from typing import List, Optional
from uuid import uuid4

from config import settings
from core.domain import ChunkMetadata, DocumentChunk
from core.models import RagConfig

logger = logging.getLogger(settings.LOGGER_NAME)

# Average characters per word including the trailing space
CHARS_PER_WORD = 6


def create_chunks(
    text: str,
    document_id: str,
    file_name: str,
    config: RagConfig,
    page_number: Optional[int] = None
) -> List[DocumentChunk]:
    """
    Split normalized text into overlapping word windows.

    Each window holds chunk_size // 6 words and the next window starts
    (chunk_size - chunk_overlap) // 6 words later. If the overlap swallows the
    whole window the step is non-positive: only the first window is produced.
    Blank windows are skipped but still consume their position.
    Chunk indices are provisional; call renumber_chunks() once all chunks of a
    document exist.
    """
    words = text.split(' ')
    words_per_chunk = config.chunk_size // CHARS_PER_WORD
    overlap_words = config.chunk_overlap // CHARS_PER_WORD
    step = words_per_chunk - overlap_words

    if step <= 0:
        logger.warning(
            f"Chunk overlap ({config.chunk_overlap}) >= chunk size ({config.chunk_size}) "
            f"for '{file_name}'; producing a single window"
        )

    chunks: List[DocumentChunk] = []
    start = 0
    while start < len(words):
        end = min(start + words_per_chunk, len(words))
        chunk_text = ' '.join(words[start:end])

        if chunk_text.strip():
            chunks.append(DocumentChunk(
                id=str(uuid4()),
                text=chunk_text,
                metadata=ChunkMetadata(
                    document_id=document_id,
                    chunk_index=len(chunks),
                    source_file_name=file_name,
                    page_number=page_number,
                    start_word=start,
                    end_word=end,
                )
            ))

        if step <= 0:
            break
        start += step

    return chunks


def renumber_chunks(chunks: List[DocumentChunk]) -> List[DocumentChunk]:
    """Assign a dense 0-based chunk_index across the whole document, in order."""
    for index, chunk in enumerate(chunks):
        chunk.metadata.chunk_index = index
    return chunks
