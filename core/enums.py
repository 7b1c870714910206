# core/enums.py
"""Shared enumerations used across the application."""
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for user-facing error messages."""
    DUPLICATE_FILE = "DUPLICATE_FILE"
    NO_TEXT_FOUND = "NO_TEXT_FOUND"
    EMBEDDING_FAILED = "EMBEDDING_FAILED"
    PROCESSING_FAILED = "PROCESSING_FAILED"


class DocumentStatus(str, Enum):
    """Document ingestion lifecycle."""
    PROCESSING = "processing"
    INDEXED = "indexed"
    ERROR = "error"

    @staticmethod
    def from_string(status: str) -> 'DocumentStatus':
        """Convert string to DocumentStatus enum."""
        try:
            return DocumentStatus(status)
        except ValueError:
            return DocumentStatus.ERROR


class RetrievalStrategy(str, Enum):
    """Query classification that adjusts scoring weights."""
    KEYWORD = "keyword"
    SUMMARY = "summary"
    ANALYTICAL = "analytical"
    HYBRID = "hybrid"


class QueryScope(str, Enum):
    """Scope reported by the answer generator."""
    NARROW = "narrow"
    BROAD = "broad"
    EXPLORATORY = "exploratory"
