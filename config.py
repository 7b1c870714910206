# config.py
"""Application configuration"""
from pydantic_settings import BaseSettings
from utils.common import get_log_file_path

class Settings(BaseSettings):
    """Application configuration"""

    # Logger configuration
    LOG_FILE_PATH: str = get_log_file_path()
    LOGGER_NAME: str = "docqa"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./docqa.db"

    # Embedding provider: "hashing" (built-in lexical fingerprint) or "sentence_transformers"
    EMBEDDING_PROVIDER: str = "hashing"
    EMBEDDING_DIMENSION: int = 1024
    SENTENCE_TRANSFORMER_MODEL: str = "all-MiniLM-L6-v2"

    # Per-call defaults (used when a request carries no RagConfig)
    DEFAULT_CHUNK_SIZE: int = 1000
    DEFAULT_CHUNK_OVERLAP: int = 200
    DEFAULT_TOP_K: int = 6
    DEFAULT_EMBEDDING_MODEL: str = "text-embedding-004"
    DEFAULT_TEMPERATURE: float = 0.3
    DEFAULT_STRICTNESS: str = "factual"
    DEFAULT_ANSWER_DEPTH: str = "standard"

    # Answer generation (Ollama-compatible API)
    LLM_MODEL_NAME: str = "llama3.1:8b"
    LLM_BASE_URL: str = "http://localhost:11434"
    REQUEST_TIMEOUT: int = 60
    LLM_MAX_RETRIES: int = 5
    LLM_RETRY_BASE_DELAY: float = 2.0  # seconds, doubled per attempt

    # API
    SNIPPET_LENGTH: int = 300
    MAX_QUERY_LENGTH: int = 2000

    # App metadata
    APP_TITLE: str = "Document QA Retrieval Engine"
    APP_VERSION: str = "1.0.0"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
