# database/session.py

import logging
from typing import Tuple

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.ext.asyncio import (AsyncEngine, AsyncSession, async_sessionmaker,
                                    create_async_engine)
from sqlalchemy.orm import declarative_base

from config import settings

logger = logging.getLogger(settings.LOGGER_NAME)

Base = declarative_base()

# ============= Models =============

class DocumentEntity(Base):
    __tablename__ = "documents"
    id = Column(String, primary_key=True)
    position = Column(Integer, nullable=False, index=True)  # order in the saved snapshot
    file_name = Column(String, nullable=False)
    file_type = Column(String, nullable=False)
    raw_text = Column(Text, nullable=False)
    content_hash = Column(String, index=True, nullable=False)
    status = Column(String, nullable=False)
    ingested_at = Column(DateTime(timezone=True), nullable=False)

class ChunkEntity(Base):
    __tablename__ = "chunks"
    id = Column(String, primary_key=True)
    position = Column(Integer, nullable=False, index=True)
    document_id = Column(String, index=True, nullable=False)
    text = Column(Text, nullable=False)
    embedding = Column(JSON, nullable=True)
    weight = Column(Float, nullable=False, default=1.0)
    chunk_index = Column(Integer, nullable=False)
    source_file_name = Column(String, nullable=False)
    page_number = Column(Integer, nullable=True)
    start_word = Column(Integer, nullable=False)
    end_word = Column(Integer, nullable=False)
    trust_score = Column(Float, nullable=False, default=1.0)
    freshness = Column(DateTime(timezone=True), nullable=False)


# ============= Session Factory =============

def create_engine_and_sessionmaker(
    database_url: str = settings.DATABASE_URL
) -> Tuple[AsyncEngine, async_sessionmaker]:
    """Create the async engine and its session maker for one composition root."""
    engine = create_async_engine(
        database_url,
        echo=False,
        pool_pre_ping=True  # Check connection health before using
    )
    return engine, async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    """Create tables if they do not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized")
