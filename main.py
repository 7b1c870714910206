# main.py
"""Main application: composition root and lifespan"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from config import settings
from api.endpoints import router
from core.interfaces import IAnswerGenerator
from database.session import create_engine_and_sessionmaker, init_models
from services.factory import build_rag_service, get_answer_generator, get_document_repository
from services.logger_config import setup_logging
from services.rag_service import RAGService

logger = logging.getLogger(settings.LOGGER_NAME)


def create_app(
    rag_service: Optional[RAGService] = None,
    answer_generator: Optional[IAnswerGenerator] = None,
    database_url: str = settings.DATABASE_URL
) -> FastAPI:
    """
    Build the application. Pre-built collaborators (tests, embedding in other
    hosts) skip the database wiring.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        setup_logging()
        logger.info("Starting application...")
        engine = None

        service = rag_service
        if service is None:
            engine, session_factory = create_engine_and_sessionmaker(database_url)
            await init_models(engine)
            service = build_rag_service(get_document_repository(session_factory))

        app.state.rag_service = service
        app.state.answer_generator = answer_generator or get_answer_generator()

        # Load persisted documents before serving the first request
        await service.initialize()
        logger.info("Services initialized")

        yield

        logger.info("Shutting down application...")
        if engine is not None:
            await engine.dispose()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title=settings.APP_TITLE,
        version=settings.APP_VERSION,
        lifespan=lifespan
    )
    app.include_router(router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
