# infrastructure/sentence_transformer_embedding.py
"""Embedding generation with L2 normalization for consistent similarity scoring"""
import asyncio
import logging
from typing import Dict, List, Optional

import numpy as np
from sentence_transformers import SentenceTransformer

from core.interfaces import IEmbeddingService
from infrastructure.embedding_services import l2_normalize
from config import settings

logger = logging.getLogger(settings.LOGGER_NAME)

class SentenceTransformerEmbedding(IEmbeddingService):
    """
    Sentence transformer with L2 normalization (unit vectors).

    Unit vectors make the scorer's dot product a cosine similarity, so this
    provider replaces the hashing fingerprint without any scoring change.
    Note: vectors from different providers are not comparable; re-ingest
    documents after switching EMBEDDING_PROVIDER.
    """

    _models: Dict[str, SentenceTransformer] = {}  # Singleton cache per model name

    def __init__(self, model_name: Optional[str] = None):
        """Initializes the service, loading the heavy model only once."""
        self.model_name = model_name or settings.SENTENCE_TRANSFORMER_MODEL
        self.model = self._load_model(self.model_name)

    @classmethod
    def _load_model(cls, model_name: str) -> SentenceTransformer:
        if model_name in cls._models:
            return cls._models[model_name]

        try:
            logger.info(f"Attempting to load model {model_name} from local cache...")
            model = SentenceTransformer(model_name, local_files_only=True)
            logger.info(f"Successfully loaded {model_name} from local cache.")
        except Exception as e:
            logger.warning(
                f"Model {model_name} not found in cache. Attempting online download. "
                f"This may take a few minutes. Error: {e}"
            )
            model = SentenceTransformer(model_name)
            logger.info(f"Successfully downloaded and loaded {model_name}.")

        cls._models[model_name] = model
        return model

    async def embed(self, text: str, model_id: str) -> List[float]:
        """
        Generate an L2-normalized embedding for one text.

        model_id is the model named in the caller's RagConfig; the loaded
        model serves every request and a mismatch is only logged.
        """
        if model_id and model_id != self.model_name:
            logger.debug(f"Requested model '{model_id}' served by '{self.model_name}'")

        raw = await asyncio.to_thread(
            self.model.encode,
            text,
            convert_to_tensor=False
        )
        return l2_normalize(np.asarray(raw, dtype=np.float64).reshape(-1)).tolist()
