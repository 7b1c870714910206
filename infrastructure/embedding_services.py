# infrastructure/embedding_services.py
"""Deterministic lexical fingerprint used as the default embedding provider"""
import logging
import re
from typing import List

import numpy as np

from core.interfaces import IEmbeddingService
from config import settings

logger = logging.getLogger(settings.LOGGER_NAME)

_NON_WORD = re.compile(r'\W+', re.ASCII)


def l2_normalize(vec: np.ndarray) -> np.ndarray:
    """Scale to unit length; a zero vector stays zero."""
    norm = np.linalg.norm(vec)
    if norm == 0:
        return vec
    return vec / norm


class HashingEmbeddingService(IEmbeddingService):
    """
    Bag-of-characters feature hash used in place of a learned embedding.

    For word i (0-based) and character j within it, 1/(i+1) is added to slot
    (ord(c) * (j+1)) mod dimension, then the vector is L2-normalized. The
    result is deterministic and sensitive to word order and character
    position, but carries no semantic generalization.
    """

    def __init__(self, dimension: int = 1024):
        self.dimension = dimension

    def embed_sync(self, text: str) -> np.ndarray:
        vector = np.zeros(self.dimension, dtype=np.float64)
        words = _NON_WORD.split(text.lower())

        for i, word in enumerate(words):
            position_weight = 1 / (i + 1)
            for j, ch in enumerate(word):
                vector[(ord(ch) * (j + 1)) % self.dimension] += position_weight

        return l2_normalize(vector)

    async def embed(self, text: str, model_id: str) -> List[float]:
        """model_id is recorded only; the fingerprint does not depend on it."""
        logger.debug(f"Hashing embedding requested for model '{model_id}' ({len(text)} chars)")
        return self.embed_sync(text).tolist()
