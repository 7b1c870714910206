# services/scoring.py
"""Multi-factor relevance scoring and top-K ranking over in-memory chunks"""
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

import numpy as np

from config import settings
from core.domain import ChunkSearchResult, DocumentChunk
from core.enums import RetrievalStrategy
from core.models import RagConfig
from services.retrieval_strategies import extract_keywords

logger = logging.getLogger(settings.LOGGER_NAME)

SECONDS_PER_DAY = 60 * 60 * 24


class RelevanceScorer:
    """
    Combines semantic, lexical and curation signals into one score per chunk.

    Additive terms, in order: cosine similarity, exact-phrase bonus,
    keyword overlap, keyword density, strategy bonus. The sum is then scaled by
    weight * trust_score * freshness. Results at or below the noise floor are
    dropped before ranking.
    """

    EXACT_PHRASE_BONUS = 0.5
    KEYWORD_OVERLAP_WEIGHT = 0.3
    DENSITY_WEIGHT = 0.1
    DENSITY_CAP = 0.2
    STRATEGY_KEYWORD_BONUS = 0.05
    FRESHNESS_DECAY_PER_DAY = 0.001
    FRESHNESS_FLOOR = 0.9
    NOISE_FLOOR = 0.01

    KEYWORD_BOOSTED = (RetrievalStrategy.KEYWORD, RetrievalStrategy.HYBRID)

    @staticmethod
    def _semantic_similarity(query_vec: np.ndarray, embedding: Optional[List[float]]) -> float:
        """Dot product of unit vectors (cosine). Mismatched lengths use the shorter."""
        if not embedding:
            return 0.0
        chunk_vec = np.asarray(embedding, dtype=np.float64)
        n = min(query_vec.shape[0], chunk_vec.shape[0])
        return float(np.dot(query_vec[:n], chunk_vec[:n]))

    def freshness_multiplier(self, freshness: datetime, now: datetime) -> float:
        age_in_days = (now - freshness).total_seconds() / SECONDS_PER_DAY
        return max(self.FRESHNESS_FLOOR, 1 - age_in_days * self.FRESHNESS_DECAY_PER_DAY)

    def score_chunk(
        self,
        chunk: DocumentChunk,
        query_vec: np.ndarray,
        query_lower: str,
        keywords: Sequence[str],
        strategy: RetrievalStrategy,
        now: datetime
    ) -> ChunkSearchResult:
        chunk_lower = chunk.text.lower()

        # 1. Semantic similarity (base score)
        score = self._semantic_similarity(query_vec, chunk.embedding)

        # 2. Exact phrase match (a blank query matches everything, so it earns nothing)
        if query_lower.strip() and query_lower in chunk_lower:
            score += self.EXACT_PHRASE_BONUS

        # 3. Keyword overlap
        matched = [k for k in keywords if k in chunk_lower]
        m = len(matched)
        score += (m / max(len(keywords), 1)) * self.KEYWORD_OVERLAP_WEIGHT

        # 4. Keyword density (more matches in shorter text)
        if m > 0 and chunk.text:
            density = m / (len(chunk.text) / 100)
            score += min(density * self.DENSITY_WEIGHT, self.DENSITY_CAP)

        # 5. Strategy-specific boost
        if strategy in self.KEYWORD_BOOSTED:
            score += m * self.STRATEGY_KEYWORD_BONUS

        # 6. Weight, trust and freshness multipliers
        score *= (
            chunk.weight
            * chunk.metadata.trust_score
            * self.freshness_multiplier(chunk.metadata.freshness, now)
        )

        return ChunkSearchResult(
            chunk=chunk, score=score, strategy_used=strategy, matched_keywords=matched
        )

    def rank(
        self,
        query: str,
        query_embedding: List[float],
        strategy: RetrievalStrategy,
        chunks: Iterable[DocumentChunk],
        config: RagConfig,
        now: Optional[datetime] = None
    ) -> List[ChunkSearchResult]:
        """Score every chunk, drop noise, stable-sort descending, keep top_k."""
        now = now or datetime.now(timezone.utc)
        query_vec = np.asarray(query_embedding, dtype=np.float64)
        query_lower = query.lower()
        keywords = extract_keywords(query)

        scored = [
            self.score_chunk(chunk, query_vec, query_lower, keywords, strategy, now)
            for chunk in chunks
        ]
        relevant = [r for r in scored if r.score > self.NOISE_FLOOR]

        # sorted() is stable with reverse=True: ties keep collection order
        ranked = sorted(relevant, key=lambda r: r.score, reverse=True)[:config.top_k]

        logger.debug(
            f"Scored {len(scored)} chunks ({strategy.value}, {len(keywords)} keywords): "
            f"{len(relevant)} above floor, returning {len(ranked)}"
        )
        return ranked
