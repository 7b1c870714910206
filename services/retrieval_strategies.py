# services/retrieval_strategies.py
"""Query classification and keyword extraction for relevance scoring"""
import re
from typing import FrozenSet, List, Tuple

from core.enums import RetrievalStrategy

SUMMARY_CUES: Tuple[str, ...] = ("summary", "overall", "how many", "list all", "what are")
ANALYTICAL_CUES: Tuple[str, ...] = ("explain", "relationship", "why", "how does", "compare", "difference")

# Short queries benefit from keyword matching
KEYWORD_MAX_WORDS = 3

STOP_WORDS: FrozenSet[str] = frozenset({
    "the", "is", "at", "which", "on", "a", "an", "and", "or", "but", "in", "with",
    "to", "for", "of", "that", "this", "it", "from", "as", "are", "was", "were",
    "been", "be", "have", "has", "had", "do", "does", "did", "will", "would",
    "could", "should", "may", "might", "can", "what", "how", "who", "when",
    "where", "why",
})

_PUNCTUATION = re.compile(r'[^\w\s]', re.ASCII)


def determine_strategy(query: str) -> RetrievalStrategy:
    """
    Classify a query; first matching rule wins.

    1. blank query -> HYBRID (purely semantic scoring)
    2. <= 3 words -> KEYWORD
    3. summary cue -> SUMMARY
    4. analytical cue -> ANALYTICAL
    5. otherwise -> HYBRID
    """
    q = query.lower()
    words = q.split()

    if not words:
        return RetrievalStrategy.HYBRID

    if len(words) <= KEYWORD_MAX_WORDS:
        return RetrievalStrategy.KEYWORD

    if any(cue in q for cue in SUMMARY_CUES):
        return RetrievalStrategy.SUMMARY

    if any(cue in q for cue in ANALYTICAL_CUES):
        return RetrievalStrategy.ANALYTICAL

    return RetrievalStrategy.HYBRID


def extract_keywords(query: str) -> List[str]:
    """
    Extract meaningful keywords plus adjacent-word bigrams.
    Drops stop words and words of 2 characters or fewer.
    """
    words = [
        w for w in _PUNCTUATION.sub(' ', query.lower()).split()
        if len(w) > 2 and w not in STOP_WORDS
    ]

    # Bigrams for phrase matching
    bigrams = [f"{first} {second}" for first, second in zip(words, words[1:])]
    return words + bigrams
