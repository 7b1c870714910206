import pytest

from core.enums import RetrievalStrategy
from services.retrieval_strategies import determine_strategy, extract_keywords


@pytest.mark.parametrize("query,expected", [
    ("cat", RetrievalStrategy.KEYWORD),
    ("black cat food", RetrievalStrategy.KEYWORD),
    ("Give me a summary of chapter 2", RetrievalStrategy.SUMMARY),
    ("What are the main findings here", RetrievalStrategy.SUMMARY),
    ("How many samples were collected overall", RetrievalStrategy.SUMMARY),
    ("explain the relationship between X and Y", RetrievalStrategy.ANALYTICAL),
    ("Compare the two approaches in detail", RetrievalStrategy.ANALYTICAL),
    ("Why did the experiment fail", RetrievalStrategy.ANALYTICAL),
    ("Do cats hunt at night?", RetrievalStrategy.HYBRID),
    ("Tell me about the migration patterns of arctic terns", RetrievalStrategy.HYBRID),
])
def test_strategy_classification(query, expected):
    assert determine_strategy(query) == expected


def test_short_query_wins_over_cues():
    assert determine_strategy("summary") == RetrievalStrategy.KEYWORD
    assert determine_strategy("explain why") == RetrievalStrategy.KEYWORD


def test_summary_cue_checked_before_analytical():
    assert determine_strategy("explain the overall design please") == RetrievalStrategy.SUMMARY


@pytest.mark.parametrize("query", ["", "   ", "\n\t"])
def test_blank_query_defaults_to_hybrid(query):
    assert determine_strategy(query) == RetrievalStrategy.HYBRID


def test_extract_keywords_drops_stop_words_and_short_words():
    assert extract_keywords("Do cats hunt at night?") == [
        "cats", "hunt", "night", "cats hunt", "hunt night"
    ]


def test_extract_keywords_strips_punctuation():
    assert extract_keywords("mammals, reptiles; birds!") == [
        "mammals", "reptiles", "birds", "mammals reptiles", "reptiles birds"
    ]


def test_extract_keywords_empty():
    assert extract_keywords("") == []
    assert extract_keywords("is it to be?") == []
