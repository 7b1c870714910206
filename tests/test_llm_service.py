import json

import pytest
import requests

from core.domain import ChunkMetadata, ChunkSearchResult, DocumentChunk
from core.enums import QueryScope, RetrievalStrategy
from core.models import RagConfig
from services import llm_service
from services.llm_service import LLMService, build_context, build_prompt


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body or {}

    def json(self):
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)


def _result(text, index=0, page=None, file_name="bio.txt"):
    chunk = DocumentChunk(
        id=f"c{index}",
        text=text,
        metadata=ChunkMetadata(
            document_id="doc-1",
            chunk_index=index,
            source_file_name=file_name,
            start_word=0,
            end_word=len(text.split(" ")),
            page_number=page,
        ),
    )
    return ChunkSearchResult(chunk=chunk, score=1.0, strategy_used=RetrievalStrategy.HYBRID)


ANSWER_JSON = json.dumps({
    "answer": "Cats hunt at night. [Source: bio.txt, Chunk: 0]",
    "confidence": 0.9,
    "reasoning": "Stated directly.",
    "assumptions": [],
    "scope": "narrow",
    "inconsistency_detected": False,
    "follow_ups": ["What do cats eat?", "Are cats mammals?", "Where do cats sleep?"],
})


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def service(sleeps):
    return LLMService(
        base_url="http://llm.test/", timeout=5, max_retries=3, retry_base_delay=2.0, sleep=sleeps.append
    )


def test_build_context_format():
    context = build_context([_result("Cats hunt at night."), _result("Page text", index=1, page=4, file_name="b.pdf")])
    assert context == (
        "[CHUNK 0]\nSource: bio.txt\nContent: Cats hunt at night.\n\n"
        "[CHUNK 1]\nSource: b.pdf, Page: 4\nContent: Page text"
    )


def test_build_prompt_carries_style_instructions():
    config = RagConfig(strictness="creative", answer_depth="concise")
    prompt = build_prompt("Do cats hunt?", [_result("Cats hunt.")], config)
    assert prompt.startswith("QUERY: Do cats hunt?")
    assert llm_service.STRICTNESS_INSTRUCTIONS["creative"] in prompt
    assert llm_service.DEPTH_INSTRUCTIONS["concise"] in prompt


def test_generate_answer_success(monkeypatch, service):
    calls = []

    def fake_post(url, json, timeout):
        calls.append((url, json, timeout))
        return FakeResponse(200, {"response": ANSWER_JSON})

    monkeypatch.setattr(llm_service.requests, "post", fake_post)
    answer = service.generate_answer("Do cats hunt at night?", [_result("Cats hunt at night.")], RagConfig(temperature=0.1))

    assert answer.confidence == 0.9
    assert answer.scope == QueryScope.NARROW
    assert len(answer.follow_ups) == 3

    url, payload, timeout = calls[0]
    assert url == "http://llm.test/api/generate"
    assert timeout == 5
    assert payload["format"] == "json"
    assert payload["stream"] is False
    assert payload["options"] == {"temperature": 0.1}
    assert "[CHUNK 0]" in payload["prompt"]


def test_rate_limit_is_retried_with_backoff(monkeypatch, service, sleeps):
    responses = iter([FakeResponse(429), FakeResponse(503), FakeResponse(200, {"response": ANSWER_JSON})])
    monkeypatch.setattr(llm_service.requests, "post", lambda url, json, timeout: next(responses))

    answer = service.generate_answer("q", [], RagConfig())

    assert answer.confidence == 0.9
    assert sleeps == [2.0, 4.0]


def test_retries_exhausted_returns_fallback(monkeypatch, service, sleeps):
    monkeypatch.setattr(llm_service.requests, "post", lambda url, json, timeout: FakeResponse(429))

    answer = service.generate_answer("q", [], RagConfig())

    assert answer.confidence == 0.0
    assert "429" in answer.reasoning
    assert sleeps == [2.0, 4.0, 8.0]


def test_non_retryable_error_is_not_retried(monkeypatch, service, sleeps):
    monkeypatch.setattr(llm_service.requests, "post", lambda url, json, timeout: FakeResponse(500))

    answer = service.generate_answer("q", [], RagConfig())

    assert answer.confidence == 0.0
    assert sleeps == []


def test_connection_error_returns_fallback(monkeypatch, service):
    def refuse(url, json, timeout):
        raise requests.exceptions.ConnectionError("refused")

    monkeypatch.setattr(llm_service.requests, "post", refuse)
    answer = service.generate_answer("q", [], RagConfig())

    assert answer.confidence == 0.0
    assert answer.reasoning == "Cannot connect to LLM service"


def test_timeout_returns_fallback(monkeypatch, service):
    def slow(url, json, timeout):
        raise requests.exceptions.Timeout()

    monkeypatch.setattr(llm_service.requests, "post", slow)
    assert service.generate_answer("q", [], RagConfig()).reasoning == "LLM request timed out"


@pytest.mark.parametrize("raw", ["not json", "{}", json.dumps({"answer": ""}), ""])
def test_malformed_response_returns_fallback(monkeypatch, service, raw):
    monkeypatch.setattr(
        llm_service.requests, "post", lambda url, json, timeout: FakeResponse(200, {"response": raw})
    )
    answer = service.generate_answer("q", [], RagConfig())

    assert answer.confidence == 0.0
    assert answer.reasoning == "Malformed LLM response"


def test_non_object_body_returns_fallback(monkeypatch, service):
    monkeypatch.setattr(
        llm_service.requests, "post", lambda url, json, timeout: FakeResponse(200, ["not", "an", "object"])
    )
    answer = service.generate_answer("q", [], RagConfig())

    assert answer.confidence == 0.0
    assert answer.reasoning == "Malformed LLM response"


FLASHCARDS_JSON = json.dumps({"flashcards": [
    {"question": "Are cats mammals?", "answer": "Yes"},
    {"question": "When do cats hunt?", "answer": "At night"},
]})


def test_generate_flashcards(monkeypatch, service):
    calls = []

    def fake_post(url, json, timeout):
        calls.append(json)
        return FakeResponse(200, {"response": FLASHCARDS_JSON})

    monkeypatch.setattr(llm_service.requests, "post", fake_post)
    cards = service.generate_flashcards("Cats are mammals. Cats hunt at night.", "bio.txt")

    assert [(c.question, c.answer) for c in cards] == [
        ("Are cats mammals?", "Yes"), ("When do cats hunt?", "At night")
    ]
    assert all(c.source_doc == "bio.txt" for c in cards)
    assert len({c.id for c in cards}) == 2
    assert "Cats hunt at night." in calls[0]["prompt"]
    assert calls[0]["format"] == "json"


def test_generate_flashcards_accepts_bare_list(monkeypatch, service):
    body = {"response": json.dumps([{"question": "Q?", "answer": "A"}])}
    monkeypatch.setattr(llm_service.requests, "post", lambda url, json, timeout: FakeResponse(200, body))

    cards = service.generate_flashcards("text")

    assert [c.source_doc for c in cards] == ["Derived Knowledge"]


def test_generate_flashcards_retries_rate_limit(monkeypatch, service, sleeps):
    responses = iter([FakeResponse(429), FakeResponse(200, {"response": FLASHCARDS_JSON})])
    monkeypatch.setattr(llm_service.requests, "post", lambda url, json, timeout: next(responses))

    cards = service.generate_flashcards("text", "bio.txt")

    assert len(cards) == 2
    assert sleeps == [2.0]


@pytest.mark.parametrize("response", [
    FakeResponse(500),
    FakeResponse(200, {"response": "not json"}),
    FakeResponse(200, {"response": json.dumps({"flashcards": [{"question": "Q?"}]})}),
    FakeResponse(200, ["not", "an", "object"]),
])
def test_generate_flashcards_falls_back_to_empty(monkeypatch, service, response):
    monkeypatch.setattr(llm_service.requests, "post", lambda url, json, timeout: response)
    assert service.generate_flashcards("text", "bio.txt") == []


def test_generate_flashcards_connection_error(monkeypatch, service):
    def refuse(url, json, timeout):
        raise requests.exceptions.ConnectionError("refused")

    monkeypatch.setattr(llm_service.requests, "post", refuse)
    assert service.generate_flashcards("text") == []
