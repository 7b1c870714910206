# services/llm_service.py
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from config import settings
from core.domain import ChunkSearchResult
from core.enums import QueryScope
from core.interfaces import IAnswerGenerator
from core.models import AnswerResponse, Flashcard, RagConfig

logger = logging.getLogger(settings.LOGGER_NAME)

SYSTEM_PROMPT = """You are a document analyst. You provide grounded answers based ONLY on the provided document context.

PROTOCOLS:
1. ASSUMPTION TRACKING: List any inferences you had to make to connect chunks. Separate direct facts from derived inferences.
2. SCOPE DETECTION: Categorize the query as narrow (specific fact), broad (summary/overview), or exploratory (asking for connections).
3. INCONSISTENCY MONITOR: If two chunks contradict each other, flag it and state it clearly in the answer.
4. HALLUCINATION CONTROL: Say "Information missing from index" if the chunks do not support an answer.

Cite sources as [Source: filename, Chunk: index].

Respond with a single JSON object with the keys: answer (string), confidence (number 0-1),
reasoning (string), assumptions (list of strings), scope ("narrow" | "broad" | "exploratory"),
inconsistency_detected (boolean), follow_ups (list of 3 strings)."""

STRICTNESS_INSTRUCTIONS = {
    "factual": "Use only facts stated in the context. Do not speculate.",
    "balanced": "Prefer stated facts; clearly marked, reasonable inferences are allowed.",
    "creative": "You may synthesize and extrapolate beyond the context, labelling it as such.",
}

DEPTH_INSTRUCTIONS = {
    "concise": "Answer in two or three sentences.",
    "standard": "Answer in a short structured paragraph or bullet list.",
    "detailed": "Give a thorough, structured answer covering every relevant chunk.",
}

FLASHCARD_PROMPT = """Extract 3-5 key concepts from this text and turn them into flashcards (question and answer pairs).
Respond with a single JSON object: {{"flashcards": [{{"question": "...", "answer": "..."}}]}}

Text: {text}"""

RETRYABLE_STATUS = (429, 503)


def build_context(results: List[ChunkSearchResult]) -> str:
    """Format ranked chunks as numbered context blocks."""
    blocks = []
    for i, result in enumerate(results):
        md = result.chunk.metadata
        page_info = f", Page: {md.page_number}" if md.page_number else ""
        blocks.append(
            f"[CHUNK {i}]\nSource: {md.source_file_name}{page_info}\nContent: {result.chunk.text}"
        )
    return "\n\n".join(blocks)


def build_prompt(query: str, results: List[ChunkSearchResult], config: RagConfig) -> str:
    return (
        f"QUERY: {query}\n\n"
        f"CONTEXT:\n{build_context(results)}\n\n"
        f"STRICTNESS: {STRICTNESS_INSTRUCTIONS[config.strictness]}\n"
        f"DEPTH: {DEPTH_INSTRUCTIONS[config.answer_depth]}"
    )


def fallback_response(reason: str) -> AnswerResponse:
    return AnswerResponse(
        answer="The answer service is unavailable. Please try again in a moment.",
        confidence=0.0,
        reasoning=reason,
        scope=QueryScope.NARROW,
    )


class LLMService(IAnswerGenerator):
    """A service to interact with a local LLM API (e.g., Ollama)."""

    def __init__(
        self,
        base_url: str = settings.LLM_BASE_URL,
        timeout: int = settings.REQUEST_TIMEOUT,
        max_retries: int = settings.LLM_MAX_RETRIES,
        retry_base_delay: float = settings.LLM_RETRY_BASE_DELAY,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initializes the LLMService.

        Args:
            base_url: The base URL of the LLM API.
            timeout: The request timeout in seconds.
            max_retries: Retries for rate-limited (429) or unavailable (503) responses.
            retry_base_delay: First backoff delay in seconds; doubled per attempt.
            sleep: Injected for tests.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self._sleep = sleep

    def _post_with_retry(self, payload: Dict[str, Any]) -> Any:
        """POST to /api/generate, backing off 2s, 4s, 8s... on 429/503."""
        for attempt in range(self.max_retries + 1):
            response = requests.post(
                f"{self.base_url}/api/generate",
                json=payload,
                timeout=self.timeout
            )
            if response.status_code in RETRYABLE_STATUS and attempt < self.max_retries:
                wait = self.retry_base_delay * (2 ** attempt)
                logger.warning(
                    f"LLM returned {response.status_code} (attempt {attempt + 1}/{self.max_retries}). "
                    f"Retrying in {wait:.1f}s..."
                )
                self._sleep(wait)
                continue

            response.raise_for_status()  # Raises an HTTPError for bad responses (4xx or 5xx)
            return response.json()

        raise RuntimeError("Max retries exceeded")  # unreachable: last attempt raises or returns

    def _generate_json(self, payload: Dict[str, Any]) -> Any:
        """Run one generation and decode the model's JSON text."""
        result = self._post_with_retry(payload)
        if not isinstance(result, dict):
            raise ValueError(f"LLM returned a {type(result).__name__} body, expected an object")
        return json.loads(result.get("response") or "")

    @staticmethod
    def _parse_answer(data: Any) -> AnswerResponse:
        if not isinstance(data, dict) or not data.get("answer"):
            raise ValueError("LLM response has no answer field")
        return AnswerResponse(**data)

    @staticmethod
    def _parse_flashcards(data: Any, source_doc: str) -> List[Flashcard]:
        items = data.get("flashcards") if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise ValueError("LLM response has no flashcard list")
        return [
            Flashcard(question=item["question"], answer=item["answer"], source_doc=source_doc)
            for item in items
        ]

    def generate_answer(
        self, query: str, results: List[ChunkSearchResult], config: RagConfig
    ) -> AnswerResponse:
        """
        Ask the model for a grounded JSON answer.
        Never raises: failures produce a zero-confidence fallback answer.
        """
        payload = {
            "model": config.model_name,
            "system": SYSTEM_PROMPT,
            "prompt": build_prompt(query, results, config),
            "format": "json",
            "stream": False,
            "options": {"temperature": config.temperature},
        }

        try:
            logger.info(f"Sending prompt with {len(results)} chunks to LLM model '{config.model_name}'...")
            answer = self._parse_answer(self._generate_json(payload))
            logger.info("Successfully received response from LLM.")
            return answer

        except requests.exceptions.Timeout:
            logger.error(f"LLM request timed out after {self.timeout} seconds.")
            return fallback_response("LLM request timed out")
        except requests.exceptions.ConnectionError:
            logger.error(f"Cannot connect to LLM at {self.base_url}. Is the service running?")
            return fallback_response("Cannot connect to LLM service")
        except requests.exceptions.HTTPError as e:
            status: Optional[int] = e.response.status_code if e.response is not None else None
            logger.error(f"LLM service returned an error: {status}")
            return fallback_response(f"LLM error: {status}")
        except (ValueError, TypeError) as e:
            logger.error(f"LLM response was empty or malformed: {e}")
            return fallback_response("Malformed LLM response")

    def generate_flashcards(
        self, text: str, source_doc: str = "Derived Knowledge", model_name: Optional[str] = None
    ) -> List[Flashcard]:
        """Ask the model for 3-5 flashcards. Returns [] when generation fails."""
        payload = {
            "model": model_name or settings.LLM_MODEL_NAME,
            "prompt": FLASHCARD_PROMPT.format(text=text),
            "format": "json",
            "stream": False,
        }

        try:
            flashcards = self._parse_flashcards(self._generate_json(payload), source_doc)
        except requests.exceptions.RequestException as e:
            logger.error(f"Flashcard generation failed after retries: {e}")
            return []
        except (ValueError, TypeError, KeyError) as e:
            logger.error(f"Flashcard response was empty or malformed: {e}")
            return []

        logger.info(f"Generated {len(flashcards)} flashcards for '{source_doc}'")
        return flashcards
