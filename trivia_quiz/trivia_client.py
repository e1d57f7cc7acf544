"""
HTTP client for the Open Trivia DB question provider.
"""
import logging
import random
import time
from typing import Any, Dict, List, Optional

import httpx

from .models import Question

DEFAULT_API_URL = "https://opentdb.com/api.php"
DEFAULT_TIMEOUT = 10.0


class FetchError(Exception):
    """Base exception for failed question fetches."""
    kind = "fetch_error"


class NetworkFailure(FetchError):
    """Raised on transport errors, timeouts and non-2xx responses."""
    kind = "network_failure"


class DecodeFailure(FetchError):
    """Raised when the provider payload does not match the expected shape."""
    kind = "decode_failure"


class TriviaClient:
    """Fetches question batches from the trivia provider."""

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        http: Optional[httpx.AsyncClient] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the client.

        Args:
            api_url: Provider endpoint
            timeout: Request timeout in seconds
            http: Optional shared AsyncClient; created and owned here if omitted
            rng: Optional random source for answer shuffling
        """
        self.logger = logging.getLogger(__name__)
        self.api_url = api_url
        self.timeout = timeout
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout)
        self._rng = rng

    async def __aenter__(self) -> "TriviaClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    @staticmethod
    def build_params(category_id: int, difficulty: str, question_type: str, amount: int) -> Dict[str, Any]:
        return {
            "amount": amount,
            "category": category_id,
            "difficulty": difficulty.lower(),
            "type": question_type.lower(),
        }

    async def fetch(
        self,
        category_id: int,
        difficulty: str,
        question_type: str,
        amount: int
    ) -> List[Question]:
        """
        Fetch and decode one batch of questions.

        Args:
            category_id: Provider category id
            difficulty: easy, medium or hard (any case)
            question_type: multiple or boolean (any case)
            amount: Number of questions to request

        Returns:
            Questions in provider order, with positional ids

        Raises:
            NetworkFailure: On transport errors or HTTP error statuses
            DecodeFailure: If the payload is not a usable question batch
        """
        params = self.build_params(category_id, difficulty, question_type, amount)
        request_start = time.time()
        self.logger.info(
            f"Fetching {amount} questions (category={category_id}, "
            f"difficulty={params['difficulty']}, type={params['type']})",
            extra={
                'event_type': 'fetch_start',
                'params': params,
                'timestamp': request_start
            }
        )

        try:
            response = await self._http.get(self.api_url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as e:
            self.logger.error(
                f"Question fetch failed: {type(e).__name__}: {e}",
                extra={'event_type': 'fetch_network_failure', 'timestamp': time.time()}
            )
            raise NetworkFailure(f"Unable to reach trivia provider: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            self.logger.error(
                f"Provider returned invalid JSON: {e}",
                extra={'event_type': 'fetch_decode_failure', 'timestamp': time.time()}
            )
            raise DecodeFailure("Provider returned invalid JSON") from e

        questions = self.decode_payload(payload)
        self.logger.info(
            f"Fetched {len(questions)} questions in {time.time() - request_start:.3f}s",
            extra={
                'event_type': 'fetch_complete',
                'question_count': len(questions),
                'timestamp': time.time()
            }
        )
        return questions

    def decode_payload(self, payload: Any) -> List[Question]:
        """
        Turn a provider payload into questions.

        Expected structure:
        {
            "response_code": 0,
            "results": [
                {
                    "question": str,
                    "correct_answer": str,
                    "incorrect_answers": [str, ...]
                }
            ]
        }

        Raises:
            DecodeFailure: If the payload does not match
        """
        if not isinstance(payload, dict):
            raise self._decode_failure("Payload must be a JSON object")

        response_code = payload.get("response_code", 0)
        if response_code != 0:
            raise self._decode_failure(f"Provider response code {response_code}")

        results = payload.get("results")
        if not isinstance(results, list):
            raise self._decode_failure("Payload must contain a 'results' array")
        if not results:
            raise self._decode_failure("Provider returned no questions")

        questions = []
        for i, item in enumerate(results):
            if not isinstance(item, dict):
                raise self._decode_failure(f"Result {i} must be an object")

            text = item.get("question")
            correct = item.get("correct_answer")
            incorrect = item.get("incorrect_answers")

            if not isinstance(text, str) or not isinstance(correct, str):
                raise self._decode_failure(f"Result {i} is missing question text or correct answer")
            if (not isinstance(incorrect, list) or not incorrect
                    or not all(isinstance(answer, str) for answer in incorrect)):
                raise self._decode_failure(f"Result {i} must have a non-empty 'incorrect_answers' string array")

            questions.append(Question.create(f"q{i}", text, correct, incorrect, rng=self._rng))

        return questions

    def _decode_failure(self, message: str) -> DecodeFailure:
        self.logger.error(
            f"Invalid provider payload: {message}",
            extra={'event_type': 'fetch_decode_failure', 'timestamp': time.time()}
        )
        return DecodeFailure(message)
