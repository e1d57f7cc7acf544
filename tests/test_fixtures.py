"""
Test fixtures and sample data for trivia quiz tests.
"""
import asyncio
import json
import random
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import Mock

import httpx

from trivia_quiz.models import Question, QuizSession, QuizSettings
from trivia_quiz.quiz_engine import CountdownTimer
from trivia_quiz.trivia_client import TriviaClient


class TestFixtures:
    """Centralized test fixtures for all test modules."""

    @staticmethod
    def create_sample_questions() -> List[Question]:
        """Create sample questions for testing."""
        rng = random.Random(7)
        return [
            Question.create("q0", "2+2=?", "4", ["3", "5", "6"], rng=rng),
            Question.create("q1", "The sky is blue.", "True", ["False"], rng=rng),
            Question.create("q2", "Capital of France?", "Paris", ["London", "Berlin", "Madrid"], rng=rng),
        ]

    @staticmethod
    def create_sample_quiz_settings() -> QuizSettings:
        """Create sample quiz settings for testing."""
        return QuizSettings(
            amount=3,
            category="Science",
            difficulty="medium",
            question_type="multiple",
            time_limit=30
        )

    @staticmethod
    def create_provider_payload(count: int = 3) -> Dict[str, Any]:
        """Create a provider response body with `count` questions."""
        results = [
            {
                "type": "multiple",
                "difficulty": "easy",
                "category": "Science &amp; Nature",
                "question": f"Question &quot;{i}&quot;?",
                "correct_answer": f"Right {i}",
                "incorrect_answers": [f"Wrong {i}a", f"Wrong {i}b", f"Wrong {i}c"]
            }
            for i in range(count)
        ]
        return {"response_code": 0, "results": results}

    @staticmethod
    def create_boolean_payload() -> Dict[str, Any]:
        return {
            "response_code": 0,
            "results": [
                {
                    "type": "boolean",
                    "question": "The Earth orbits the Sun.",
                    "correct_answer": "True",
                    "incorrect_answers": ["False"]
                },
                {
                    "type": "boolean",
                    "question": "Pi equals 3.",
                    "correct_answer": "False",
                    "incorrect_answers": ["True"]
                }
            ]
        }

    @staticmethod
    def create_invalid_payloads() -> List[Any]:
        """Create various malformed provider payloads."""
        return [
            [],
            {"response_code": 0},
            {"response_code": 0, "results": "not a list"},
            {"response_code": 0, "results": []},
            {"response_code": 1, "results": []},
            {"response_code": 0, "results": ["not an object"]},
            {"response_code": 0, "results": [{"question": "Q?", "incorrect_answers": ["a"]}]},
            {"response_code": 0, "results": [{"question": "Q?", "correct_answer": "a", "incorrect_answers": []}]},
            {"response_code": 0, "results": [{"question": "Q?", "correct_answer": "a", "incorrect_answers": [1]}]},
        ]


class MockProvider:
    """Builds httpx mock transports that record the requests they serve."""

    @staticmethod
    def json_transport(payload: Any, status_code: int = 200, requests: Optional[list] = None) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            if requests is not None:
                requests.append(request)
            return httpx.Response(status_code, json=payload)
        return httpx.MockTransport(handler)

    @staticmethod
    def raw_transport(body: bytes, status_code: int = 200) -> httpx.MockTransport:
        return httpx.MockTransport(lambda request: httpx.Response(status_code, content=body))

    @staticmethod
    def failing_transport(exc_factory: Callable[[httpx.Request], Exception]) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            raise exc_factory(request)
        return httpx.MockTransport(handler)

    @staticmethod
    def create_client(transport: httpx.MockTransport, seed: int = 1) -> TriviaClient:
        return TriviaClient(
            api_url="https://trivia.test/api.php",
            http=httpx.AsyncClient(transport=transport),
            rng=random.Random(seed)
        )


class AsyncTestHelpers:
    """Helper methods for async testing."""

    @staticmethod
    async def run_with_timeout(coro, timeout: float = 5.0):
        """Run coroutine with timeout."""
        return await asyncio.wait_for(coro, timeout=timeout)

    @staticmethod
    def create_mock_timer() -> Mock:
        """Create a timer double that records start/stop calls without a loop."""
        return Mock(spec=CountdownTimer)

    @staticmethod
    async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.005) -> bool:
        """Poll until predicate is true or the timeout elapses."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while loop.time() < deadline:
            if predicate():
                return True
            await asyncio.sleep(interval)
        return predicate()


class TestDataValidation:
    """Validation helpers for test data."""

    @staticmethod
    def validate_session_invariants(session: QuizSession) -> bool:
        """Check score/submitted and time invariants of a session."""
        if (session.score is not None) != session.submitted:
            return False
        if session.time_remaining < 0:
            return False
        if session.submitted:
            expected = sum(
                1 for q in session.questions
                if session.selections.get(q.id) == q.correct_answer
            )
            return session.score == expected
        return True

    @staticmethod
    def dump_payload(payload: Any) -> bytes:
        return json.dumps(payload).encode('utf-8')
