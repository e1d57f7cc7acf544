"""
Quiz session controller for the trivia quiz.
Exposes the commands and queries a presentation layer drives the session with.
"""
import asyncio
import logging
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .config_manager import ConfigManager, InvalidConfigurationError, category_id_for
from .models import Question, QuizSettings, SessionSnapshot
from .quiz_engine import Listener, QuizEngine
from .trivia_client import FetchError, TriviaClient


class SessionState(Enum):
    """Enumeration of possible quiz session states."""
    INACTIVE = "inactive"
    LOADING = "loading"
    ACTIVE = "active"
    SUBMITTED = "submitted"
    ERROR = "error"


LOAD_FAILED_MESSAGE = "Unable to load questions"


class QuizController:
    """
    Orchestrates fetching, loading and submitting trivia sessions.

    Every fetch is tagged with a request generation. A completion is only
    applied when its generation is still the latest, so a slow response for
    an old configuration can never replace a newer session.
    """

    def __init__(
        self,
        client: TriviaClient,
        config_manager: Optional[ConfigManager] = None,
        engine: Optional[QuizEngine] = None
    ):
        """
        Initialize the quiz controller.

        Args:
            client: Trivia provider client
            config_manager: Configuration and validation; defaults are used if None
            engine: Session engine; a new one is created if None
        """
        self.logger = logging.getLogger(__name__)
        self.client = client
        self.config_manager = config_manager or ConfigManager()
        self.engine = engine or QuizEngine()

        self._request_generation = 0
        self._fetch_task: Optional[asyncio.Task] = None
        self._last_settings: Optional[QuizSettings] = None
        self._last_error: Optional[Dict[str, Any]] = None

        self.logger.info("QuizController initialized")

    @classmethod
    def from_config(cls, config_manager: ConfigManager) -> "QuizController":
        """
        Build a controller whose client and default quiz come from the config manager.

        Raises:
            InvalidConfigurationError: If the stored settings fail validation
        """
        validation = config_manager.validate_settings()
        if not validation['valid']:
            raise InvalidConfigurationError("; ".join(validation['issues']))

        client = TriviaClient(
            api_url=config_manager.get_api_url(),
            timeout=config_manager.get_request_timeout()
        )
        controller = cls(client, config_manager)
        controller.logger.info(config_manager.get_settings_summary())
        return controller

    @property
    def last_error(self) -> Optional[Dict[str, Any]]:
        return self._last_error

    @property
    def is_loading(self) -> bool:
        return self._fetch_task is not None and not self._fetch_task.done()

    def subscribe(self, listener: Listener) -> None:
        self.engine.subscribe(listener)

    def unsubscribe(self, listener: Listener) -> bool:
        return self.engine.unsubscribe(listener)

    def snapshot(self) -> Optional[SessionSnapshot]:
        return self.engine.snapshot()

    def all_answered(self) -> bool:
        return self.engine.all_answered()

    def get_session_state(self) -> SessionState:
        """
        Get the current state of the session.

        Returns:
            Current session state
        """
        if self.is_loading:
            return SessionState.LOADING

        session = self.engine.session
        if session is None:
            return SessionState.ERROR if self._last_error else SessionState.INACTIVE
        if session.submitted:
            return SessionState.SUBMITTED
        return SessionState.ACTIVE

    async def configure_and_start(
        self,
        category: Optional[Union[str, int]] = None,
        difficulty: Optional[str] = None,
        question_type: Optional[str] = None,
        amount: Optional[int] = None,
        time_limit: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Fetch a new batch of questions and start a fresh session.

        Arguments left as None are taken from the config manager's stored
        quiz settings, so a bare call starts the configured quiz.

        Args:
            category: Category name or provider id
            difficulty: easy, medium or hard
            question_type: multiple or boolean
            amount: Number of questions
            time_limit: Countdown length in seconds

        Returns:
            Dictionary with success status, error details, and user-friendly message
        """
        try:
            settings = self.config_manager.build_settings(
                category, difficulty, question_type, amount, time_limit
            )
        except InvalidConfigurationError as e:
            self.logger.error(f"Rejected quiz configuration: {e}")
            return {
                'success': False,
                'error_kind': 'invalid_config',
                'error': str(e),
                'user_message': f"❌ Invalid quiz settings: {e}"
            }

        return await self._start(settings)

    async def restart(self) -> Dict[str, Any]:
        """
        Start a brand-new session with the last used configuration.

        Returns:
            Dictionary with success status, error details, and user-friendly message
        """
        if self._last_settings is None:
            return {
                'success': False,
                'error_kind': 'invalid_state',
                'error': "No previous configuration to restart",
                'user_message': "❌ Configure a quiz first"
            }
        return await self._start(self._last_settings)

    async def _start(self, settings: QuizSettings) -> Dict[str, Any]:
        self._request_generation += 1
        generation = self._request_generation
        self._last_settings = settings

        self._cancel_fetch()
        # The previous session stays visible but must not expire while loading
        self.engine.shutdown()
        self._fetch_task = asyncio.create_task(
            self.client.fetch(
                category_id_for(settings.category),
                settings.difficulty,
                settings.question_type,
                settings.amount
            )
        )
        fetch_task = self._fetch_task

        try:
            questions: List[Question] = await fetch_task
        except asyncio.CancelledError:
            if generation != self._request_generation:
                return self._superseded(generation)
            raise
        except FetchError as e:
            if generation != self._request_generation:
                return self._superseded(generation)
            self._last_error = {
                'success': False,
                'error_kind': e.kind,
                'error': str(e),
                'user_message': LOAD_FAILED_MESSAGE
            }
            self.logger.error(
                f"Failed to load questions: {e}",
                extra={
                    'event_type': 'session_load_failed',
                    'error_kind': e.kind,
                    'request_generation': generation,
                    'timestamp': time.time()
                }
            )
            return dict(self._last_error)
        finally:
            if self._fetch_task is fetch_task:
                self._fetch_task = None

        if generation != self._request_generation:
            return self._superseded(generation)

        self._last_error = None
        self.engine.load(questions, settings.time_limit)
        return {
            'success': True,
            'message': f"Started session with {len(questions)} questions",
            'question_count': len(questions),
            'user_message': f"✅ Loaded {len(questions)} questions, {settings.time_limit} seconds on the clock"
        }

    def _superseded(self, generation: int) -> Dict[str, Any]:
        self.logger.info(
            f"Discarding fetch result for superseded request {generation}",
            extra={
                'event_type': 'fetch_superseded',
                'request_generation': generation,
                'current_generation': self._request_generation,
                'timestamp': time.time()
            }
        )
        return {
            'success': False,
            'error_kind': 'superseded',
            'error': "A newer quiz request replaced this one",
            'user_message': "Quiz request replaced by a newer one"
        }

    def _cancel_fetch(self) -> None:
        if self._fetch_task is not None and not self._fetch_task.done():
            self.logger.debug("Cancelling in-flight question fetch")
            self._fetch_task.cancel()
        self._fetch_task = None

    def select_answer(self, question_id: str, answer: str) -> Dict[str, Any]:
        """
        Record the user's answer for a question.

        Returns:
            Dictionary with success status and user-friendly message
        """
        if self.engine.select_answer(question_id, answer):
            return {
                'success': True,
                'message': f"Selected '{answer}' for {question_id}",
                'user_message': "✅ Answer recorded"
            }

        session = self.engine.session
        if session is None or session.submitted:
            error_kind, error = 'invalid_state', "No active session to answer"
        else:
            error_kind, error = 'unknown_question', f"Unknown question: {question_id}"
        return {
            'success': False,
            'error_kind': error_kind,
            'error': error,
            'user_message': "❌ This answer can no longer be changed" if error_kind == 'invalid_state'
            else "❌ Unknown question"
        }

    def submit(self) -> Dict[str, Any]:
        """
        Submit the session on the user's request. Every question must be answered.

        Returns:
            Dictionary with success status, score, and user-friendly message
        """
        session = self.engine.session
        if session is None or session.submitted:
            return {
                'success': False,
                'error_kind': 'invalid_state',
                'error': "No active session to submit",
                'user_message': "❌ There is nothing to submit"
            }

        if not self.engine.all_answered():
            remaining = len(session.questions) - len(session.selections)
            return {
                'success': False,
                'error_kind': 'incomplete',
                'error': f"{remaining} questions unanswered",
                'user_message': f"❌ Answer all questions first ({remaining} left)"
            }

        self.engine.submit()
        return {
            'success': True,
            'message': f"Submitted with score {session.score}",
            'score': session.score,
            'total': len(session.questions),
            'user_message': f"🏁 You scored {session.score}/{len(session.questions)}"
        }

    async def shutdown(self) -> None:
        """Cancel pending work, stop the countdown and close the client."""
        self._request_generation += 1
        pending = self._fetch_task
        self._cancel_fetch()
        if pending is not None:
            try:
                await pending
            except (asyncio.CancelledError, FetchError):
                pass
        self.engine.shutdown()
        await self.client.aclose()
        self.logger.info("QuizController shut down")
