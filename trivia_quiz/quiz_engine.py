"""
Quiz engine core logic for the trivia quiz session.
Handles session state, selections, scoring and the countdown timer.
"""
import asyncio
import logging
import time
from typing import Any, Callable, List, Optional, Sequence

from .models import Question, QuizSession, SessionSnapshot

# Set up logger for timer operations
logger = logging.getLogger(__name__)

Listener = Callable[[SessionSnapshot], Any]


class TimerLifecycleLogger:
    """Structured logging for timer lifecycle events."""

    @staticmethod
    def log_timer_start(timer_name: str, generation: int, period: float) -> None:
        """Log timer countdown start."""
        logger.info(
            f"Timer lifecycle: START - Timer {timer_name}, Generation {generation}, Period {period}s",
            extra={
                'event_type': 'timer_start',
                'timer_name': timer_name,
                'generation': generation,
                'period': period,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_update(timer_name: str, remaining_time: int, total_duration: int) -> None:
        """Log timer update events (throttled to avoid spam)."""
        # Log only at specific intervals to avoid log spam
        if remaining_time % 10 == 0 or remaining_time <= 5:
            progress_percent = (
                ((total_duration - remaining_time) / total_duration) * 100 if total_duration else 100.0
            )
            logger.debug(
                f"Timer lifecycle: UPDATE - Timer {timer_name}, Remaining {remaining_time}s "
                f"({progress_percent:.1f}% complete)",
                extra={
                    'event_type': 'timer_update',
                    'timer_name': timer_name,
                    'remaining_time': remaining_time,
                    'total_duration': total_duration,
                    'progress_percent': progress_percent,
                    'timestamp': time.time()
                }
            )

    @staticmethod
    def log_timer_completion(timer_name: str, completion_type: str, tick_count: int) -> None:
        """Log timer completion (stop or cancellation)."""
        logger.info(
            f"Timer lifecycle: COMPLETED - Timer {timer_name}, Type {completion_type}, Ticks {tick_count}",
            extra={
                'event_type': 'timer_completed',
                'timer_name': timer_name,
                'completion_type': completion_type,
                'tick_count': tick_count,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_state_transition(timer_name: str, from_state: str, to_state: str, reason: str = None) -> None:
        """Log timer state transitions."""
        logger.info(
            f"Timer lifecycle: STATE_TRANSITION - Timer {timer_name}, {from_state} -> {to_state}" +
            (f" ({reason})" if reason else ""),
            extra={
                'event_type': 'timer_state_transition',
                'timer_name': timer_name,
                'from_state': from_state,
                'to_state': to_state,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_timer_error(timer_name: str, error_type: str, error_message: str, operation: str) -> None:
        """Log timer-related errors with context."""
        logger.error(
            f"Timer lifecycle: ERROR - Timer {timer_name}, Operation {operation}, Type {error_type}: {error_message}",
            extra={
                'event_type': 'timer_error',
                'timer_name': timer_name,
                'error_type': error_type,
                'error_message': error_message,
                'operation': operation,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_stale_tick(timer_name: str, tick_generation: int, current_generation: Optional[int]) -> None:
        """Log a tick that belongs to a replaced session."""
        logger.warning(
            f"Timer lifecycle: STALE_TICK - Timer {timer_name}, tick generation {tick_generation}, "
            f"current generation {current_generation}",
            extra={
                'event_type': 'timer_stale_tick',
                'timer_name': timer_name,
                'tick_generation': tick_generation,
                'current_generation': current_generation,
                'timestamp': time.time()
            }
        )


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class CountdownTimer:
    """Repeating one-second clock driving session ticks."""

    def __init__(self, period: float = 1.0, name: str = "countdown"):
        """
        Initialize the timer.

        Args:
            period: Seconds between ticks
            name: Label used in lifecycle logs
        """
        self._task: Optional[asyncio.Task] = None
        self._period = period
        self._name = name
        self._running = False
        self._schedule_id = 0
        self._tick_count = 0

    def start(self, callback: Callable[[], Any], generation: int = 0) -> None:
        """
        Start ticking, replacing any previous schedule.

        Args:
            callback: Called once per period; may return an awaitable
            generation: Session generation, for logging

        Raises:
            RuntimeError: If called outside a running event loop
        """
        self.stop()
        loop = asyncio.get_running_loop()

        self._schedule_id += 1
        self._tick_count = 0
        self._running = True
        TimerLifecycleLogger.log_timer_start(self._name, generation, self._period)
        self._task = loop.create_task(self._run(self._schedule_id, callback))

    async def _run(self, schedule_id: int, callback: Callable[[], Any]) -> None:
        try:
            while self._is_current(schedule_id):
                await asyncio.sleep(self._period)
                if not self._is_current(schedule_id):
                    break

                self._tick_count += 1
                try:
                    result = callback()
                    if asyncio.iscoroutine(result):
                        await result
                except Exception as e:
                    TimerLifecycleLogger.log_timer_error(
                        self._name,
                        "tick_callback_error",
                        str(e),
                        "_run"
                    )

            TimerLifecycleLogger.log_timer_completion(self._name, "stopped", self._tick_count)
        except asyncio.CancelledError:
            TimerLifecycleLogger.log_timer_completion(self._name, "cancelled", self._tick_count)
            raise

    def _is_current(self, schedule_id: int) -> bool:
        return self._running and schedule_id == self._schedule_id

    def stop(self) -> bool:
        """
        Stop ticking. Safe to call repeatedly and from inside the tick callback.

        Returns:
            True if a running schedule was stopped, False otherwise
        """
        if not self._running:
            return False

        self._running = False
        task = self._task
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()
            TimerLifecycleLogger.log_timer_state_transition(self._name, "running", "stopped", "task cancelled")
        else:
            TimerLifecycleLogger.log_timer_state_transition(self._name, "running", "stopped", "stopped from tick")
        return True

    @property
    def is_running(self) -> bool:
        """Check if the timer is ticking."""
        return self._running

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task


class QuizEngine:
    """
    Owns the current quiz session and applies every mutation to it.

    All calls are expected on the event loop thread. Timer ticks carry the
    generation of the session they were started for and are ignored once
    that session has been replaced.
    """

    def __init__(self, timer: Optional[CountdownTimer] = None, tick_period: float = 1.0):
        """
        Initialize the quiz engine.

        Args:
            timer: Countdown timer to drive ticks; one is created if omitted
            tick_period: Seconds between ticks for the created timer
        """
        self.logger = logging.getLogger(__name__)
        self._timer = timer or CountdownTimer(period=tick_period, name="session")
        self._session: Optional[QuizSession] = None
        self._generation = 0
        self._listeners: List[Listener] = []

    @property
    def session(self) -> Optional[QuizSession]:
        return self._session

    @property
    def timer(self) -> CountdownTimer:
        return self._timer

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: Listener) -> None:
        """Register a callback receiving a snapshot after each state change."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> bool:
        if listener in self._listeners:
            self._listeners.remove(listener)
            return True
        return False

    def snapshot(self) -> Optional[SessionSnapshot]:
        if self._session is None:
            return None
        return SessionSnapshot.of(self._session)

    def load(self, questions: Sequence[Question], time_limit: int) -> QuizSession:
        """
        Replace all prior state with a fresh session and restart the timer.

        Args:
            questions: Questions for the new session
            time_limit: Countdown length in seconds; negative values clamp to 0

        Returns:
            The new session

        Raises:
            RuntimeError: If the countdown cannot start; the current session is kept
        """
        generation = self._generation + 1
        time_limit = max(0, int(time_limit))
        # start() replaces the old schedule and raises before any state changes
        self._timer.start(lambda: self._on_timer_tick(generation), generation=generation)

        self._generation = generation
        self._session = QuizSession(
            questions=tuple(questions),
            time_limit=time_limit,
            time_remaining=time_limit,
            generation=generation,
        )

        self.logger.info(
            f"Loaded session {generation}: {len(self._session.questions)} questions, {time_limit}s",
            extra={
                'event_type': 'session_loaded',
                'generation': generation,
                'question_count': len(self._session.questions),
                'time_limit': time_limit,
                'timestamp': time.time()
            }
        )
        self._notify()
        return self._session

    def select_answer(self, question_id: str, answer: str) -> bool:
        """
        Record or overwrite the answer for a question.

        Returns:
            True if the selection was recorded, False if it was rejected
        """
        session = self._session
        if session is None or session.submitted:
            self.logger.warning(
                f"Ignoring selection for {question_id}: session "
                f"{'not loaded' if session is None else 'already submitted'}",
                extra={'event_type': 'selection_rejected', 'question_id': question_id}
            )
            return False

        if session.get_question(question_id) is None:
            self.logger.warning(
                f"Ignoring selection for unknown question {question_id}",
                extra={'event_type': 'selection_rejected', 'question_id': question_id}
            )
            return False

        session.selections[question_id] = answer
        self.logger.debug(f"Selected '{answer}' for {question_id}")
        self._notify()
        return True

    def all_answered(self) -> bool:
        return self._session is not None and self._session.all_answered()

    def submit(self) -> bool:
        """
        Stop the countdown and score the session.

        Returns:
            True if this call submitted the session, False if it was a no-op
        """
        return self._submit("manual")

    def _submit(self, submitted_by: str) -> bool:
        session = self._session
        if session is None or session.submitted:
            self.logger.debug("Submit ignored: no session or already submitted")
            return False

        self._timer.stop()
        session.score = self.calculate_score(session)
        session.submitted = True
        session.submitted_by = submitted_by

        self.logger.info(
            f"Session {session.generation} submitted ({submitted_by}): "
            f"score {session.score}/{len(session.questions)}",
            extra={
                'event_type': 'session_submitted',
                'generation': session.generation,
                'submitted_by': submitted_by,
                'score': session.score,
                'answered': len(session.selections),
                'timestamp': time.time()
            }
        )
        self._notify()
        return True

    @staticmethod
    def calculate_score(session: QuizSession) -> int:
        """Count questions whose selection matches the correct answer."""
        return sum(
            1 for q in session.questions
            if session.selections.get(q.id) == q.correct_answer
        )

    def tick(self) -> bool:
        """
        Advance the countdown by one second, auto-submitting at zero.

        Returns:
            True if the session changed, False if it was a no-op
        """
        session = self._session
        if session is None or session.submitted:
            return False

        if session.time_remaining > 0:
            session.time_remaining -= 1
            TimerLifecycleLogger.log_timer_update("session", session.time_remaining, session.time_limit)

        if session.time_remaining == 0:
            self.logger.info(f"Time expired for session {session.generation}, auto-submitting")
            return self._submit("timeout")

        self._notify()
        return True

    def _on_timer_tick(self, generation: int) -> None:
        current = self._session.generation if self._session is not None else None
        if generation != current:
            TimerLifecycleLogger.log_stale_tick("session", generation, current)
            return
        self.tick()

    def shutdown(self) -> None:
        """Stop the countdown without touching session state."""
        self._timer.stop()

    def _notify(self) -> None:
        if not self._listeners or self._session is None:
            return
        snapshot = SessionSnapshot.of(self._session)
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                self.logger.error(
                    f"Session listener failed: {e}",
                    extra={'event_type': 'listener_error', 'timestamp': time.time()}
                )
