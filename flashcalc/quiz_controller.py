"""
Quiz session controller for the FlashCalc quiz.
Runs a single quiz session as a tick-driven state machine.
"""
import logging
import math
import random
from dataclasses import replace
from typing import Optional

from .config_manager import ConfigManager
from .models import (
    AnswerAttempt,
    EndReason,
    Operator,
    Question,
    QuizSettings,
    Session,
    SessionSnapshot,
    SessionState,
    SessionSummary,
)
from .quiz_engine import QuizEngine, SessionLifecycleLogger, get_rank, validate_answer

# Tolerance for accumulated float ticks reaching a deadline
_TIME_EPSILON = 1e-9


class QuizControllerError(Exception):
    """Base exception for quiz controller errors."""
    pass


class InvalidSettingsError(QuizControllerError):
    """Raised when a session is started with unusable settings."""
    pass


class QuizEventListener:
    """
    Receives events emitted by a QuizController.

    All methods are no-ops; presentation layers override what they render.
    """

    def on_countdown_tick(self, value: int) -> None:
        pass

    def on_question_shown(self, operand_a: int, operand_b: int, operator: Operator) -> None:
        pass

    def on_timer_fraction(self, fraction: float) -> None:
        pass

    def on_feedback(self, is_correct: bool, correct_answer: int) -> None:
        pass

    def on_session_ended(self, correct_count: int, rank: str) -> None:
        pass

    def on_return_to_idle(self) -> None:
        pass


class QuizController:
    """
    Drives one quiz session from start trigger back to idle.

    The controller never waits on its own. A host calls ``tick`` with elapsed
    seconds and ``submit_answer`` with raw input text; each call performs at
    most one timed transition and reports progress to the listener.
    """

    COUNTDOWN_START = 3
    COUNTDOWN_STEP = 1.0
    FEEDBACK_DWELL = 0.5
    RESULT_DWELL = 3.0

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        listener: Optional[QuizEventListener] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the quiz controller.

        Args:
            config_manager: Source of default settings for new sessions
            listener: Receiver for session events
            rng: Random source for question generation
        """
        self.logger = logging.getLogger(__name__)
        self.config_manager = config_manager or ConfigManager()
        self.listener = listener or QuizEventListener()
        self.quiz_engine = QuizEngine(rng)

        self._state = SessionState.IDLE
        self._session: Optional[Session] = None
        self._question: Optional[Question] = None
        self._remaining_time = 0.0
        self._elapsed = 0.0
        self._countdown_value: Optional[int] = None
        self._last_attempt: Optional[AnswerAttempt] = None
        self._summary: Optional[SessionSummary] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def current_question(self) -> Optional[Question]:
        return self._question

    @property
    def last_summary(self) -> Optional[SessionSummary]:
        """Summary of the most recently ended session, kept after returning to idle."""
        return self._summary

    def start_trigger(self, settings: Optional[QuizSettings] = None) -> bool:
        """
        Begin a new session.

        Args:
            settings: Settings for this session, the configured ones if None

        Returns:
            True if a session was started, False if one is already running

        Raises:
            InvalidSettingsError: If the settings cannot drive a session
        """
        if self._state is not SessionState.IDLE:
            SessionLifecycleLogger.log_ignored_event("start_trigger", self._state)
            self.logger.warning("Start trigger ignored: a session is already running")
            return False

        if settings is None:
            settings = self.config_manager.get_quiz_settings()
        self._check_settings(settings)

        self._session = Session(
            settings=settings,
            display_time_limit=settings.initial_display_time
        )
        self._question = None
        self._last_attempt = None
        self._summary = None
        self.logger.info(
            f"Session started: {settings.max_questions} questions, "
            f"{settings.initial_display_time:g}s initial display time"
        )

        self._transition(SessionState.COUNTDOWN, "start trigger")
        self._elapsed = 0.0
        self._countdown_value = self.COUNTDOWN_START
        self.listener.on_countdown_tick(self._countdown_value)
        return True

    def tick(self, delta_seconds: float) -> None:
        """
        Advance timers by the elapsed time.

        Args:
            delta_seconds: Seconds since the previous tick
        """
        if delta_seconds <= 0:
            return

        if self._state is SessionState.COUNTDOWN:
            self._tick_countdown(delta_seconds)
        elif self._state is SessionState.AWAITING_ANSWER:
            self._tick_question_timer(delta_seconds)
        elif self._state is SessionState.FEEDBACK:
            self._elapsed += delta_seconds
            if self._elapsed >= self.FEEDBACK_DWELL - _TIME_EPSILON:
                self._finish_feedback()
        elif self._state is SessionState.ENDED:
            self._elapsed += delta_seconds
            if self._elapsed >= self.RESULT_DWELL - _TIME_EPSILON:
                self._return_to_idle("result dwell elapsed")

    def submit_answer(self, text: Optional[str]) -> bool:
        """
        Submit an answer for the live question.

        Args:
            text: Raw input text

        Returns:
            True if the answer was judged, False if no question is awaiting one
        """
        if self._state is not SessionState.AWAITING_ANSWER:
            SessionLifecycleLogger.log_ignored_event("submit_answer", self._state)
            return False

        question = self._question
        is_correct = validate_answer(text, question.operand_a, question.operand_b, question.operator)
        self._resolve_question(AnswerAttempt(text=text, is_correct=is_correct))
        return True

    def abandon(self) -> bool:
        """
        Discard the running session and return to idle.

        Returns:
            True if a session was discarded, False if already idle
        """
        if self._state is SessionState.IDLE:
            return False

        if self._session is not None and self._summary is None:
            self._summary = SessionSummary(
                correct_count=self._session.correct_count,
                rank=get_rank(self._session.correct_count),
                questions_answered=self._session.question_index,
                ended_by=EndReason.ABANDONED
            )
        self.logger.info(f"Session abandoned while {self._state.value}")
        self._return_to_idle("abandoned by host")
        return True

    def get_snapshot(self) -> SessionSnapshot:
        """
        Get a read-only view of the controller.

        Returns:
            SessionSnapshot describing the current state
        """
        session = self._session
        if session is None:
            return SessionSnapshot(state=self._state, summary=self._summary)

        fraction = None
        if self._state is SessionState.AWAITING_ANSWER:
            fraction = self._remaining_time / session.display_time_limit

        return SessionSnapshot(
            state=self._state,
            question_index=session.question_index,
            correct_count=session.correct_count,
            display_time_limit=session.display_time_limit,
            max_questions=session.settings.max_questions,
            question=self._question,
            remaining_fraction=fraction,
            countdown_value=self._countdown_value if self._state is SessionState.COUNTDOWN else None,
            last_attempt=self._last_attempt,
            summary=self._summary
        )

    def _check_settings(self, settings: QuizSettings) -> None:
        if settings.max_questions < 1:
            raise InvalidSettingsError(f"max_questions must be at least 1, got {settings.max_questions}")
        if not math.isfinite(settings.initial_display_time) or settings.initial_display_time <= 0:
            raise InvalidSettingsError(
                f"initial_display_time must be a positive finite number, got {settings.initial_display_time}"
            )

    def _transition(self, to_state: SessionState, reason: str = None) -> None:
        SessionLifecycleLogger.log_state_transition(self._state, to_state, reason)
        self._state = to_state

    def _tick_countdown(self, delta_seconds: float) -> None:
        self._elapsed += delta_seconds
        if self._elapsed < self.COUNTDOWN_STEP - _TIME_EPSILON:
            return

        self._elapsed = 0.0
        self._countdown_value -= 1
        if self._countdown_value > 0:
            self.listener.on_countdown_tick(self._countdown_value)
        else:
            self._countdown_value = None
            self._show_next_question()

    def _tick_question_timer(self, delta_seconds: float) -> None:
        self._remaining_time -= delta_seconds
        if self._remaining_time <= _TIME_EPSILON:
            self._resolve_question(AnswerAttempt(text=None, is_correct=False, timed_out=True))
            return
        self.listener.on_timer_fraction(self._remaining_time / self._session.display_time_limit)

    def _show_next_question(self) -> None:
        session = self._session
        self._question = self.quiz_engine.generate_question(session.question_index)
        self._remaining_time = session.display_time_limit
        SessionLifecycleLogger.log_question_generated(
            session.question_index, self._question, session.display_time_limit
        )

        self._transition(SessionState.AWAITING_ANSWER, f"question {session.question_index + 1}")
        question = self._question
        self.listener.on_question_shown(question.operand_a, question.operand_b, question.operator)
        self.listener.on_timer_fraction(1.0)

    def _resolve_question(self, attempt: AnswerAttempt) -> None:
        self._last_attempt = attempt
        SessionLifecycleLogger.log_answer_judged(
            self._session.question_index, attempt.is_correct, attempt.timed_out
        )

        self._transition(SessionState.FEEDBACK, "timeout" if attempt.timed_out else "answer submitted")
        self._elapsed = 0.0
        self.listener.on_feedback(attempt.is_correct, self._question.correct_answer)

    def _finish_feedback(self) -> None:
        self._question = None
        attempt = self._last_attempt

        if not attempt.is_correct:
            self._end_session(EndReason.TIMEOUT if attempt.timed_out else EndReason.WRONG_ANSWER)
            return

        self._session = self.quiz_engine.apply_progression(self._session)
        if self._session.question_index >= self._session.settings.max_questions:
            self._end_session(EndReason.COMPLETED)
        else:
            self._show_next_question()

    def _end_session(self, reason: EndReason) -> None:
        self._session = replace(self._session, is_active=False)
        correct_count = self._session.correct_count
        rank = get_rank(correct_count)
        self._summary = SessionSummary(
            correct_count=correct_count,
            rank=rank,
            questions_answered=self._session.question_index + (0 if reason is EndReason.COMPLETED else 1),
            ended_by=reason
        )
        SessionLifecycleLogger.log_session_ended(correct_count, rank, reason.value)

        self._transition(SessionState.ENDED, reason.value)
        self._elapsed = 0.0
        self.listener.on_session_ended(correct_count, rank)

    def _return_to_idle(self, reason: str) -> None:
        self._session = None
        self._question = None
        self._countdown_value = None
        self._remaining_time = 0.0
        self._elapsed = 0.0

        self._transition(SessionState.IDLE, reason)
        self.listener.on_return_to_idle()
