"""
Quiz engine core logic for the FlashCalc quiz.
Handles question generation, answer validation, speed progression and ranking.
"""
import logging
import random
import re
import time
from dataclasses import replace
from typing import Optional

from .models import Operator, Question, Session, SessionState

# Set up logger for session lifecycle events
logger = logging.getLogger(__name__)

SINGLE_DIGIT_MAX = 9
TWO_DIGIT_MAX = 99
TWO_DIGIT_PHASE_START = 10  # question index where two-digit operands begin

MIN_DISPLAY_TIME = 1.0
SPEED_UP_STEP = 0.5
SPEED_UP_EVERY = 3
PHASE_SPEED_UP_INDEX = 10
TIME_RESET_INDEX = 11

# Draw in [0, 10): 0-5 add, 6-7 subtract, 8 multiply, 9 divide
OPERATOR_DRAW_RANGE = 10
OPERATOR_THRESHOLDS = (
    (6, Operator.ADD),
    (8, Operator.SUBTRACT),
    (9, Operator.MULTIPLY),
    (10, Operator.DIVIDE),
)

RANK_THRESHOLDS = (
    (25, "SS"),
    (20, "S"),
    (16, "A"),
    (13, "B"),
    (9, "C"),
    (6, "D"),
)
LOWEST_RANK = "E"

_INTEGER_PATTERN = re.compile(r"^\s*[+-]?[0-9]+\s*$")


class SessionLifecycleLogger:
    """Structured logging for quiz session lifecycle events."""

    @staticmethod
    def log_state_transition(from_state: SessionState, to_state: SessionState, reason: str = None) -> None:
        """Log engine state transitions."""
        logger.info(
            f"Session lifecycle: STATE_TRANSITION - {from_state.value} -> {to_state.value}" +
            (f" ({reason})" if reason else ""),
            extra={
                'event_type': 'session_state_transition',
                'from_state': from_state.value,
                'to_state': to_state.value,
                'reason': reason,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_question_generated(question_index: int, question: Question, display_time_limit: float) -> None:
        """Log a freshly generated question."""
        logger.debug(
            f"Session lifecycle: QUESTION - #{question_index + 1} {question.text} "
            f"(limit {display_time_limit:.1f}s)",
            extra={
                'event_type': 'question_generated',
                'question_index': question_index,
                'operand_a': question.operand_a,
                'operand_b': question.operand_b,
                'operator': question.operator.value,
                'display_time_limit': display_time_limit,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_answer_judged(question_index: int, is_correct: bool, timed_out: bool) -> None:
        """Log the judgement of an answer or a timeout."""
        outcome = "TIMEOUT" if timed_out else ("CORRECT" if is_correct else "INCORRECT")
        logger.info(
            f"Session lifecycle: ANSWER - Question #{question_index + 1} {outcome}",
            extra={
                'event_type': 'answer_judged',
                'question_index': question_index,
                'is_correct': is_correct,
                'timed_out': timed_out,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_progression(question_index: int, previous_limit: float, new_limit: float) -> None:
        """Log display time changes."""
        if previous_limit == new_limit:
            return
        logger.debug(
            f"Session lifecycle: PROGRESSION - Index {question_index}, "
            f"display time {previous_limit:.1f}s -> {new_limit:.1f}s",
            extra={
                'event_type': 'progression_applied',
                'question_index': question_index,
                'previous_limit': previous_limit,
                'new_limit': new_limit,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_session_ended(correct_count: int, rank: str, ended_by: str) -> None:
        """Log session completion."""
        logger.info(
            f"Session lifecycle: ENDED - Score {correct_count}, Rank {rank}, Reason {ended_by}",
            extra={
                'event_type': 'session_ended',
                'correct_count': correct_count,
                'rank': rank,
                'ended_by': ended_by,
                'timestamp': time.time()
            }
        )

    @staticmethod
    def log_ignored_event(event: str, state: SessionState) -> None:
        """Log input delivered in a state that does not accept it."""
        logger.debug(
            f"Session lifecycle: IGNORED - {event} while {state.value}",
            extra={
                'event_type': 'event_ignored',
                'event': event,
                'state': state.value,
                'timestamp': time.time()
            }
        )


def truncating_divide(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient


def compute_answer(operand_a: int, operand_b: int, operator: Operator) -> int:
    """
    Apply an operator to two operands.

    Raises:
        ZeroDivisionError: If dividing by zero
    """
    if operator is Operator.ADD:
        return operand_a + operand_b
    if operator is Operator.SUBTRACT:
        return operand_a - operand_b
    if operator is Operator.MULTIPLY:
        return operand_a * operand_b
    return truncating_divide(operand_a, operand_b)


def parse_answer(text: Optional[str]) -> Optional[int]:
    """
    Parse raw answer text as an integer.

    Returns:
        The parsed integer, or None if the text is not a plain integer
    """
    if not isinstance(text, str) or not _INTEGER_PATTERN.match(text):
        return None
    return int(text.strip())


def validate_answer(text: Optional[str], operand_a: int, operand_b: int, operator: Operator) -> bool:
    """
    Check a player's answer against the expected result.

    Args:
        text: Raw answer text as typed
        operand_a: Left operand
        operand_b: Right operand
        operator: Operator applied to the operands

    Returns:
        True only if the text parses as an integer equal to the result
    """
    answer = parse_answer(text)
    if answer is None:
        return False
    return answer == compute_answer(operand_a, operand_b, operator)


def get_rank(score: int) -> str:
    """Map a final correct-answer count to a rank label."""
    for threshold, rank in RANK_THRESHOLDS:
        if score >= threshold:
            return rank
    return LOWEST_RANK


def max_operand_value(question_index: int) -> int:
    """Largest operand allowed for the question at this index."""
    return SINGLE_DIGIT_MAX if question_index < TWO_DIGIT_PHASE_START else TWO_DIGIT_MAX


def _decrease_display_time(limit: float) -> float:
    return max(MIN_DISPLAY_TIME, limit - SPEED_UP_STEP)


class QuizEngine:
    """Question generation and difficulty progression for a quiz session."""

    def __init__(self, rng: Optional[random.Random] = None):
        """
        Initialize the quiz engine.

        Args:
            rng: Random source, a fresh unseeded one if None
        """
        self._rng = rng if rng is not None else random.Random()

    def draw_operator(self) -> Operator:
        """Pick an operator using the fixed 60/20/10/10 distribution."""
        draw = self._rng.randrange(OPERATOR_DRAW_RANGE)
        for upper, operator in OPERATOR_THRESHOLDS:
            if draw < upper:
                return operator
        return Operator.DIVIDE

    def generate_question(self, question_index: int) -> Question:
        """
        Generate a question for the given 0-based index.

        Args:
            question_index: Position of the question in the session

        Returns:
            A new immutable Question
        """
        max_value = max_operand_value(question_index)
        operand_a = self._rng.randint(0, max_value)
        operand_b = self._rng.randint(1, max_value)
        operator = self.draw_operator()

        return Question(
            operand_a=operand_a,
            operand_b=operand_b,
            operator=operator,
            correct_answer=compute_answer(operand_a, operand_b, operator)
        )

    def apply_progression(self, session: Session) -> Session:
        """
        Advance a session past a correctly answered question.

        Increments the correct count and question index and adjusts the
        display time limit.

        Args:
            session: Session whose current question was answered correctly

        Returns:
            The replacement Session
        """
        limit = session.display_time_limit

        if (session.question_index + 1) % SPEED_UP_EVERY == 0:
            limit = _decrease_display_time(limit)

        next_index = session.question_index + 1
        if next_index == PHASE_SPEED_UP_INDEX:
            limit = _decrease_display_time(limit)
        if next_index == TIME_RESET_INDEX:
            limit = session.settings.initial_display_time

        SessionLifecycleLogger.log_progression(next_index, session.display_time_limit, limit)

        return replace(
            session,
            question_index=next_index,
            correct_count=session.correct_count + 1,
            display_time_limit=limit
        )
