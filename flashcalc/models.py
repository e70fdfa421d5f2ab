"""
Core data models for the FlashCalc arithmetic quiz.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Operator(Enum):
    """Arithmetic operators a question can use."""
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"

    @property
    def symbol(self) -> str:
        return self.value


class SessionState(Enum):
    """Enumeration of quiz session engine states."""
    IDLE = "idle"
    COUNTDOWN = "countdown"
    AWAITING_ANSWER = "awaiting_answer"
    FEEDBACK = "feedback"
    ENDED = "ended"


class EndReason(Enum):
    """Why a session stopped."""
    WRONG_ANSWER = "wrong_answer"
    TIMEOUT = "timeout"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class Question:
    """Represents a single arithmetic problem."""
    operand_a: int
    operand_b: int
    operator: Operator
    correct_answer: int

    @property
    def text(self) -> str:
        return f"{self.operand_a} {self.operator.symbol} {self.operand_b} = ?"

    @property
    def reveal_text(self) -> str:
        return f"{self.operand_a} {self.operator.symbol} {self.operand_b} = {self.correct_answer}"


@dataclass(frozen=True)
class AnswerAttempt:
    """Raw answer text and its judgement."""
    text: Optional[str]
    is_correct: bool
    timed_out: bool = False


@dataclass(frozen=True)
class QuizSettings:
    """Configuration settings for a quiz session."""
    initial_display_time: float = 5.0
    max_questions: int = 15


@dataclass(frozen=True)
class Session:
    """
    Represents one live quiz run.

    Instances are never mutated; the engine replaces the whole value on each
    transition.
    """
    settings: QuizSettings
    question_index: int = 0
    correct_count: int = 0
    display_time_limit: float = 5.0
    is_active: bool = True
    started_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class SessionSummary:
    """Final result of a session."""
    correct_count: int
    rank: str
    questions_answered: int
    ended_by: EndReason


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the engine for a presentation layer."""
    state: SessionState
    question_index: int = 0
    correct_count: int = 0
    display_time_limit: float = 0.0
    max_questions: int = 0
    question: Optional[Question] = None
    remaining_fraction: Optional[float] = None
    countdown_value: Optional[int] = None
    last_attempt: Optional[AnswerAttempt] = None
    summary: Optional[SessionSummary] = None
