"""
Discord rendering of quiz session events.
"""
import asyncio
import logging
import time
from typing import Any, Callable, List, Optional, Tuple

import discord

from .models import Operator, SessionSnapshot, SessionState
from .quiz_controller import QuizEventListener

logger = logging.getLogger(__name__)

COLOR_NEUTRAL = 0x6699ff
COLOR_RUNNING = 0x00ff00
COLOR_HURRY = 0xff6600
COLOR_WRONG = 0xff0000
COLOR_RESULT = 0xffd700

RANK_COMMENTS = {
    "SS": "Lightning calculator!",
    "S": "Outstanding speed.",
    "A": "Great work.",
    "B": "Solid run.",
    "C": "Nice effort.",
    "D": "Keep practising.",
    "E": "Warm-up round. Try again!",
}


def render_timer_bar(fraction: float, width: int = 10) -> str:
    """Render a remaining-time fraction as a text bar."""
    fraction = min(1.0, max(0.0, fraction))
    filled = int(round(fraction * width))
    return "▰" * filled + "▱" * (width - filled)


def format_status(snapshot: SessionSnapshot) -> str:
    """
    Describe a session snapshot for the /status command.

    Args:
        snapshot: Snapshot taken from the controller

    Returns:
        Human-readable multi-line status
    """
    if snapshot.state is SessionState.IDLE:
        if snapshot.summary is not None:
            return (
                f"No quiz running. Last result: {snapshot.summary.correct_count} correct, "
                f"rank **{snapshot.summary.rank}**"
            )
        return "No quiz running"

    lines = [
        f"State: {snapshot.state.value.replace('_', ' ')}",
        f"Question: {min(snapshot.question_index + 1, snapshot.max_questions)}/{snapshot.max_questions}",
        f"Correct: {snapshot.correct_count}",
        f"Time per question: {snapshot.display_time_limit:g}s",
    ]
    if snapshot.remaining_fraction is not None:
        lines.append(f"Timer: {render_timer_bar(snapshot.remaining_fraction)}")
    if snapshot.summary is not None:
        lines.append(f"Rank: {snapshot.summary.rank}")
    return "\n".join(lines)


class DiscordPresenter(QuizEventListener):
    """
    Collects controller events and renders them into a Discord channel.

    Controller callbacks are synchronous, so events are queued and rendered
    later by ``flush``.
    """

    def __init__(
        self,
        channel: discord.abc.Messageable,
        max_questions: int,
        timer_update_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the presenter.

        Args:
            channel: Channel the session is played in
            max_questions: Questions in a full session, for progress display
            timer_update_interval: Minimum seconds between timer bar edits
            clock: Monotonic time source for throttling edits
        """
        self.channel = channel
        self.max_questions = max_questions
        self.timer_update_interval = timer_update_interval
        self._clock = clock

        self._events: List[Tuple[str, Tuple[Any, ...]]] = []
        self._pending_fraction: Optional[float] = None
        self._render_lock = asyncio.Lock()

        self._countdown_message: Optional[discord.Message] = None
        self._question_message: Optional[discord.Message] = None
        self._question_text = ""
        self._question_number = 0
        self._last_bar: Optional[str] = None
        self._last_timer_edit = 0.0
        self.finished = False

    # Listener interface

    def on_countdown_tick(self, value: int) -> None:
        self._events.append(("countdown", (value,)))

    def on_question_shown(self, operand_a: int, operand_b: int, operator: Operator) -> None:
        self._pending_fraction = None
        self._events.append(("question", (operand_a, operand_b, operator)))

    def on_timer_fraction(self, fraction: float) -> None:
        # Only the latest fraction matters
        self._pending_fraction = fraction

    def on_feedback(self, is_correct: bool, correct_answer: int) -> None:
        self._pending_fraction = None
        self._events.append(("feedback", (is_correct, correct_answer)))

    def on_session_ended(self, correct_count: int, rank: str) -> None:
        self._events.append(("session_ended", (correct_count, rank)))

    def on_return_to_idle(self) -> None:
        self._pending_fraction = None
        self._events.append(("return_to_idle", ()))

    # Rendering

    @property
    def has_pending_events(self) -> bool:
        return bool(self._events) or self._pending_fraction is not None

    async def flush(self) -> None:
        """Render all queued events in order."""
        async with self._render_lock:
            events, self._events = self._events, []
            for kind, args in events:
                try:
                    await getattr(self, f"_render_{kind}")(*args)
                except discord.HTTPException as e:
                    logger.error(f"Failed to render {kind} event: {e}")

            fraction, self._pending_fraction = self._pending_fraction, None
            if fraction is not None:
                try:
                    await self._render_timer(fraction)
                except discord.HTTPException as e:
                    logger.error(f"Failed to update timer: {e}")

    def _question_embed(self, color: int, bar: str, footer: str) -> discord.Embed:
        embed = discord.Embed(
            title=f"🧮 Question {self._question_number}/{self.max_questions}",
            description=f"# {self._question_text}",
            color=color
        )
        embed.add_field(name="⏱️ Time", value=bar, inline=False)
        embed.set_footer(text=footer)
        return embed

    async def _render_countdown(self, value: int) -> None:
        content = f"⏳ Get ready... **{value}**"
        if self._countdown_message is None:
            self._question_number = 0
            self._countdown_message = await self.channel.send(content)
        else:
            await self._countdown_message.edit(content=content)

    async def _render_question(self, operand_a: int, operand_b: int, operator: Operator) -> None:
        self._countdown_message = None
        self._question_number += 1
        self._question_text = f"{operand_a} {operator.symbol} {operand_b} = ?"
        self._last_bar = render_timer_bar(1.0)
        self._last_timer_edit = self._clock()
        self._question_message = await self.channel.send(
            embed=self._question_embed(COLOR_RUNNING, self._last_bar, "Type your answer in the chat")
        )

    async def _render_timer(self, fraction: float) -> None:
        if self._question_message is None:
            return

        bar = render_timer_bar(fraction)
        now = self._clock()
        if bar == self._last_bar or now - self._last_timer_edit < self.timer_update_interval:
            return

        self._last_bar = bar
        self._last_timer_edit = now
        color = COLOR_RUNNING if fraction > 0.3 else COLOR_HURRY
        await self._question_message.edit(
            embed=self._question_embed(color, bar, "Type your answer in the chat")
        )

    async def _render_feedback(self, is_correct: bool, correct_answer: int) -> None:
        message, self._question_message = self._question_message, None
        if message is None:
            return

        if is_correct:
            embed = self._question_embed(COLOR_RUNNING, self._last_bar or "", "✅ Correct!")
        else:
            self._question_text = self._question_text.replace("?", str(correct_answer))
            embed = self._question_embed(COLOR_WRONG, self._last_bar or "", "❌ Wrong! The answer is shown above")
        await message.edit(embed=embed)

    async def _render_session_ended(self, correct_count: int, rank: str) -> None:
        embed = discord.Embed(
            title=f"🏁 Rank: {rank}",
            description=RANK_COMMENTS.get(rank, ""),
            color=COLOR_RESULT
        )
        embed.add_field(name="✅ Correct answers", value=str(correct_count), inline=True)
        embed.add_field(name="📋 Questions", value=f"{self._question_number}/{self.max_questions}", inline=True)
        await self.channel.send(embed=embed)

    async def _render_return_to_idle(self) -> None:
        self.finished = True
        self._question_message = None
        self._countdown_message = None
        logger.debug("Presenter returned to idle")
