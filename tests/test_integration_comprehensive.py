"""
Comprehensive integration tests for FlashCalc.
Tests complete quiz session flows across config, controller and presenter.
"""
import logging
import random
import unittest

from flashcalc.config_manager import ConfigManager
from flashcalc.models import EndReason, SessionState
from flashcalc.presenter import DiscordPresenter
from flashcalc.quiz_controller import QuizController
from tests.test_fixtures import FakeClock, MockDiscordObjects, SessionDriver


class TestCompleteQuizFlow(unittest.IsolatedAsyncioTestCase):
    """Test complete quiz flow from start trigger back to idle."""

    async def asyncSetUp(self):
        logging.disable(logging.CRITICAL)
        self.config_manager = ConfigManager()
        self.config_manager.apply_config({'initial_display_time': 5.0, 'max_questions': 15})

        self.message = MockDiscordObjects.create_mock_message()
        self.channel = MockDiscordObjects.create_mock_channel(message=self.message)
        self.presenter = DiscordPresenter(
            self.channel,
            self.config_manager.get_max_questions(),
            timer_update_interval=0,
            clock=FakeClock()
        )
        self.controller = QuizController(self.config_manager, self.presenter, random.Random(2024))

    async def asyncTearDown(self):
        logging.disable(logging.NOTSET)

    def _sent_embed_titles(self):
        return [
            call.kwargs['embed'].title
            for call in self.channel.send.call_args_list
            if 'embed' in call.kwargs
        ]

    async def test_perfect_session(self):
        """Fifteen correct answers end with rank B and return to idle."""
        SessionDriver.start_and_reach_first_question(self.controller)
        await self.presenter.flush()

        for _ in range(15):
            SessionDriver.answer_correctly(self.controller)
            await self.presenter.flush()
            SessionDriver.finish_feedback(self.controller)
            await self.presenter.flush()

        self.assertIs(self.controller.state, SessionState.ENDED)
        titles = self._sent_embed_titles()
        self.assertEqual(titles[0], "🧮 Question 1/15")
        self.assertEqual(titles[14], "🧮 Question 15/15")
        self.assertEqual(titles[-1], "🏁 Rank: B")

        self.controller.tick(QuizController.RESULT_DWELL)
        await self.presenter.flush()
        self.assertIs(self.controller.state, SessionState.IDLE)
        self.assertTrue(self.presenter.finished)
        self.assertEqual(self.controller.last_summary.correct_count, 15)

    async def test_wrong_answer_midway(self):
        """A wrong answer on question 4 scores 3 and shows the correct result."""
        SessionDriver.start_and_reach_first_question(self.controller)
        for _ in range(3):
            SessionDriver.answer_correctly(self.controller)
            SessionDriver.finish_feedback(self.controller)

        question = self.controller.current_question
        self.controller.submit_answer("not a number")
        await self.presenter.flush()

        reveal = self.message.edit.call_args.kwargs['embed'].description
        self.assertIn(f"= {question.correct_answer}", reveal)

        SessionDriver.finish_feedback(self.controller)
        await self.presenter.flush()
        self.assertEqual(self._sent_embed_titles()[-1], "🏁 Rank: E")
        self.assertEqual(self.controller.last_summary.correct_count, 3)
        self.assertEqual(self.controller.last_summary.questions_answered, 4)

    async def test_timeout_with_ticks(self):
        """Small ticks run the question timer down to a timeout."""
        SessionDriver.start_and_reach_first_question(self.controller)

        for _ in range(50):
            self.controller.tick(0.1)
            await self.presenter.flush()

        self.assertIs(self.controller.state, SessionState.FEEDBACK)
        self.assertTrue(self.controller.get_snapshot().last_attempt.timed_out)
        self.assertGreater(self.message.edit.await_count, 1)

        SessionDriver.finish_feedback(self.controller)
        self.assertEqual(self.controller.last_summary.ended_by, EndReason.TIMEOUT)

    async def test_settings_change_applies_to_next_session(self):
        SessionDriver.start_and_reach_first_question(self.controller)
        self.config_manager.set_initial_display_time(3.0)

        self.assertEqual(self.controller.session.display_time_limit, 5.0)

        self.controller.abandon()
        self.controller.start_trigger()
        self.assertEqual(self.controller.session.display_time_limit, 3.0)


if __name__ == '__main__':
    unittest.main()
