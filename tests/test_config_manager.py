"""
Unit tests for ConfigManager class.
"""
import json
import logging
import unittest

from flashcalc.config_manager import ConfigManager
from flashcalc.models import QuizSettings


class TestConfigManager(unittest.TestCase):
    """Test cases for ConfigManager functionality."""

    def setUp(self):
        """Set up test fixtures before each test method."""
        self.config_manager = ConfigManager()

        # Suppress logging during tests
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        """Clean up after each test method."""
        logging.disable(logging.NOTSET)

    def test_initialization_with_defaults(self):
        """Test that ConfigManager initializes with correct default values."""
        settings = self.config_manager.get_quiz_settings()

        self.assertIsInstance(settings, QuizSettings)
        self.assertEqual(settings.initial_display_time, 5.0)
        self.assertEqual(settings.max_questions, 15)

    def test_set_initial_display_time_valid_values(self):
        for value in (1.0, 2.5, 7, 60.0):
            with self.subTest(value=value):
                result = self.config_manager.set_initial_display_time(value)
                self.assertTrue(result['success'])
                self.assertEqual(self.config_manager.get_initial_display_time(), float(value))
                self.assertIsInstance(self.config_manager.get_initial_display_time(), float)

    def test_set_initial_display_time_invalid_values(self):
        for value in ("5", None, True, 0.5, 0, -3, 60.5):
            with self.subTest(value=value):
                result = self.config_manager.set_initial_display_time(value)
                self.assertFalse(result['success'])
                self.assertIn('error', result)
                self.assertTrue(result['user_message'].startswith("❌"))

        self.assertEqual(self.config_manager.get_initial_display_time(), 5.0)

    def test_set_initial_display_time_rejects_non_finite(self):
        for value in (float('nan'), float('inf'), float('-inf')):
            with self.subTest(value=value):
                result = self.config_manager.set_initial_display_time(value)
                self.assertFalse(result['success'])
                self.assertIn("finite", result['error'])

        self.assertEqual(self.config_manager.get_initial_display_time(), 5.0)

    def test_set_max_questions_valid_values(self):
        for value in (1, 15, 100):
            with self.subTest(value=value):
                result = self.config_manager.set_max_questions(value)
                self.assertTrue(result['success'])
                self.assertEqual(self.config_manager.get_max_questions(), value)

    def test_set_max_questions_invalid_values(self):
        for value in ("10", 5.5, False, 0, -1, 101):
            with self.subTest(value=value):
                result = self.config_manager.set_max_questions(value)
                self.assertFalse(result['success'])

        self.assertEqual(self.config_manager.get_max_questions(), 15)

    def test_settings_snapshot_is_independent(self):
        settings = self.config_manager.get_quiz_settings()
        self.config_manager.set_max_questions(20)

        self.assertEqual(settings.max_questions, 15)
        self.assertEqual(self.config_manager.get_quiz_settings().max_questions, 20)

    def test_apply_config(self):
        errors = self.config_manager.apply_config({'initial_display_time': 4, 'max_questions': 25})

        self.assertEqual(errors, [])
        self.assertEqual(self.config_manager.get_initial_display_time(), 4.0)
        self.assertEqual(self.config_manager.get_max_questions(), 25)

    def test_apply_config_keeps_valid_entries(self):
        errors = self.config_manager.apply_config({'initial_display_time': 3, 'max_questions': 0})

        self.assertEqual(len(errors), 1)
        self.assertEqual(self.config_manager.get_initial_display_time(), 3.0)
        self.assertEqual(self.config_manager.get_max_questions(), 15)

    def test_apply_config_rejects_nan_from_json(self):
        quiz_config = json.loads('{"initial_display_time": NaN, "max_questions": 10}')

        errors = self.config_manager.apply_config(quiz_config)

        self.assertEqual(len(errors), 1)
        self.assertEqual(self.config_manager.get_initial_display_time(), 5.0)
        self.assertEqual(self.config_manager.get_max_questions(), 10)

    def test_apply_empty_config(self):
        self.assertEqual(self.config_manager.apply_config({}), [])
        self.assertEqual(self.config_manager.get_quiz_settings(), QuizSettings())

    def test_reset_to_defaults(self):
        self.config_manager.set_initial_display_time(2.0)
        self.config_manager.set_max_questions(30)

        self.config_manager.reset_to_defaults()

        self.assertEqual(self.config_manager.get_quiz_settings(), QuizSettings(5.0, 15))

    def test_validate_settings(self):
        validation = self.config_manager.validate_settings()
        self.assertTrue(validation['valid'])
        self.assertEqual(validation['issues'], [])

        # Bypass setter validation
        self.config_manager._max_questions = 500
        validation = self.config_manager.validate_settings()
        self.assertFalse(validation['valid'])
        self.assertEqual(len(validation['issues']), 1)

    def test_validate_settings_flags_non_finite_display_time(self):
        self.config_manager._initial_display_time = float('nan')

        validation = self.config_manager.validate_settings()

        self.assertFalse(validation['valid'])
        self.assertEqual(len(validation['issues']), 1)

    def test_settings_summary(self):
        self.config_manager.set_initial_display_time(4.5)
        summary = self.config_manager.get_settings_summary()

        self.assertIn("4.5 seconds", summary)
        self.assertIn("15", summary)

    def test_health_check_healthy_defaults(self):
        health = self.config_manager.get_configuration_health_check()

        self.assertTrue(health['healthy'])
        self.assertEqual(health['warnings'], [])
        self.assertEqual(health['errors'], [])

    def test_health_check_warnings(self):
        self.config_manager.set_initial_display_time(1.5)
        self.config_manager.set_max_questions(10)

        health = self.config_manager.get_configuration_health_check()

        self.assertTrue(health['healthy'])
        self.assertEqual(len(health['warnings']), 2)
        self.assertEqual(len(health['recommendations']), 2)

    def test_health_check_invalid_state(self):
        self.config_manager._initial_display_time = -1

        health = self.config_manager.get_configuration_health_check()

        self.assertFalse(health['healthy'])
        self.assertEqual(len(health['errors']), 1)


if __name__ == '__main__':
    unittest.main()
