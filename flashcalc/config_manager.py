"""
Configuration manager for FlashCalc quiz settings.
"""
import logging
import math
from typing import Any, Dict, List

from .models import QuizSettings


class ConfigManager:
    """Manages quiz configuration settings."""

    # Default configuration values
    DEFAULT_INITIAL_DISPLAY_TIME = 5.0
    DEFAULT_MAX_QUESTIONS = 15

    # Validation limits
    MIN_DISPLAY_TIME = 1.0
    MAX_DISPLAY_TIME = 60.0
    MIN_MAX_QUESTIONS = 1
    MAX_MAX_QUESTIONS = 100

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._initial_display_time = self.DEFAULT_INITIAL_DISPLAY_TIME
        self._max_questions = self.DEFAULT_MAX_QUESTIONS

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get current quiz settings.

        Returns:
            QuizSettings object with current configuration
        """
        return QuizSettings(
            initial_display_time=self._initial_display_time,
            max_questions=self._max_questions
        )

    def set_initial_display_time(self, seconds: float) -> Dict[str, Any]:
        """
        Set the time allotted to the first question.

        Args:
            seconds: Display time in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        # bool is an int subclass but never a valid duration
        if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
            error_msg = f"Display time must be a number, got {type(seconds).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(seconds).__name__}"
            }

        if not math.isfinite(seconds):
            error_msg = f"Display time must be a finite number, got {seconds}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Invalid input: Display time must be a finite number of seconds"
            }

        if seconds < self.MIN_DISPLAY_TIME:
            error_msg = f"Display time must be at least {self.MIN_DISPLAY_TIME} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too short: Minimum is {self.MIN_DISPLAY_TIME:g} seconds"
            }

        if seconds > self.MAX_DISPLAY_TIME:
            error_msg = f"Display time cannot exceed {self.MAX_DISPLAY_TIME} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too long: Maximum is {self.MAX_DISPLAY_TIME:g} seconds"
            }

        self._initial_display_time = float(seconds)
        self.logger.info(f"Initial display time set to {seconds} seconds")
        return {
            'success': True,
            'message': f"Initial display time set to {seconds} seconds",
            'user_message': f"✅ Each session now starts with {float(seconds):g} seconds per question"
        }

    def get_initial_display_time(self) -> float:
        return self._initial_display_time

    def set_max_questions(self, count: int) -> Dict[str, Any]:
        """
        Set the number of questions that completes a session.

        Args:
            count: Number of questions

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if isinstance(count, bool) or not isinstance(count, int):
            error_msg = f"Question count must be an integer, got {type(count).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a whole number, got {type(count).__name__}"
            }

        if count < self.MIN_MAX_QUESTIONS:
            error_msg = f"Question count must be at least {self.MIN_MAX_QUESTIONS}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too few questions: Minimum is {self.MIN_MAX_QUESTIONS}"
            }

        if count > self.MAX_MAX_QUESTIONS:
            error_msg = f"Question count cannot exceed {self.MAX_MAX_QUESTIONS}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too many questions: Maximum is {self.MAX_MAX_QUESTIONS}"
            }

        self._max_questions = count
        self.logger.info(f"Max questions set to {count}")
        return {
            'success': True,
            'message': f"Max questions set to {count}",
            'user_message': f"✅ Sessions now end after {count} questions"
        }

    def get_max_questions(self) -> int:
        return self._max_questions

    def apply_config(self, quiz_config: Dict[str, Any]) -> List[str]:
        """
        Apply the 'quiz' section of config.json.

        Invalid entries are skipped and keep their current value.

        Args:
            quiz_config: Mapping with optional 'initial_display_time' and 'max_questions'

        Returns:
            List of error messages for entries that were rejected
        """
        errors = []

        if 'initial_display_time' in quiz_config:
            result = self.set_initial_display_time(quiz_config['initial_display_time'])
            if not result['success']:
                errors.append(result['error'])

        if 'max_questions' in quiz_config:
            result = self.set_max_questions(quiz_config['max_questions'])
            if not result['success']:
                errors.append(result['error'])

        if errors:
            self.logger.warning(f"Configuration applied with {len(errors)} rejected value(s)")
        else:
            self.logger.info("Configuration applied successfully")
        return errors

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._initial_display_time = self.DEFAULT_INITIAL_DISPLAY_TIME
        self._max_questions = self.DEFAULT_MAX_QUESTIONS
        self.logger.info("All settings reset to default values")

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }

        if (isinstance(self._initial_display_time, bool) or
                not isinstance(self._initial_display_time, (int, float)) or
                not math.isfinite(self._initial_display_time) or
                self._initial_display_time < self.MIN_DISPLAY_TIME or
                self._initial_display_time > self.MAX_DISPLAY_TIME):
            validation_result["valid"] = False
            validation_result["issues"].append(
                f"Invalid display time: {self._initial_display_time}"
            )

        if (isinstance(self._max_questions, bool) or
                not isinstance(self._max_questions, int) or
                self._max_questions < self.MIN_MAX_QUESTIONS or
                self._max_questions > self.MAX_MAX_QUESTIONS):
            validation_result["valid"] = False
            validation_result["issues"].append(
                f"Invalid question count: {self._max_questions}"
            )

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        return (
            f"Quiz Settings:\n"
            f"• Starting time per question: {self._initial_display_time:g} seconds\n"
            f"• Questions per session: {self._max_questions}"
        )

    def get_configuration_health_check(self) -> Dict[str, Any]:
        """
        Perform a health check of the configuration.

        Returns:
            Dictionary with health status and recommendations
        """
        health_check = {
            'healthy': True,
            'warnings': [],
            'errors': [],
            'recommendations': []
        }

        validation_result = self.validate_settings()
        if not validation_result['valid']:
            health_check['healthy'] = False
            health_check['errors'].extend(
                f"❌ Configuration Issue: {issue}" for issue in validation_result['issues']
            )
            return health_check

        if self._initial_display_time < 2.0:
            health_check['warnings'].append(
                f"⚠️ Short display time ({self._initial_display_time:g}s) leaves little time to type"
            )
            health_check['recommendations'].append(
                "Consider starting with at least 2 seconds per question."
            )

        if self._max_questions <= 10:
            health_check['warnings'].append(
                f"⚠️ Sessions of {self._max_questions} questions never reach the two-digit phase"
            )
            health_check['recommendations'].append(
                "Use more than 10 questions to include two-digit problems."
            )

        return health_check
