"""
Configuration manager for Psalm Quiz bot settings and parameters.
"""
import logging
from typing import Optional, Dict, Any, List
from pathlib import Path
import os

from .models import QuizSettings, QuestionStyle
from .data_manager import DEFAULT_PSALM_DIRECTORY


class ConfigManager:
    """Manages bot configuration settings and quiz parameters."""

    # Default configuration values
    DEFAULT_STYLE = QuestionStyle.MIXED
    DEFAULT_TRANSLATION = "KJV"
    DEFAULT_QUESTION_COUNT = None  # Use every generated question by default
    DEFAULT_SEED = None
    DEFAULT_PSALM_DIRECTORY = str(DEFAULT_PSALM_DIRECTORY)
    DEFAULT_PROGRESS_FILE = "./data/progress.json"

    # Validation limits
    MIN_QUESTION_COUNT = 1
    MAX_QUESTION_COUNT = 100
    MAX_TRANSLATION_LENGTH = 10

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._global_settings = QuizSettings(
            style=self.DEFAULT_STYLE,
            translation=self.DEFAULT_TRANSLATION,
            question_count=self.DEFAULT_QUESTION_COUNT,
            seed=self.DEFAULT_SEED
        )
        self._psalm_directory = self.DEFAULT_PSALM_DIRECTORY
        self._progress_file: Optional[str] = self.DEFAULT_PROGRESS_FILE

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get a copy of the current quiz settings.
        """
        return QuizSettings(
            style=self._global_settings.style,
            translation=self._global_settings.translation,
            question_count=self._global_settings.question_count,
            seed=self._global_settings.seed
        )

    def set_default_style(self, style) -> Dict[str, Any]:
        """
        Set the question style used when a quiz is started without one.

        Args:
            style: QuestionStyle or style name such as "word_order"

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        try:
            parsed = QuestionStyle.parse(style)
        except ValueError as e:
            error_msg = str(e)
            self.logger.error(error_msg)
            available = ", ".join(option.value for option in QuestionStyle)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Unknown quiz style '{style}'. Available styles: {available}"
            }

        self._global_settings.style = parsed
        self.logger.info(f"Default quiz style set to {parsed.value}")
        return {
            'success': True,
            'message': f"Default quiz style set to {parsed.value}",
            'user_message': f"✅ Quizzes will use the {parsed.display_name} style"
        }

    def get_default_style(self) -> QuestionStyle:
        return self._global_settings.style

    def set_default_translation(self, translation: str) -> Dict[str, Any]:
        """
        Set the translation used when a quiz is started without one.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(translation, str) or not translation.strip():
            error_msg = "Translation must be a non-empty string"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Invalid input: Expected a translation abbreviation such as KJV"
            }

        abbreviation = translation.strip().upper()
        if len(abbreviation) > self.MAX_TRANSLATION_LENGTH or not abbreviation.isalnum():
            error_msg = f"Invalid translation abbreviation: {translation}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ '{translation}' is not a valid translation abbreviation"
            }

        self._global_settings.translation = abbreviation
        self.logger.info(f"Default translation set to {abbreviation}")
        return {
            'success': True,
            'message': f"Default translation set to {abbreviation}",
            'user_message': f"✅ Quizzes will use the {abbreviation} translation"
        }

    def get_default_translation(self) -> str:
        return self._global_settings.translation

    def set_question_count(self, count: Optional[int]) -> Dict[str, Any]:
        """
        Set the maximum number of questions per quiz with detailed error reporting.

        Args:
            count: Number of questions, or None to use every generated question

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if count is None:
            self._global_settings.question_count = None
            self.logger.info("Question count set to use all generated questions")
            return {
                'success': True,
                'message': "Question count set to use all generated questions",
                'user_message': "✅ Will use every generated question"
            }

        # Type validation
        if not isinstance(count, int) or isinstance(count, bool):
            error_msg = f"Question count must be an integer, got {type(count).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(count).__name__}"
            }

        # Range validation
        if count < self.MIN_QUESTION_COUNT:
            error_msg = f"Question count must be at least {self.MIN_QUESTION_COUNT}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too few questions: Minimum is {self.MIN_QUESTION_COUNT}"
            }

        if count > self.MAX_QUESTION_COUNT:
            error_msg = f"Question count cannot exceed {self.MAX_QUESTION_COUNT}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Too many questions: Maximum is {self.MAX_QUESTION_COUNT}"
            }

        self._global_settings.question_count = count
        self.logger.info(f"Question count set to {count}")
        return {
            'success': True,
            'message': f"Question count set to {count}",
            'user_message': f"✅ Question count set to {count}"
        }

    def get_question_count(self) -> Optional[int]:
        return self._global_settings.question_count

    def set_seed(self, seed: Optional[int]) -> Dict[str, Any]:
        """
        Set a fixed random seed so every quiz deck is reproducible, or None
        for a fresh deck each time.
        """
        if seed is not None and (not isinstance(seed, int) or isinstance(seed, bool)):
            error_msg = f"Seed must be an integer or None, got {type(seed).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(seed).__name__}"
            }

        self._global_settings.seed = seed
        description = "disabled" if seed is None else str(seed)
        self.logger.info(f"Quiz seed set to {description}")
        return {
            'success': True,
            'message': f"Quiz seed set to {description}",
            'user_message': "✅ Quizzes will be shuffled freshly each time" if seed is None
            else f"✅ Quizzes will be generated with seed {seed}"
        }

    def get_seed(self) -> Optional[int]:
        return self._global_settings.seed

    def set_psalm_directory(self, directory: str) -> Dict[str, Any]:
        """
        Set the directory path for psalm files with validation.

        Args:
            directory: Path to psalm files directory

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(directory, str):
            error_msg = f"Psalm directory must be a string, got {type(directory).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Invalid input: Directory path must be text"
            }

        if not directory.strip():
            error_msg = "Psalm directory cannot be empty"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Directory path cannot be empty"
            }

        try:
            path = Path(directory.strip())
        except (TypeError, ValueError) as e:
            error_msg = f"Invalid directory path: {e}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid directory path: {directory}"
            }

        if path.exists() and not path.is_dir():
            error_msg = f"Path exists but is not a directory: {directory}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Path is not a directory: {directory}"
            }

        self._psalm_directory = str(path)
        self.logger.info(f"Psalm directory set to {self._psalm_directory}")
        return {
            'success': True,
            'message': f"Psalm directory set to {self._psalm_directory}",
            'user_message': f"✅ Psalm files will be loaded from {self._psalm_directory}"
        }

    def get_psalm_directory(self) -> str:
        return self._psalm_directory

    def set_progress_file(self, progress_file: Optional[str]) -> Dict[str, Any]:
        """
        Set the JSON file progress records are saved to, or None to keep
        progress in memory only.
        """
        if progress_file is not None and (not isinstance(progress_file, str) or not progress_file.strip()):
            error_msg = "Progress file must be a non-empty path or None"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Invalid progress file path"
            }

        self._progress_file = progress_file.strip() if progress_file else None
        description = self._progress_file or "memory only"
        self.logger.info(f"Progress storage set to {description}")
        return {
            'success': True,
            'message': f"Progress storage set to {description}",
            'user_message': f"✅ Progress will be stored in {description}"
        }

    def get_progress_file(self) -> Optional[str]:
        return self._progress_file

    def apply_config(self, quiz_config: Dict[str, Any]) -> List[str]:
        """
        Apply the 'quiz' section of config.json. Invalid values are logged
        and the defaults kept.

        Returns:
            List of error messages for the values that were rejected
        """
        errors = []
        setters = [
            ('psalm_directory', self.set_psalm_directory),
            ('progress_file', self.set_progress_file),
            ('default_style', self.set_default_style),
            ('default_translation', self.set_default_translation),
            ('default_question_count', self.set_question_count),
            ('seed', self.set_seed),
        ]

        for key, setter in setters:
            if key not in quiz_config:
                continue
            result = setter(quiz_config[key])
            if not result['success']:
                errors.append(f"{key}: {result['error']}")

        if errors:
            self.logger.warning(f"Configuration applied with {len(errors)} rejected values")
        else:
            self.logger.info("Configuration applied successfully")
        return errors

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._global_settings = QuizSettings(
            style=self.DEFAULT_STYLE,
            translation=self.DEFAULT_TRANSLATION,
            question_count=self.DEFAULT_QUESTION_COUNT,
            seed=self.DEFAULT_SEED
        )
        self._psalm_directory = self.DEFAULT_PSALM_DIRECTORY
        self._progress_file = self.DEFAULT_PROGRESS_FILE
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

        if not isinstance(self._global_settings.style, QuestionStyle):
            validation_result["valid"] = False
            validation_result["issues"].append(
                f"Invalid quiz style: {self._global_settings.style}"
            )

        translation = self._global_settings.translation
        if not isinstance(translation, str) or not translation.strip():
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid translation: {translation}")

        count = self._global_settings.question_count
        if count is not None:
            if (not isinstance(count, int) or
                count < self.MIN_QUESTION_COUNT or
                count > self.MAX_QUESTION_COUNT):
                validation_result["valid"] = False
                validation_result["issues"].append(f"Invalid question count: {count}")

        if not isinstance(self._psalm_directory, str) or not self._psalm_directory.strip():
            validation_result["valid"] = False
            validation_result["issues"].append(
                f"Invalid psalm directory: {self._psalm_directory}"
            )

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.
        """
        question_count_str = (
            str(self._global_settings.question_count)
            if self._global_settings.question_count is not None
            else "all generated"
        )
        seed_str = "random" if self._global_settings.seed is None else str(self._global_settings.seed)

        return (
            f"Quiz Settings:\n"
            f"• Style: {self._global_settings.style.display_name}\n"
            f"• Translation: {self._global_settings.translation}\n"
            f"• Questions: {question_count_str}\n"
            f"• Seed: {seed_str}\n"
            f"• Psalm Directory: {self._psalm_directory}"
        )

    def get_user_friendly_validation_errors(self) -> List[str]:
        """
        Get user-friendly validation error messages for current settings.
        """
        validation_result = self.validate_settings()
        user_friendly_errors = []

        for issue in validation_result.get("issues", []):
            if "quiz style" in issue.lower():
                user_friendly_errors.append(
                    f"❌ Quiz Style Issue: {issue}. Please use /set_style to choose a style."
                )
            elif "translation" in issue.lower():
                user_friendly_errors.append(
                    f"❌ Translation Issue: {issue}. Please use /set_translation to choose a translation."
                )
            elif "question count" in issue.lower():
                user_friendly_errors.append(
                    f"❌ Question Count Issue: {issue}. "
                    f"Please set a value between {self.MIN_QUESTION_COUNT} and {self.MAX_QUESTION_COUNT}."
                )
            elif "psalm directory" in issue.lower():
                user_friendly_errors.append(
                    f"❌ Psalm Directory Issue: {issue}. "
                    "Please check the directory path and permissions."
                )
            else:
                user_friendly_errors.append(f"❌ Configuration Issue: {issue}")

        return user_friendly_errors

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
            health_check['errors'].extend(self.get_user_friendly_validation_errors())

        psalm_dir = Path(self._psalm_directory)
        if not psalm_dir.exists():
            health_check['healthy'] = False
            health_check['errors'].append(
                f"❌ Psalm directory does not exist: {self._psalm_directory}"
            )
            health_check['recommendations'].append(
                "Only the built-in fallback psalm will be available until the directory exists."
            )
        elif not os.access(psalm_dir, os.R_OK):
            health_check['healthy'] = False
            health_check['errors'].append(
                f"❌ Cannot read psalm directory: {self._psalm_directory}"
            )
            health_check['recommendations'].append(
                "Check file permissions for the psalm directory."
            )

        if self._progress_file is None:
            health_check['warnings'].append(
                "⚠️ Progress is kept in memory only and will be lost on restart"
            )
            health_check['recommendations'].append(
                "Set 'progress_file' in config.json to keep progress between runs."
            )

        if self._global_settings.seed is not None:
            health_check['warnings'].append(
                f"⚠️ Fixed seed ({self._global_settings.seed}) makes every quiz deck identical"
            )
            health_check['recommendations'].append(
                "Remove the seed outside of testing so repeated quizzes vary."
            )

        return health_check
