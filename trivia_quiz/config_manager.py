"""
Configuration manager for trivia quiz settings and provider parameters.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .models import CATEGORIES, DIFFICULTIES, QUESTION_TYPES, QuizSettings
from .trivia_client import DEFAULT_API_URL, DEFAULT_TIMEOUT


class InvalidConfigurationError(Exception):
    """Raised when configuration cannot be loaded or resolved."""

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or f"❌ {message}"


def category_id_for(category: Union[str, int]) -> int:
    """
    Resolve a category name or provider id to the provider id.

    Raises:
        InvalidConfigurationError: If the category is not in the table
    """
    if isinstance(category, bool):
        raise InvalidConfigurationError(f"Unknown category: {category!r}")
    if isinstance(category, int):
        if category in CATEGORIES.values():
            return category
        raise InvalidConfigurationError(f"Unknown category id: {category}")
    for name, category_id in CATEGORIES.items():
        if name.lower() == str(category).strip().lower():
            return category_id
    raise InvalidConfigurationError(f"Unknown category: {category!r}")


def setup_logging_from_config(config: Dict[str, Any]) -> None:
    """Set up logging based on the 'logging' section of a config dict."""
    log_config = config.get('logging', {})
    log_level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)
    handlers: List[logging.Handler] = [logging.StreamHandler()]

    log_directory = log_config.get('log_directory')
    if log_directory:
        log_directory = Path(log_directory)
        log_directory.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_directory / "trivia_quiz.log", encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )


class ConfigManager:
    """Manages quiz configuration and trivia provider settings."""

    # Default configuration values
    DEFAULT_AMOUNT = 10
    DEFAULT_CATEGORY = "General Knowledge"
    DEFAULT_DIFFICULTY = "easy"
    DEFAULT_QUESTION_TYPE = "multiple"
    DEFAULT_TIME_LIMIT = 120
    DEFAULT_API_URL = DEFAULT_API_URL
    DEFAULT_REQUEST_TIMEOUT = DEFAULT_TIMEOUT

    API_URL_ENV_VAR = "TRIVIA_API_URL"

    # Validation limits
    MIN_AMOUNT = 1
    MAX_AMOUNT = 50  # provider maximum per request
    MIN_TIME_LIMIT = 5
    MAX_TIME_LIMIT = 3600
    MIN_REQUEST_TIMEOUT = 1.0
    MAX_REQUEST_TIMEOUT = 60.0

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = self._default_settings()
        self._api_url = os.getenv(self.API_URL_ENV_VAR) or self.DEFAULT_API_URL
        self._request_timeout = self.DEFAULT_REQUEST_TIMEOUT
        self._raw_config: Dict[str, Any] = {}

    @classmethod
    def _default_settings(cls) -> QuizSettings:
        return QuizSettings(
            amount=cls.DEFAULT_AMOUNT,
            category=cls.DEFAULT_CATEGORY,
            difficulty=cls.DEFAULT_DIFFICULTY,
            question_type=cls.DEFAULT_QUESTION_TYPE,
            time_limit=cls.DEFAULT_TIME_LIMIT
        )

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "ConfigManager":
        """
        Build a ConfigManager from a JSON config file.

        Expected structure (every section optional):
        {
            "provider": {"api_url": str, "request_timeout": float},
            "quiz": {"amount": int, "category": str, "difficulty": str,
                     "question_type": str, "time_limit": int},
            "logging": {"level": str, "log_directory": str}
        }

        Raises:
            InvalidConfigurationError: If the file is missing, unreadable,
                not JSON, or holds invalid values
        """
        config_path = Path(config_path)
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        except FileNotFoundError as e:
            raise InvalidConfigurationError(f"Config file not found: {config_path}") from e
        except json.JSONDecodeError as e:
            raise InvalidConfigurationError(f"Invalid JSON in {config_path}: {e}") from e
        except OSError as e:
            raise InvalidConfigurationError(f"Failed to read {config_path}: {e}") from e

        if not isinstance(config, dict):
            raise InvalidConfigurationError("Config must be a JSON object")

        manager = cls()
        manager.apply_config(config)
        return manager

    def apply_config(self, config: Dict[str, Any]) -> None:
        """
        Apply a parsed config dict. Nothing is applied unless every value is valid.

        Raises:
            InvalidConfigurationError: On the first invalid value
        """
        provider = config.get('provider', {})
        quiz = config.get('quiz', {})

        api_url = self._api_url
        if 'api_url' in provider and not os.getenv(self.API_URL_ENV_VAR):
            api_url = self._check_api_url(provider['api_url'])
        request_timeout = self._request_timeout
        if 'request_timeout' in provider:
            request_timeout = self._check_request_timeout(provider['request_timeout'])
        settings = self._checked_settings(self._settings, quiz)

        self._api_url = api_url
        self._request_timeout = request_timeout
        self._settings = settings
        self._raw_config = config
        self.logger.info(f"Configuration applied: {settings.amount} {settings.category} questions")

    @property
    def raw_config(self) -> Dict[str, Any]:
        return self._raw_config

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get current quiz settings.

        Returns:
            A copy of the current QuizSettings
        """
        return QuizSettings(
            amount=self._settings.amount,
            category=self._settings.category,
            difficulty=self._settings.difficulty,
            question_type=self._settings.question_type,
            time_limit=self._settings.time_limit
        )

    def _failure(self, error: InvalidConfigurationError) -> Dict[str, Any]:
        self.logger.error(str(error))
        return {
            'success': False,
            'error': str(error),
            'user_message': error.user_message
        }

    def _success(self, message: str, user_message: str) -> Dict[str, Any]:
        self.logger.info(message)
        return {
            'success': True,
            'message': message,
            'user_message': user_message
        }

    # Validators return the normalized value or raise; they never log or store

    def _check_amount(self, amount: int) -> int:
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise InvalidConfigurationError(
                f"Question amount must be an integer, got {type(amount).__name__}",
                f"❌ Invalid input: Expected a number, got {type(amount).__name__}"
            )
        if amount < self.MIN_AMOUNT:
            raise InvalidConfigurationError(
                f"Question amount must be at least {self.MIN_AMOUNT}",
                f"❌ Too few questions: Minimum is {self.MIN_AMOUNT}"
            )
        if amount > self.MAX_AMOUNT:
            raise InvalidConfigurationError(
                f"Question amount cannot exceed {self.MAX_AMOUNT}",
                f"❌ Too many questions: Maximum is {self.MAX_AMOUNT}"
            )
        return amount

    def _check_category(self, category: Union[str, int]) -> str:
        try:
            category_id = category_id_for(category)
        except InvalidConfigurationError as e:
            raise InvalidConfigurationError(
                str(e),
                f"❌ Unknown category. Choose one of: {', '.join(CATEGORIES)}"
            ) from e
        return next(name for name, cid in CATEGORIES.items() if cid == category_id)

    def _check_difficulty(self, difficulty: str) -> str:
        if not isinstance(difficulty, str) or difficulty.strip().lower() not in DIFFICULTIES:
            raise InvalidConfigurationError(
                f"Invalid difficulty: {difficulty!r}",
                f"❌ Difficulty must be one of: {', '.join(DIFFICULTIES)}"
            )
        return difficulty.strip().lower()

    def _check_question_type(self, question_type: str) -> str:
        if not isinstance(question_type, str) or question_type.strip().lower() not in QUESTION_TYPES:
            raise InvalidConfigurationError(
                f"Invalid question type: {question_type!r}",
                f"❌ Question type must be one of: {', '.join(QUESTION_TYPES)}"
            )
        return question_type.strip().lower()

    def _check_time_limit(self, time_limit: int) -> int:
        if not isinstance(time_limit, int) or isinstance(time_limit, bool):
            raise InvalidConfigurationError(
                f"Time limit must be an integer, got {type(time_limit).__name__}",
                f"❌ Invalid input: Expected a number, got {type(time_limit).__name__}"
            )
        if time_limit < self.MIN_TIME_LIMIT:
            raise InvalidConfigurationError(
                f"Time limit must be at least {self.MIN_TIME_LIMIT} seconds",
                f"❌ Time limit too short: Minimum is {self.MIN_TIME_LIMIT} seconds"
            )
        if time_limit > self.MAX_TIME_LIMIT:
            raise InvalidConfigurationError(
                f"Time limit cannot exceed {self.MAX_TIME_LIMIT} seconds",
                f"❌ Time limit too long: Maximum is {self.MAX_TIME_LIMIT} seconds "
                f"({self.MAX_TIME_LIMIT // 60} minutes)"
            )
        return time_limit

    def _check_api_url(self, api_url: str) -> str:
        if not isinstance(api_url, str) or not api_url.strip():
            raise InvalidConfigurationError("API URL cannot be empty", "❌ Provider URL cannot be empty")
        if not api_url.startswith(("http://", "https://")):
            raise InvalidConfigurationError(
                f"API URL must use http or https: {api_url}",
                f"❌ Invalid provider URL: {api_url}"
            )
        return api_url.strip()

    def _check_request_timeout(self, timeout: Union[int, float]) -> float:
        if not isinstance(timeout, (int, float)) or isinstance(timeout, bool):
            raise InvalidConfigurationError(
                f"Request timeout must be a number, got {type(timeout).__name__}",
                f"❌ Invalid input: Expected a number, got {type(timeout).__name__}"
            )
        if not self.MIN_REQUEST_TIMEOUT <= timeout <= self.MAX_REQUEST_TIMEOUT:
            raise InvalidConfigurationError(
                f"Request timeout must be between {self.MIN_REQUEST_TIMEOUT} and "
                f"{self.MAX_REQUEST_TIMEOUT} seconds",
                f"❌ Request timeout must be between {self.MIN_REQUEST_TIMEOUT:g} and "
                f"{self.MAX_REQUEST_TIMEOUT:g} seconds"
            )
        return float(timeout)

    def _checked_settings(self, base: QuizSettings, values: Dict[str, Any]) -> QuizSettings:
        """Validate quiz values laid over base and return them as new settings."""
        return QuizSettings(
            amount=self._check_amount(values['amount']) if 'amount' in values else base.amount,
            category=self._check_category(values['category']) if 'category' in values else base.category,
            difficulty=(self._check_difficulty(values['difficulty'])
                        if 'difficulty' in values else base.difficulty),
            question_type=(self._check_question_type(values['question_type'])
                           if 'question_type' in values else base.question_type),
            time_limit=(self._check_time_limit(values['time_limit'])
                        if 'time_limit' in values else base.time_limit)
        )

    def set_amount(self, amount: int) -> Dict[str, Any]:
        """
        Set the number of questions to fetch.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        try:
            self._settings.amount = self._check_amount(amount)
        except InvalidConfigurationError as e:
            return self._failure(e)
        return self._success(f"Question amount set to {amount}", f"✅ Question count set to {amount}")

    def get_amount(self) -> int:
        return self._settings.amount

    def set_category(self, category: Union[str, int]) -> Dict[str, Any]:
        """
        Set the question category by name or provider id.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        try:
            self._settings.category = self._check_category(category)
        except InvalidConfigurationError as e:
            return self._failure(e)
        name = self._settings.category
        return self._success(f"Category set to {name} ({CATEGORIES[name]})", f"✅ Category set to {name}")

    def get_category(self) -> str:
        return self._settings.category

    def get_category_id(self) -> int:
        return CATEGORIES[self._settings.category]

    def set_difficulty(self, difficulty: str) -> Dict[str, Any]:
        """
        Set the question difficulty (case-insensitive).

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        try:
            self._settings.difficulty = self._check_difficulty(difficulty)
        except InvalidConfigurationError as e:
            return self._failure(e)
        return self._success(
            f"Difficulty set to {self._settings.difficulty}",
            f"✅ Difficulty set to {self._settings.difficulty}"
        )

    def get_difficulty(self) -> str:
        return self._settings.difficulty

    def set_question_type(self, question_type: str) -> Dict[str, Any]:
        """
        Set the question type (case-insensitive).

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        try:
            self._settings.question_type = self._check_question_type(question_type)
        except InvalidConfigurationError as e:
            return self._failure(e)
        return self._success(
            f"Question type set to {self._settings.question_type}",
            f"✅ Question type set to {self._settings.question_type}"
        )

    def get_question_type(self) -> str:
        return self._settings.question_type

    def set_time_limit(self, time_limit: int) -> Dict[str, Any]:
        """
        Set the countdown length for a session.

        Args:
            time_limit: Time limit in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        try:
            self._settings.time_limit = self._check_time_limit(time_limit)
        except InvalidConfigurationError as e:
            return self._failure(e)
        return self._success(f"Time limit set to {time_limit} seconds", f"✅ Time limit set to {time_limit} seconds")

    def get_time_limit(self) -> int:
        return self._settings.time_limit

    def set_api_url(self, api_url: str) -> Dict[str, Any]:
        """
        Set the trivia provider endpoint.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        try:
            self._api_url = self._check_api_url(api_url)
        except InvalidConfigurationError as e:
            return self._failure(e)
        return self._success(f"API URL set to {self._api_url}", f"✅ Provider set to {self._api_url}")

    def get_api_url(self) -> str:
        return self._api_url

    def set_request_timeout(self, timeout: Union[int, float]) -> Dict[str, Any]:
        """
        Set the provider request timeout in seconds.

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        try:
            self._request_timeout = self._check_request_timeout(timeout)
        except InvalidConfigurationError as e:
            return self._failure(e)
        return self._success(
            f"Request timeout set to {self._request_timeout} seconds",
            f"✅ Request timeout set to {self._request_timeout:g} seconds"
        )

    def get_request_timeout(self) -> float:
        return self._request_timeout

    def build_settings(
        self,
        category: Optional[Union[str, int]] = None,
        difficulty: Optional[str] = None,
        question_type: Optional[str] = None,
        amount: Optional[int] = None,
        time_limit: Optional[int] = None
    ) -> QuizSettings:
        """
        Validate a one-off configuration without changing stored settings.

        Values left as None fall back to the stored settings.

        Raises:
            InvalidConfigurationError: If any value is invalid
        """
        values = {
            'category': category,
            'difficulty': difficulty,
            'question_type': question_type,
            'amount': amount,
            'time_limit': time_limit,
        }
        return self._checked_settings(
            self._settings,
            {key: value for key, value in values.items() if value is not None}
        )

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = self._default_settings()
        self._api_url = os.getenv(self.API_URL_ENV_VAR) or self.DEFAULT_API_URL
        self._request_timeout = self.DEFAULT_REQUEST_TIMEOUT
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
        settings = self._settings

        if (not isinstance(settings.amount, int) or
                not self.MIN_AMOUNT <= settings.amount <= self.MAX_AMOUNT):
            validation_result["issues"].append(f"Invalid question amount: {settings.amount}")

        if settings.category not in CATEGORIES:
            validation_result["issues"].append(f"Invalid category: {settings.category}")

        if settings.difficulty not in DIFFICULTIES:
            validation_result["issues"].append(f"Invalid difficulty: {settings.difficulty}")

        if settings.question_type not in QUESTION_TYPES:
            validation_result["issues"].append(f"Invalid question type: {settings.question_type}")

        if (not isinstance(settings.time_limit, int) or
                not self.MIN_TIME_LIMIT <= settings.time_limit <= self.MAX_TIME_LIMIT):
            validation_result["issues"].append(f"Invalid time limit: {settings.time_limit}")

        if not self._api_url.startswith(("http://", "https://")):
            validation_result["issues"].append(f"Invalid API URL: {self._api_url}")

        validation_result["valid"] = not validation_result["issues"]
        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        settings = self._settings
        return (
            f"Quiz Settings:\n"
            f"• Questions: {settings.amount}\n"
            f"• Category: {settings.category}\n"
            f"• Difficulty: {settings.difficulty}\n"
            f"• Type: {settings.question_type}\n"
            f"• Time limit: {settings.time_limit} seconds\n"
            f"• Provider: {self._api_url}"
        )
