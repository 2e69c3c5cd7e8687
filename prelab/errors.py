# prelab/errors.py
from typing import Optional


class LLMError(Exception):
    """Base class for failures of the text-generation call."""


class CreditsExhaustedError(LLMError):
    """The provider refused the request for payment reasons. Never retried."""

    def __init__(self, message: str = "OpenRouter credits exhausted. Use a free model or another free API key."):
        super().__init__(message)


class LLMRequestError(LLMError):
    """Non-success status after retries, or a transport failure (status_code is None)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class QuizGenerationError(Exception):
    """No usable question could be produced after every batch and top-up pass."""

    def __init__(self, message: str = "Quiz generation is rate-limited right now. Wait 1-2 minutes and try again."):
        super().__init__(message)
