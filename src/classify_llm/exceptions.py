"""Exceptions and warnings raised by classify-llm."""


class ClassifyLLMError(Exception):
    """Base class for all classify-llm errors."""


class ConfigurationError(ClassifyLLMError, ValueError):
    """Raised for invalid inputs, detected before any request is sent."""


class MissingAPIKeyError(ClassifyLLMError, RuntimeError):
    """Raised when no API key is available for the chat endpoint."""


class ProviderError(ClassifyLLMError, RuntimeError):
    """Raised when the provider reports a structured error in its response body.

    Attributes:
        message: The provider's error message text
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"API error: {message}")


class ClassificationWarning(UserWarning):
    """Non-fatal problem with the inputs or the results of a run."""
