"""Chat-completion client used by the classifiers."""

import logging
import time
from collections.abc import Mapping
from typing import Any, Type, TypeVar

import instructor
from instructor.exceptions import InstructorRetryException
from pydantic import BaseModel
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .config import get_api_key, qualify_model
from .exceptions import ConfigurationError, MissingAPIKeyError, ProviderError
from .log import get_logger

T = TypeVar("T", bound=BaseModel)

logger = get_logger(__name__)

# Errors that retrying the same request cannot fix
NON_RETRYABLE = (
    ConfigurationError,
    MissingAPIKeyError,
    ProviderError,
    InstructorRetryException,
)


# ============================================================================
# Reply Extraction
# ============================================================================


def _join_fragments(content: Any) -> str:
    """Concatenate message content given either as a string or a list of parts."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, Mapping) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)
    return ""


def extract_reply_text(response: Any) -> str:
    """Pull the completion text out of a raw chat-completion response.

    Accepts the provider's pydantic response object or an already-decoded
    mapping. The message content may be a plain string or a list of text
    fragments. Responses without any recognizable text yield an empty string.

    Raises:
        ProviderError: If the response body carries a structured ``error`` field
    """
    data = response.model_dump() if isinstance(response, BaseModel) else response
    if isinstance(data, str):
        return data
    if not isinstance(data, Mapping):
        return ""

    error = data.get("error")
    if error:
        message = error.get("message") if isinstance(error, Mapping) else str(error)
        raise ProviderError(message or "Unknown API error")

    choices = data.get("choices") or []
    if not choices:
        # Anthropic-style responses put the fragments at the top level
        return _join_fragments(data.get("content"))

    choice = choices[0] or {}
    text = ""
    message = choice.get("message")
    if isinstance(message, Mapping):
        text = _join_fragments(message.get("content"))
    elif isinstance(message, str):
        text = message

    if not text and isinstance(choice.get("text"), str):
        text = choice["text"]
    return text


# ============================================================================
# Client
# ============================================================================


class ChatClient:
    """Thin wrapper around an Instructor client.

    The underlying client is only built on the first request, so a missing
    API key is reported before any network traffic and never at construction.

    Args:
        model: Model identifier in format "provider/model-name"
        api_key: Optional API key (defaults to the OPENAI_API_KEY variable)
        timeout: Per-request timeout in seconds
        max_retries: Extra attempts after a failed request. 0 fails fast.
        **client_kwargs: Additional kwargs passed to the Instructor client
    """

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        timeout: float = 60.0,
        max_retries: int = 0,
        **client_kwargs: Any,
    ):
        if max_retries < 0:
            raise ConfigurationError("max_retries must be >= 0")
        self.model = qualify_model(model)
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries
        self.client_kwargs = client_kwargs
        self._client: Any = None

    @property
    def client(self) -> Any:
        if self._client is None:
            api_key = get_api_key(self.api_key)
            logger.debug("Creating client for %s", self.model)
            self._client = instructor.from_provider(
                self.model, api_key=api_key, **self.client_kwargs
            )
        return self._client

    def _call(self, **kwargs: Any) -> Any:
        """Send one request, retrying transport failures only when enabled."""
        if self.max_retries == 0:
            return self.client.chat.completions.create(timeout=self.timeout, **kwargs)

        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=1, min=1, max=30),
            retry=retry_if_not_exception_type(NON_RETRYABLE),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=time.sleep,
            reraise=True,
        )
        return retrying(
            self.client.chat.completions.create, timeout=self.timeout, **kwargs
        )

    def complete(self, messages: list[dict[str, str]], temperature: float = 0.0) -> str:
        """Return the trimmed text reply for a list of role-tagged messages."""
        response = self._call(
            messages=messages,
            response_model=None,
            temperature=temperature,
        )
        return extract_reply_text(response).strip()

    def structured(
        self,
        messages: list[dict[str, str]],
        response_model: Type[T],
        temperature: float = 0.0,
        validation_retries: int = 3,
    ) -> T:
        """Return a reply parsed into ``response_model``.

        ``validation_retries`` re-asks the model when its output does not
        validate; it is independent of the transport retry policy.
        """
        return self._call(
            messages=messages,
            response_model=response_model,
            max_retries=validation_retries,
            temperature=temperature,
        )
