"""Settings and API key handling."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import MissingAPIKeyError

API_KEY_ENV = "OPENAI_API_KEY"
DEFAULT_MODEL = "openai/gpt-4o-mini"
DEFAULT_PROVIDER = "openai"


class ClassifierSettings(BaseSettings):
    """Default generation parameters, overridable with ``CLASSIFY_LLM_*`` variables.

    Example:
        >>> import os
        >>> os.environ["CLASSIFY_LLM_MODEL"] = "openai/gpt-4.1-mini"
        >>> ClassifierSettings().model
        'openai/gpt-4.1-mini'
    """

    model_config = SettingsConfigDict(env_prefix="CLASSIFY_LLM_", extra="ignore")

    model: str = DEFAULT_MODEL
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    timeout: float = Field(default=60.0, gt=0.0)
    max_retries: int = Field(default=0, ge=0)


def qualify_model(model: str) -> str:
    """Prefix a bare model name with the default provider ("gpt-4o" -> "openai/gpt-4o")."""
    if "/" in model:
        return model
    return f"{DEFAULT_PROVIDER}/{model}"


def get_api_key(api_key: str | None = None) -> str:
    """Resolve the API key, preferring an explicit value over the environment.

    Raises:
        MissingAPIKeyError: If neither source holds a non-empty key
    """
    if api_key:
        return api_key
    key = os.environ.get(API_KEY_ENV, "")
    if not key:
        raise MissingAPIKeyError(
            f"No API key found. Set the {API_KEY_ENV} environment variable "
            "or call classify_llm.set_api_key()."
        )
    return key


def set_api_key(key: str) -> None:
    """Set the API key for the remainder of the process.

    The key is stored in the ``OPENAI_API_KEY`` environment variable and is
    not persisted anywhere else.
    """
    if not isinstance(key, str) or not key:
        raise ValueError("key must be a non-empty string")
    os.environ[API_KEY_ENV] = key
