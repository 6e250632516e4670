"""classify-llm: classify text into a closed set of categories with an LLM."""

import logging

from .batch import iter_batches, run_in_batches
from .chat import ChatClient, extract_reply_text
from .classifier import (
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_USER_PROMPT,
    LLMClassifier,
    build_messages,
    classify_vector,
    normalize_label,
)
from .config import (
    API_KEY_ENV,
    DEFAULT_MODEL,
    ClassifierSettings,
    get_api_key,
    set_api_key,
)
from .exceptions import (
    ClassificationWarning,
    ClassifyLLMError,
    ConfigurationError,
    MissingAPIKeyError,
    ProviderError,
)
from .log import init_logging
from .results import (
    Distribution,
    RowResult,
    TableResult,
    TopPrediction,
    coerce_result,
    to_distribution,
    to_top_prediction,
)
from .tabular import classify_table

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    "LLMClassifier",
    "ChatClient",
    "classify_vector",
    "classify_table",
    "normalize_label",
    "build_messages",
    "extract_reply_text",
    "iter_batches",
    "run_in_batches",
    "TopPrediction",
    "Distribution",
    "TableResult",
    "RowResult",
    "coerce_result",
    "to_distribution",
    "to_top_prediction",
    "ClassifierSettings",
    "get_api_key",
    "set_api_key",
    "init_logging",
    "API_KEY_ENV",
    "DEFAULT_MODEL",
    "DEFAULT_SYSTEM_PROMPT",
    "DEFAULT_USER_PROMPT",
    "ClassifyLLMError",
    "ConfigurationError",
    "MissingAPIKeyError",
    "ProviderError",
    "ClassificationWarning",
]
