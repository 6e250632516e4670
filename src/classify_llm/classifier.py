"""Core LLMClassifier implementation."""

import re
import warnings
from collections.abc import Mapping, Sequence
from typing import Any, Literal, Type

import pandas as pd
from pydantic import BaseModel, Field, create_model

from .batch import run_in_batches
from .chat import ChatClient
from .config import DEFAULT_MODEL, ClassifierSettings
from .exceptions import ClassificationWarning, ConfigurationError
from .log import get_logger
from .results import Distribution

logger = get_logger(__name__)


# ============================================================================
# Prompts
# ============================================================================

DEFAULT_SYSTEM_PROMPT = """You are a strict classifier. Return exactly one label from the allowed set.
Allowed labels:
{taxonomy}

Rules:
- Return only the label text with no extra words.
- If uncertain, choose the closest label by meaning.
- Do not invent new labels.
"""

DEFAULT_USER_PROMPT = """Text: {input}
Pick exactly one of: {labels}"""

DISTRIBUTION_USER_PROMPT = """Text: {input}
Assign a probability to every one of: {labels}
The probabilities must sum to 1."""


def format_taxonomy(
    categories: Sequence[str], descriptions: Mapping[str, str] | None = None
) -> str:
    """Format the allowed labels one per line, with descriptions when available."""
    lines = []
    for category in categories:
        description = (descriptions or {}).get(category)
        if description:
            lines.append(f"- {category}: {description}")
        else:
            lines.append(f"- {category}")
    return "\n".join(lines)


def build_messages(
    text: str,
    categories: Sequence[str],
    descriptions: Mapping[str, str] | None = None,
    user_prompt: str = DEFAULT_USER_PROMPT,
) -> list[dict[str, str]]:
    """Build the system and user messages for one input text."""
    system = DEFAULT_SYSTEM_PROMPT.format(taxonomy=format_taxonomy(categories, descriptions))
    user = user_prompt.format(input=text, labels=", ".join(categories))
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


# ============================================================================
# Normalization
# ============================================================================


def normalize_label(reply: str, categories: Sequence[str]) -> str:
    """Map a free-text model reply onto exactly one of ``categories``.

    The first matching rule wins:

    1. exact match;
    2. case-insensitive match, when exactly one category matches;
    3. a category appearing as a whole word in the reply (in category order);
    4. the first category.

    Example:
        >>> normalize_label("Golden retriever is a DOG", ["cat", "dog", "bird"])
        'dog'
        >>> normalize_label("doghouse", ["cat", "dog"])
        'cat'
    """
    reply = reply.strip()
    if reply in categories:
        return reply

    lowered = reply.lower()
    matches = [c for c in categories if c.lower() == lowered]
    if len(matches) == 1:
        return matches[0]

    for category in categories:
        if re.search(rf"\b{re.escape(category.lower())}\b", lowered):
            return category

    return categories[0]


def prepare_categories(
    categories: Sequence[str],
    descriptions: Sequence[str | None] | Mapping[str, str] | None = None,
) -> tuple[list[str], dict[str, str] | None]:
    """Validate the category set and pair it with its descriptions.

    Duplicate labels trigger a ``ClassificationWarning``; each label keeps the
    position of its first occurrence and the description of its last.

    Returns:
        Tuple of (unique labels, label -> description or None)

    Raises:
        ConfigurationError: If fewer than two distinct labels remain
    """
    if isinstance(categories, str):
        raise ConfigurationError("categories must be a sequence of labels, not a string")
    labels = [str(c) for c in categories]

    if isinstance(descriptions, Mapping):
        paired = {label: descriptions.get(label) for label in labels}
    elif descriptions is not None:
        descriptions = list(descriptions)
        if len(descriptions) != len(labels):
            raise ConfigurationError("descriptions must have one entry per category")
        paired = dict(zip(labels, descriptions))
    else:
        paired = dict.fromkeys(labels)

    if len(paired) != len(labels):
        warnings.warn(
            "Duplicate category labels detected; keeping the last description of each.",
            ClassificationWarning,
            stacklevel=3,
        )
    if len(paired) < 2:
        raise ConfigurationError("At least two distinct categories are required")

    cleaned = {
        label: str(description)
        for label, description in paired.items()
        if description is not None and not pd.isna(description)
    }
    return list(paired), (cleaned if descriptions is not None else None)


def build_distribution_model(categories: Sequence[str]) -> Type[BaseModel]:
    """Create the response schema for a probability distribution over ``categories``."""
    label_type = Literal[tuple(categories)]  # type: ignore[valid-type]
    entry = create_model(
        "CategoryProbability",
        category=(label_type, Field(description="One of the allowed labels")),
        probability=(
            float,
            Field(ge=0.0, le=1.0, description="Probability that the text belongs to the label"),
        ),
    )
    return create_model(
        "CategoryDistribution",
        probabilities=(
            list[entry],  # type: ignore[valid-type]
            Field(description="One entry per allowed label"),
        ),
    )


# ============================================================================
# Classifier
# ============================================================================


class LLMClassifier:
    """Classifies texts into a closed set of labels with a chat model.

    Holds the model parameters and the API key so they are passed explicitly
    instead of living in process-wide state. Requests are sent one at a time
    and failures are never retried unless ``max_retries`` is set.

    Args:
        model: Model identifier in format "provider/model-name"
            Examples: "openai/gpt-4o-mini", "anthropic/claude-3-5-haiku-latest"
        api_key: Optional API key (defaults to the OPENAI_API_KEY variable)
        temperature: Sampling temperature, 0 for deterministic outputs
        timeout: Per-request timeout in seconds
        max_retries: Extra attempts after a transport failure (default: 0)
        **client_kwargs: Additional kwargs passed to the Instructor client

    Example:
        >>> clf = LLMClassifier(model="openai/gpt-4o-mini")
        >>> clf.classify_one("siamese kitty", ["cat", "dog", "bird"])
        'cat'
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        api_key: str | None = None,
        temperature: float = 0.0,
        timeout: float = 60.0,
        max_retries: int = 0,
        **client_kwargs: Any,
    ):
        self.temperature = temperature
        self.chat = ChatClient(
            model,
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            **client_kwargs,
        )

    @property
    def model(self) -> str:
        return self.chat.model

    @classmethod
    def from_settings(
        cls, settings: ClassifierSettings | None = None, **kwargs: Any
    ) -> "LLMClassifier":
        """Build a classifier from ``ClassifierSettings`` (read from the environment by default)."""
        settings = settings or ClassifierSettings()
        return cls(
            model=settings.model,
            temperature=settings.temperature,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
            **kwargs,
        )

    def classify_one(
        self,
        text: str,
        categories: Sequence[str],
        descriptions: Mapping[str, str] | None = None,
    ) -> str:
        """Classify a single text and return one of ``categories``."""
        messages = build_messages(text, categories, descriptions)
        reply = self.chat.complete(messages, temperature=self.temperature)
        label = normalize_label(reply, categories)
        if label != reply:
            logger.debug("Normalized reply %r to %r", reply, label)
        return label

    def predict_probabilities(
        self,
        text: str,
        categories: Sequence[str],
        descriptions: Mapping[str, str] | None = None,
    ) -> Distribution:
        """Ask the model for a probability per category.

        Categories the model leaves out are reported as None. The numbers are
        the model's own estimates and are not calibrated.
        """
        messages = build_messages(text, categories, descriptions, DISTRIBUTION_USER_PROMPT)
        response = self.chat.structured(
            messages,
            build_distribution_model(categories),
            temperature=self.temperature,
        )
        given = {entry.category: entry.probability for entry in response.probabilities}
        return Distribution({category: given.get(category) for category in categories})

    def classify(
        self,
        texts: Sequence[str | None],
        categories: Sequence[str],
        descriptions: Mapping[str, str] | None = None,
        batch_size: int = 1,
        delay: float = 0.0,
        verbose: bool = False,
    ) -> list[str]:
        """Classify every text in order; see ``classify_vector``."""
        texts = coerce_texts(texts)
        labels, descriptions = prepare_categories(categories, descriptions)
        return run_in_batches(
            texts,
            lambda text: self.classify_one(text, labels, descriptions),
            batch_size=batch_size,
            delay=delay,
            verbose=verbose,
        )


def coerce_texts(texts: Any) -> list[str]:
    """Convert the inputs to strings, sending missing values as empty text."""
    if isinstance(texts, str):
        raise ConfigurationError("x must be a sequence of strings, not a single string")
    if not pd.api.types.is_list_like(texts):
        raise ConfigurationError("x must be a sequence of strings")
    return ["" if value is None or pd.isna(value) else str(value) for value in texts]


def classify_vector(
    x: Sequence[str | None],
    categories: Sequence[str],
    model: str = DEFAULT_MODEL,
    temperature: float = 0.0,
    batch_size: int = 1,
    delay: float = 0.0,
    verbose: bool = False,
    *,
    descriptions: Sequence[str | None] | Mapping[str, str] | None = None,
    classifier: LLMClassifier | None = None,
    categorical: bool = False,
) -> list[str] | pd.Categorical:
    """Classify a sequence of texts into predefined categories.

    Each element is sent to the model with a strict instruction to return
    exactly one label; the reply is normalized onto ``categories``.

    Args:
        x: Texts to classify (list, tuple or pandas Series)
        categories: Allowed labels; the first one is the fallback
        model: Model identifier, ignored when ``classifier`` is given
        temperature: Sampling temperature, ignored when ``classifier`` is given
        batch_size: Items per pacing group (default: 1)
        delay: Seconds to sleep between groups (default: 0)
        verbose: Log progress at INFO level
        descriptions: Optional descriptions, as a list aligned with
            ``categories`` or a mapping from label
        classifier: Preconfigured classifier to use
        categorical: Return a ``pandas.Categorical`` with the category set as
            its categories instead of a list

    Returns:
        One label per input, aligned with ``x``

    Raises:
        ConfigurationError: For invalid inputs, before any request is sent
        MissingAPIKeyError: If no API key is configured
        ProviderError: If the provider reports an error
    """
    texts = coerce_texts(x)
    labels, paired = prepare_categories(categories, descriptions)
    classifier = classifier or LLMClassifier(model=model, temperature=temperature)

    predictions = classifier.classify(
        texts,
        labels,
        paired,
        batch_size=batch_size,
        delay=delay,
        verbose=verbose,
    )
    if categorical:
        return pd.Categorical(predictions, categories=labels)
    return predictions
