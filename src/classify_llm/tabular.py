"""Classify the text column of a DataFrame against a table of categories."""

import sys
import warnings
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import pandas as pd
from tqdm.auto import tqdm

from .batch import run_in_batches
from .classifier import LLMClassifier, coerce_texts, prepare_categories
from .config import DEFAULT_MODEL
from .exceptions import ClassificationWarning, ConfigurationError
from .log import get_logger
from .results import (
    RowResult,
    TopPrediction,
    coerce_result,
    to_distribution,
    to_top_prediction,
)

logger = get_logger(__name__)

PRED_CATEGORY_COLUMN = ".pred_category"
PRED_SCORE_COLUMN = ".pred_score"
CATEGORY_COLUMN = ".category"
PROB_COLUMN = ".prob"

RowClassifier = Callable[[str, Sequence[str], Mapping[str, str] | None], Any]


def _validate_inputs(
    data: Any,
    text_column: str,
    categories: Any,
    category_column: str,
    id_column: str | None,
) -> None:
    if not isinstance(data, pd.DataFrame):
        raise ConfigurationError("data must be a pandas DataFrame")
    if not isinstance(categories, pd.DataFrame):
        raise ConfigurationError("categories must be a pandas DataFrame")
    if category_column not in categories.columns:
        raise ConfigurationError(f"categories must have a column '{category_column}'")
    if text_column not in data.columns:
        raise ConfigurationError(f"data does not have a text column '{text_column}'")
    if id_column is not None and id_column not in data.columns:
        raise ConfigurationError(f"data does not have an id column '{id_column}'")


def _wide_frame(
    data: pd.DataFrame, results: list[RowResult], category_column: str
) -> pd.DataFrame:
    tops = [to_top_prediction(r, category_column) for r in results]
    out = data.copy()
    out[PRED_CATEGORY_COLUMN] = pd.Series(
        [t.label for t in tops], index=data.index, dtype="object"
    )
    out[PRED_SCORE_COLUMN] = pd.Series(
        [t.score for t in tops], index=data.index, dtype="float64"
    )
    return out


def _long_frame(
    data: pd.DataFrame, results: list[RowResult], category_column: str
) -> pd.DataFrame:
    pieces = []
    fallbacks = 0
    for position, result in enumerate(results):
        probabilities = to_distribution(result, category_column)
        if probabilities:
            rows = list(probabilities.items())
        else:
            fallbacks += 1
            top = to_top_prediction(result, category_column)
            rows = [(top.label, top.score)]

        block = data.iloc[[position] * len(rows)].reset_index(drop=True)
        block[CATEGORY_COLUMN] = pd.Series([c for c, _ in rows], dtype="object")
        block[PROB_COLUMN] = pd.Series([p for _, p in rows], dtype="float64")
        pieces.append(block)

    if fallbacks:
        warnings.warn(
            f"Could not extract probabilities for {fallbacks} row(s); "
            "falling back to the top prediction for those.",
            ClassificationWarning,
            stacklevel=3,
        )

    if not pieces:
        out = data.iloc[0:0].reset_index(drop=True)
        out[CATEGORY_COLUMN] = pd.Series(dtype="object")
        out[PROB_COLUMN] = pd.Series(dtype="float64")
        return out
    return pd.concat(pieces, ignore_index=True)


def classify_table(
    data: pd.DataFrame,
    text_column: str,
    categories: pd.DataFrame,
    category_column: str = "category",
    description_column: str | None = "description",
    id_column: str | None = None,
    return_probabilities: bool = False,
    show_progress: bool | None = None,
    *,
    classifier: LLMClassifier | None = None,
    row_classifier: RowClassifier | None = None,
    model: str = DEFAULT_MODEL,
    temperature: float = 0.0,
    batch_size: int = 1,
    delay: float = 0.0,
    verbose: bool = False,
) -> pd.DataFrame:
    """Classify a text column using categories defined in a DataFrame.

    Args:
        data: DataFrame containing the texts
        text_column: Column of ``data`` holding the text to classify
        categories: DataFrame of category definitions
        category_column: Column of ``categories`` with the labels (default: "category")
        description_column: Column of ``categories`` with descriptions. If it is
            missing a warning is issued and classification proceeds without them.
        id_column: Optional identifier column of ``data`` moved to the front
        return_probabilities: Return one row per text and category with its
            probability instead of one row per text
        show_progress: Show a progress bar; defaults to True on a terminal
        classifier: Preconfigured classifier (built from ``model`` and
            ``temperature`` when omitted)
        row_classifier: Custom ``(text, categories, descriptions)`` callable
            replacing the classifier. It may return a label, a
            ``{"label", "score"}`` mapping, a probability mapping or Series,
            or a DataFrame.
        model: Model identifier
        temperature: Sampling temperature
        batch_size: Items per pacing group
        delay: Seconds to sleep between groups
        verbose: Log progress at INFO level

    Returns:
        With ``return_probabilities=False``: ``data`` plus ``.pred_category``
        and ``.pred_score``. Otherwise a long table with ``data`` columns plus
        ``.category`` and ``.prob``.

    Example:
        >>> texts = pd.DataFrame({"id": [1, 2], "content": ["kitty", "puppy"]})
        >>> cats = pd.DataFrame({"category": ["cat", "dog"]})
        >>> classify_table(texts, "content", cats, id_column="id")
    """
    _validate_inputs(data, text_column, categories, category_column, id_column)

    if description_column is not None and description_column not in categories.columns:
        warnings.warn(
            f"description_column='{description_column}' not found; "
            "proceeding without descriptions.",
            ClassificationWarning,
            stacklevel=2,
        )
        description_column = None

    descriptions = (
        categories[description_column].tolist() if description_column is not None else None
    )
    labels, paired = prepare_categories(categories[category_column].tolist(), descriptions)
    texts = coerce_texts(data[text_column])

    if row_classifier is None:
        classifier = classifier or LLMClassifier(model=model, temperature=temperature)
        if return_probabilities:
            row_classifier = classifier.predict_probabilities
        else:
            def classify_top(text, cats, descs):
                return TopPrediction(classifier.classify_one(text, cats, descs))

            row_classifier = classify_top

    if show_progress is None:
        show_progress = sys.stderr.isatty()

    logger.debug("Classifying %d rows into %d categories", len(texts), len(labels))
    with tqdm(total=len(texts), disable=not show_progress, desc="Classifying") as progress:
        raw = run_in_batches(
            texts,
            lambda text: row_classifier(text, labels, paired),
            batch_size=batch_size,
            delay=delay,
            verbose=verbose,
            progress=progress,
        )
    results = [coerce_result(r) for r in raw]

    if return_probabilities:
        out = _long_frame(data, results, category_column)
    else:
        out = _wide_frame(data, results, category_column)

    if id_column is not None:
        out = out[[id_column] + [c for c in out.columns if c != id_column]]
    return out
