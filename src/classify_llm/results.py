"""Per-row result variants and the conversions between them."""

import numbers
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

import pandas as pd

PROBABILITY_COLUMNS = ("prob", "probability")


# ============================================================================
# Result Types
# ============================================================================


@dataclass(frozen=True)
class TopPrediction:
    """A single predicted label.

    Attributes:
        label: The predicted category, None when it could not be determined
        score: Opaque score passed through from the model, None when absent
    """

    label: str | None
    score: float | None = None


@dataclass(frozen=True)
class Distribution:
    """Weights per category, in category order.

    Attributes:
        probabilities: Mapping of category label to weight (None when missing)
    """

    probabilities: dict[str, float | None] = field(default_factory=dict)


@dataclass(frozen=True)
class TableResult:
    """A tabular result returned by a custom row classifier.

    Attributes:
        frame: Either a (category, prob) table or a row with a ``label`` column
    """

    frame: pd.DataFrame


RowResult = Union[TopPrediction, Distribution, TableResult]


# ============================================================================
# Coercion
# ============================================================================


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _as_score(value: Any) -> float | None:
    if _is_missing(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _is_numeric(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def coerce_result(raw: Any) -> RowResult:
    """Turn whatever a row classifier returned into a result variant."""
    if isinstance(raw, (TopPrediction, Distribution, TableResult)):
        return raw
    if isinstance(raw, pd.DataFrame):
        return TableResult(raw)
    if isinstance(raw, pd.Series):
        if pd.api.types.is_numeric_dtype(raw.dtype):
            return Distribution({str(k): _as_score(v) for k, v in raw.items()})
        return TopPrediction(None)
    if isinstance(raw, str):
        return TopPrediction(raw)
    if isinstance(raw, Mapping):
        if "label" in raw:
            label = raw["label"]
            return TopPrediction(
                None if _is_missing(label) else str(label), _as_score(raw.get("score"))
            )
        for key in ("probs", "probabilities"):
            if isinstance(raw.get(key), Mapping):
                return coerce_result(dict(raw[key]))
        if raw and all(_is_numeric(v) or v is None for v in raw.values()):
            return Distribution({str(k): _as_score(v) for k, v in raw.items()})
    return TopPrediction(None)


# ============================================================================
# Conversions
# ============================================================================


def to_distribution(
    result: RowResult, category_column: str = "category"
) -> dict[str, float | None] | None:
    """Return the per-category weights of a result, or None if it has none."""
    if isinstance(result, Distribution):
        return dict(result.probabilities)
    if isinstance(result, TableResult):
        frame = result.frame
        prob_column = next((c for c in PROBABILITY_COLUMNS if c in frame.columns), None)
        if prob_column is None:
            return None
        for column in (category_column, "category"):
            if column in frame.columns:
                return {
                    str(cat): _as_score(prob)
                    for cat, prob in zip(frame[column], frame[prob_column])
                }
    return None


def to_top_prediction(result: RowResult, category_column: str = "category") -> TopPrediction:
    """Reduce a result to its top label and score.

    Priority: an explicit label, then the arg-max of a distribution, then the
    ``label``/``score`` columns of a table. Ties in the arg-max go to the first
    category; missing weights are ignored.
    """
    if isinstance(result, TopPrediction):
        return result

    probabilities = to_distribution(result, category_column)
    if probabilities is not None:
        scored = [(cat, p) for cat, p in probabilities.items() if p is not None]
        if not scored:
            return TopPrediction(None)
        best = max(scored, key=lambda item: item[1])
        return TopPrediction(best[0], best[1])

    if isinstance(result, TableResult) and "label" in result.frame.columns:
        frame = result.frame
        if len(frame) == 0:
            return TopPrediction(None)
        score = frame["score"].iloc[0] if "score" in frame.columns else None
        return TopPrediction(str(frame["label"].iloc[0]), _as_score(score))

    return TopPrediction(None)
