"""Tests for classify_table."""

from unittest.mock import MagicMock, patch

import pandas as pd
import pytest

from classify_llm import ClassificationWarning, ConfigurationError, classify_table
from classify_llm.classifier import build_distribution_model

CATS = ["cat", "dog", "bird"]


def reply(text):
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


@pytest.fixture
def texts():
    return pd.DataFrame(
        {
            "content": ["siamese kitty", "golden retriever", "parakeet"],
            "id": [10, 20, 30],
        }
    )


@pytest.fixture
def categories():
    return pd.DataFrame(
        {
            "category": CATS,
            "description": ["Felines", "Canines", "Anything with feathers"],
        }
    )


@pytest.fixture
def mock_client(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    with patch("classify_llm.chat.instructor.from_provider") as mock_provider:
        client = MagicMock()
        mock_provider.return_value = client
        yield client


# ============================================================================
# Wide Mode Tests
# ============================================================================


class TestWideMode:
    def test_appends_prediction_columns(self, mock_client, texts, categories):
        mock_client.chat.completions.create.side_effect = [
            reply("cat"),
            reply("Golden retriever is a DOG"),
            reply("I'm not sure"),
        ]
        out = classify_table(texts, "content", categories, show_progress=False)

        assert list(out.columns) == ["content", "id", ".pred_category", ".pred_score"]
        assert out[".pred_category"].tolist() == ["cat", "dog", "cat"]
        assert out[".pred_score"].isna().all()
        pd.testing.assert_frame_equal(out[["content", "id"]], texts)

    def test_descriptions_reach_the_prompt(self, mock_client, texts, categories):
        mock_client.chat.completions.create.return_value = reply("cat")
        classify_table(texts.head(1), "content", categories, show_progress=False)

        system = mock_client.chat.completions.create.call_args[1]["messages"][0]["content"]
        assert "- bird: Anything with feathers" in system

    def test_id_column_moved_first(self, mock_client, texts, categories):
        mock_client.chat.completions.create.return_value = reply("bird")
        out = classify_table(texts, "content", categories, id_column="id", show_progress=False)
        assert out.columns[0] == "id"

    def test_custom_row_classifier_with_scores(self, texts, categories):
        def row_classifier(text, cats, descriptions):
            return {"label": "dog", "score": 0.87}

        out = classify_table(
            texts, "content", categories, row_classifier=row_classifier, show_progress=False
        )
        assert out[".pred_category"].tolist() == ["dog"] * 3
        assert out[".pred_score"].tolist() == [0.87] * 3

    def test_non_numeric_score_does_not_abort(self, texts, categories):
        out = classify_table(
            texts,
            "content",
            categories,
            row_classifier=lambda *_: {"label": "dog", "score": "high"},
            show_progress=False,
        )
        assert out[".pred_category"].tolist() == ["dog"] * 3
        assert out[".pred_score"].isna().all()

    def test_distribution_reduced_to_argmax(self, texts, categories):
        out = classify_table(
            texts.head(1),
            "content",
            categories,
            row_classifier=lambda *_: {"cat": 0.2, "dog": 0.7, "bird": 0.1},
            show_progress=False,
        )
        assert out[".pred_category"].tolist() == ["dog"]
        assert out[".pred_score"].tolist() == [0.7]

    def test_batches_pause_between_groups(self, mock_client, texts, categories):
        mock_client.chat.completions.create.return_value = reply("cat")
        with patch("classify_llm.batch.time.sleep") as mock_sleep:
            classify_table(
                texts, "content", categories, batch_size=2, delay=2, show_progress=False
            )
        mock_sleep.assert_called_once_with(2)


# ============================================================================
# Long Mode Tests
# ============================================================================


class TestLongMode:
    def test_one_row_per_category(self, texts, categories):
        out = classify_table(
            texts.head(1),
            "content",
            categories,
            return_probabilities=True,
            row_classifier=lambda *_: {"cat": 0.2, "dog": 0.7, "bird": 0.1},
            show_progress=False,
        )
        assert len(out) == 3
        assert out["content"].tolist() == ["siamese kitty"] * 3
        assert dict(zip(out[".category"], out[".prob"])) == {"cat": 0.2, "dog": 0.7, "bird": 0.1}

    def test_uses_model_probabilities(self, mock_client, texts, categories):
        schema = build_distribution_model(CATS)
        mock_client.chat.completions.create.return_value = schema(
            probabilities=[
                {"category": "cat", "probability": 0.9},
                {"category": "dog", "probability": 0.05},
                {"category": "bird", "probability": 0.05},
            ]
        )
        out = classify_table(
            texts, "content", categories, id_column="id", return_probabilities=True,
            show_progress=False,
        )
        assert len(out) == 9
        assert out.columns[0] == "id"
        assert out[".category"].tolist() == CATS * 3
        assert out["id"].tolist() == [10] * 3 + [20] * 3 + [30] * 3

    def test_rows_without_distribution_fall_back(self, texts, categories):
        results = iter([
            {"cat": 0.2, "dog": 0.7, "bird": 0.1},
            {"label": "dog", "score": 0.6},
            "bird",
        ])

        with pytest.warns(ClassificationWarning, match="2 row"):
            out = classify_table(
                texts,
                "content",
                categories,
                return_probabilities=True,
                row_classifier=lambda *_: next(results),
                show_progress=False,
            )

        assert len(out) == 5
        tail = out.iloc[3:]
        assert tail[".category"].tolist() == ["dog", "bird"]
        assert tail[".prob"].iloc[0] == 0.6
        assert pd.isna(tail[".prob"].iloc[1])

    def test_missing_label_does_not_invent_categories(self, texts, categories):
        with pytest.warns(ClassificationWarning, match="1 row"):
            out = classify_table(
                texts.head(1),
                "content",
                categories,
                return_probabilities=True,
                row_classifier=lambda *_: {"label": None, "score": 0.5},
                show_progress=False,
            )
        assert len(out) == 1
        assert pd.isna(out[".category"].iloc[0])
        assert out[".prob"].iloc[0] == 0.5

    def test_table_results(self, texts, categories):
        frame = pd.DataFrame({"category": ["cat", "dog", "bird"], "prob": [0.1, 0.1, 0.8]})
        out = classify_table(
            texts.head(2),
            "content",
            categories,
            return_probabilities=True,
            row_classifier=lambda *_: frame,
            show_progress=False,
        )
        assert len(out) == 6
        assert out[".prob"].tolist() == [0.1, 0.1, 0.8] * 2

    def test_empty_input(self, categories):
        data = pd.DataFrame({"content": pd.Series([], dtype="object")})
        out = classify_table(
            data, "content", categories, return_probabilities=True,
            row_classifier=lambda *_: "cat", show_progress=False,
        )
        assert list(out.columns) == ["content", ".category", ".prob"]
        assert len(out) == 0


# ============================================================================
# Validation Tests
# ============================================================================


class TestValidation:
    @pytest.fixture
    def mock_provider(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        with patch("classify_llm.chat.instructor.from_provider") as mock:
            yield mock

    def test_data_must_be_dataframe(self, mock_provider, categories):
        with pytest.raises(ConfigurationError, match="data must be"):
            classify_table(["kitty"], "content", categories)
        mock_provider.assert_not_called()

    def test_categories_must_be_dataframe(self, mock_provider, texts):
        with pytest.raises(ConfigurationError, match="categories must be"):
            classify_table(texts, "content", CATS)

    def test_missing_category_column(self, mock_provider, texts, categories):
        with pytest.raises(ConfigurationError, match="'label'"):
            classify_table(texts, "content", categories, category_column="label")

    def test_missing_text_column(self, mock_provider, texts, categories):
        with pytest.raises(ConfigurationError, match="'body'"):
            classify_table(texts, "body", categories)
        mock_provider.assert_not_called()

    def test_missing_id_column(self, mock_provider, texts, categories):
        with pytest.raises(ConfigurationError, match="'uid'"):
            classify_table(texts, "content", categories, id_column="uid")

    def test_too_few_categories(self, mock_provider, texts):
        with pytest.raises(ConfigurationError):
            classify_table(texts, "content", pd.DataFrame({"category": ["cat"]}))
        mock_provider.assert_not_called()

    def test_missing_description_column_warns(self, mock_client, texts):
        mock_client.chat.completions.create.return_value = reply("cat")
        cats = pd.DataFrame({"category": CATS})
        with pytest.warns(ClassificationWarning, match="proceeding without descriptions"):
            out = classify_table(texts, "content", cats, show_progress=False)
        assert len(out) == 3

    def test_no_description_column_requested(self, mock_client, texts, recwarn):
        mock_client.chat.completions.create.return_value = reply("cat")
        cats = pd.DataFrame({"category": CATS})
        classify_table(texts, "content", cats, description_column=None, show_progress=False)
        assert not [w for w in recwarn if issubclass(w.category, ClassificationWarning)]

    def test_duplicate_categories_warn(self, mock_client, texts):
        mock_client.chat.completions.create.return_value = reply("cat")
        cats = pd.DataFrame({"category": ["cat", "dog", "cat"]})
        with pytest.warns(ClassificationWarning, match="Duplicate"):
            classify_table(texts, "content", cats, description_column=None, show_progress=False)
        user = mock_client.chat.completions.create.call_args[1]["messages"][1]["content"]
        assert user.endswith("Pick exactly one of: cat, dog")

    def test_failure_returns_no_partial_output(self, mock_client, texts, categories):
        mock_client.chat.completions.create.side_effect = [reply("cat"), TimeoutError()]
        with pytest.raises(TimeoutError):
            classify_table(texts, "content", categories, show_progress=False)
