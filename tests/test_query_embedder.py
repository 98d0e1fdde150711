"""Tests for the query embedder (model replaced by a stub).

Author: Hay Hoffman
"""

import sys
import types

import numpy as np
import pytest
from src.embeddings.query_embedder import QueryEmbedder


class StubModel:
    def __init__(self, dimension: int, value: float = 0.5):
        self.dimension = dimension
        self.value = value
        self.inputs: list[str] = []

    def encode(self, text: str):
        self.inputs.append(text)
        return np.full(self.dimension, self.value, dtype=np.float32)


@pytest.fixture
def model_cache(monkeypatch):
    """Isolated per-model cache for each test."""
    cache: dict[str, StubModel] = {}
    monkeypatch.setattr(QueryEmbedder, "_embedding_models", cache)
    return cache


class TestQueryEmbedder:
    """Tests for question embedding."""

    def test_returns_float_list(self, model_cache):
        model = StubModel(4)
        model_cache["stub-model"] = model

        vector = QueryEmbedder("stub-model", dimension=4)("Where is auth handled?")

        assert vector == [0.5, 0.5, 0.5, 0.5]
        assert model.inputs == ["Where is auth handled?"]

    def test_dimension_mismatch_raises(self, model_cache):
        model_cache["stub-model"] = StubModel(3)

        with pytest.raises(ValueError):
            QueryEmbedder("stub-model", dimension=4).embed("auth")

    def test_each_model_name_uses_its_own_model(self, model_cache):
        model_cache["model-a"] = StubModel(4, value=0.25)
        model_cache["model-b"] = StubModel(4, value=0.75)

        first = QueryEmbedder("model-a", dimension=4).embed("auth")
        second = QueryEmbedder("model-b", dimension=4).embed("auth")

        assert first == [0.25] * 4
        assert second == [0.75] * 4

    def test_models_are_loaded_once_per_name(self, model_cache, monkeypatch):
        loaded: list[str] = []

        def fake_sentence_transformer(name: str):
            loaded.append(name)
            return StubModel(4)

        fake_module = types.SimpleNamespace(SentenceTransformer=fake_sentence_transformer)
        monkeypatch.setitem(sys.modules, "sentence_transformers", fake_module)

        QueryEmbedder("model-a", dimension=4).embed("one")
        QueryEmbedder("model-b", dimension=4).embed("two")
        QueryEmbedder("model-a", dimension=4).embed("three")

        assert loaded == ["model-a", "model-b"]
        assert set(model_cache) == {"model-a", "model-b"}
