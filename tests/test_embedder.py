"""
Tests for the embedding providers.

Tests the truncation cascade and the OpenAI client wrapper:
- Context-length errors retried at 1000 then 500 chars
- Any other error propagates on the first attempt
- Exhausted cascade raises EmbeddingContextLengthError
- OpenAIEmbedder maps SDK errors and tracks usage (mocked client)

Usage:
    pytest tests/test_embedder.py -v
"""

from typing import List
from unittest.mock import Mock

import openai
import pytest

from src.config import EmbeddingConfig
from src.search.embedder import (
    EmbeddingContextLengthError,
    EmbeddingError,
    EmbeddingProvider,
    OpenAIEmbedder,
    is_context_length_error,
)


class LimitedEmbedder(EmbeddingProvider):
    """Rejects inputs longer than max_chars with a context-length error."""

    def __init__(self, max_chars: int):
        self.max_chars = max_chars
        self.lengths: List[int] = []

    def embed_query(self, text):
        self.lengths.append(len(text))
        if len(text) > self.max_chars:
            raise EmbeddingContextLengthError("maximum context length exceeded", len(text))
        return [float(len(text))]

    def embed_texts(self, texts):
        return [self.embed_query(t) for t in texts]


def make_openai_response(vectors, tokens=7):
    response = Mock()
    response.usage.total_tokens = tokens
    response.data = [Mock(embedding=v) for v in vectors]
    return response


def make_config(**overrides) -> EmbeddingConfig:
    values = dict(api_key="sk-test", model="text-embedding-3-small", dimensions=1536, truncation_steps=[1000, 500])
    values.update(overrides)
    return EmbeddingConfig(**values)


# ============================================================================
# TRUNCATION CASCADE
# ============================================================================

class TestEmbedWithTruncation:

    def test_short_text_single_attempt(self):
        embedder = LimitedEmbedder(max_chars=2000)
        result = embedder.embed_with_truncation("x" * 300)

        assert embedder.lengths == [300]
        assert result.truncated_to is None

    def test_retries_at_1000(self):
        embedder = LimitedEmbedder(max_chars=1000)
        result = embedder.embed_with_truncation("x" * 1500)

        assert embedder.lengths == [1500, 1000]
        assert result.truncated_to == 1000
        assert result.embedding == [1000.0]

    def test_retries_at_500(self):
        embedder = LimitedEmbedder(max_chars=600)
        result = embedder.embed_with_truncation("x" * 1500)

        assert embedder.lengths == [1500, 1000, 500]
        assert result.truncated_to == 500

    def test_skips_steps_longer_than_text(self):
        embedder = LimitedEmbedder(max_chars=600)
        embedder.embed_with_truncation("x" * 800)
        assert embedder.lengths == [800, 500]

    def test_exhausted_raises(self):
        embedder = LimitedEmbedder(max_chars=100)
        with pytest.raises(EmbeddingContextLengthError) as exc_info:
            embedder.embed_with_truncation("x" * 1500)
        assert exc_info.value.text_length == 1500
        assert embedder.lengths == [1500, 1000, 500]

    def test_other_errors_propagate_immediately(self):
        embedder = LimitedEmbedder(max_chars=100)
        embedder.embed_query = Mock(side_effect=EmbeddingError("quota exceeded"))

        with pytest.raises(EmbeddingError, match="quota exceeded"):
            embedder.embed_with_truncation("x" * 1500)
        assert embedder.embed_query.call_count == 1


class TestContextLengthDetection:

    @pytest.mark.parametrize("exc,expected", [
        (EmbeddingContextLengthError("too long"), True),
        (Exception("This model's maximum context length is 8192 tokens"), True),
        (Exception("rate limit reached"), False),
    ])
    def test_detection(self, exc, expected):
        assert is_context_length_error(exc) is expected

    def test_error_code(self):
        exc = Exception("bad request")
        exc.code = "context_length_exceeded"
        assert is_context_length_error(exc) is True


# ============================================================================
# OPENAI EMBEDDER
# ============================================================================

class TestOpenAIEmbedder:

    def setup_method(self):
        self.client = Mock()
        self.embedder = OpenAIEmbedder(make_config(), client=self.client)

    def test_requires_key_without_client(self):
        with pytest.raises(ValueError):
            OpenAIEmbedder(make_config(api_key=None))

    def test_embed_query(self):
        self.client.embeddings.create.return_value = make_openai_response([[0.1, 0.2]])

        assert self.embedder.embed_query("beam schedule") == [0.1, 0.2]
        self.client.embeddings.create.assert_called_once_with(
            model="text-embedding-3-small",
            input="beam schedule",
            dimensions=1536,
        )
        assert self.embedder.total_tokens == 7
        assert self.embedder.total_requests == 1

    def test_empty_text_rejected(self):
        with pytest.raises(ValueError):
            self.embedder.embed_query("   ")

    def test_embed_texts_batches_in_order(self):
        self.client.embeddings.create.side_effect = [
            make_openai_response([[1.0], [2.0]]),
            make_openai_response([[3.0]]),
        ]
        vectors = self.embedder.embed_texts(["a", "b", "c"], batch_size=2)

        assert vectors == [[1.0], [2.0], [3.0]]
        assert self.client.embeddings.create.call_count == 2

    def test_context_error_mapped(self):
        self.client.embeddings.create.side_effect = openai.OpenAIError(
            "This model's maximum context length is 8192 tokens"
        )
        with pytest.raises(EmbeddingContextLengthError):
            self.embedder.embed_query("x" * 50)

    def test_other_sdk_error_mapped(self):
        self.client.embeddings.create.side_effect = openai.OpenAIError("rate limit reached")
        with pytest.raises(EmbeddingError) as exc_info:
            self.embedder.embed_query("beam")
        assert not isinstance(exc_info.value, EmbeddingContextLengthError)

    def test_truncation_steps_from_config(self):
        embedder = OpenAIEmbedder(make_config(truncation_steps=[500, 1000, 500]), client=self.client)
        assert embedder.truncation_steps == (1000, 500)
