"""
Query / Excerpt Embedder
========================

Generates embeddings using OpenAI text-embedding-3-small.
1536 dimensions, optimized for cost/latency.

Inputs that overflow the model's context window are retried with shorter
prefixes (full text -> 1000 chars -> 500 chars) before the failure is
surfaced to the caller.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

import openai

from ..config import EmbeddingConfig

logger = logging.getLogger(__name__)


class EmbeddingError(Exception):
    """Base exception for embedding provider errors."""
    pass


class EmbeddingContextLengthError(EmbeddingError):
    """Input exceeds the provider's context window."""

    def __init__(self, message: str, text_length: Optional[int] = None):
        self.text_length = text_length
        super().__init__(message)


def is_context_length_error(exc: Exception) -> bool:
    """True when a provider error reports a context-length overflow."""
    if isinstance(exc, EmbeddingContextLengthError):
        return True
    code = getattr(exc, "code", None)
    if code == "context_length_exceeded":
        return True
    message = str(exc).lower()
    return "context length" in message or "maximum context" in message


@dataclass
class EmbeddingResult:
    """Result of embedding generation."""
    embedding: List[float]
    token_count: int
    model: str
    truncated_to: Optional[int] = None


class EmbeddingProvider(ABC):
    """Turns query text and excerpts into vectors."""

    truncation_steps: Sequence[int] = (1000, 500)

    @abstractmethod
    def embed_query(self, text: str) -> List[float]:
        """Embed a single query string."""

    @abstractmethod
    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed several excerpts, preserving order."""

    def embed_with_truncation(self, text: str) -> EmbeddingResult:
        """
        Embed text, shortening it on context-length errors.

        Tries the full text, then each truncation step in turn. Any error
        other than a context-length overflow propagates immediately.

        Raises:
            EmbeddingContextLengthError: If the shortest prefix still overflows
        """
        attempts: List[Optional[int]] = [None]
        attempts.extend(step for step in self.truncation_steps if step < len(text))

        last_error: Optional[Exception] = None
        for limit in attempts:
            candidate = text if limit is None else text[:limit]
            try:
                vector = self.embed_query(candidate)
            except Exception as e:
                if not is_context_length_error(e):
                    raise
                last_error = e
                logger.warning(
                    f"Embedding input of {len(candidate)} chars exceeds context length, truncating"
                )
                continue
            return EmbeddingResult(
                embedding=vector,
                token_count=0,
                model=getattr(self, "model", "unknown"),
                truncated_to=limit,
            )

        raise EmbeddingContextLengthError(
            f"Text still exceeds context length after truncation to {attempts[-1]} chars: {last_error}",
            text_length=len(text),
        )


class OpenAIEmbedder(EmbeddingProvider):
    """
    Generates embeddings using OpenAI text-embedding-3-small.

    Cost: ~$0.00002 per 1K tokens (very cheap)
    Dimensions: 1536
    Max tokens: 8191
    """

    def __init__(self, config: Optional[EmbeddingConfig] = None, client=None):
        self.config = config if config is not None else EmbeddingConfig()
        if client is None and not self.config.api_key:
            raise ValueError("OpenAI API key required for embeddings")

        self.model = self.config.model
        self.dimensions = self.config.dimensions
        self.truncation_steps = tuple(self.config.truncation_steps)

        self._client = client
        self._total_tokens = 0
        self._total_requests = 0

    @property
    def client(self):
        if self._client is None:
            self._client = openai.OpenAI(api_key=self.config.api_key)
        return self._client

    def _create(self, inputs):
        try:
            response = self.client.embeddings.create(
                model=self.model,
                input=inputs,
                dimensions=self.dimensions,
            )
        except openai.OpenAIError as e:
            if is_context_length_error(e):
                raise EmbeddingContextLengthError(str(e)) from e
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        self._total_tokens += response.usage.total_tokens
        self._total_requests += 1
        return response

    def embed(self, text: str) -> EmbeddingResult:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed (max 8191 tokens)

        Returns:
            EmbeddingResult with embedding vector
        """
        if not text.strip():
            raise ValueError("Cannot embed empty text")

        response = self._create(text)
        token_count = response.usage.total_tokens
        logger.debug(f"Embedded {token_count} tokens")

        return EmbeddingResult(
            embedding=response.data[0].embedding,
            token_count=token_count,
            model=self.model,
        )

    def embed_query(self, text: str) -> List[float]:
        return self.embed(text).embedding

    def embed_texts(self, texts: Sequence[str], batch_size: int = 100) -> List[List[float]]:
        """
        Generate embeddings for multiple texts.

        Empty strings are rejected rather than silently dropped so the
        output stays aligned with the input.
        """
        if any(not t.strip() for t in texts):
            raise ValueError("Cannot embed empty text")

        vectors: List[List[float]] = []
        for i in range(0, len(texts), batch_size):
            batch = list(texts[i:i + batch_size])
            response = self._create(batch)
            vectors.extend(data.embedding for data in response.data)
            logger.debug(f"Embedded batch of {len(batch)} texts ({response.usage.total_tokens} tokens)")

        return vectors

    @property
    def total_tokens(self) -> int:
        return self._total_tokens

    @property
    def total_requests(self) -> int:
        return self._total_requests

    @property
    def estimated_cost(self) -> float:
        """Estimated cost in USD."""
        # text-embedding-3-small: $0.00002 per 1K tokens
        return (self._total_tokens / 1000) * 0.00002
