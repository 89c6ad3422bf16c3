"""
Re-ranker
=========

Optional second-stage ordering through the Cohere rerank endpoint.
Receives (query, [{id, text}], top_n) and returns [{id, relevance}] best
first; the caller remaps rows onto its own candidate metadata by id.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Dict, Any, Sequence

import requests

from ..config import RerankConfig
from .models import RerankedDocument

logger = logging.getLogger(__name__)


class RerankError(Exception):
    """Re-rank provider error."""
    pass


class Reranker(ABC):
    """Reorders candidate documents for a query."""

    @abstractmethod
    def rerank(
        self,
        query: str,
        documents: Sequence[Dict[str, str]],
        top_n: int,
    ) -> List[RerankedDocument]:
        """Return up to top_n documents, most relevant first."""


class CohereReranker(Reranker):
    """Client for the Cohere rerank API."""

    def __init__(self, config: Optional[RerankConfig] = None, session: Optional[requests.Session] = None):
        self.config = config if config is not None else RerankConfig()
        if not self.config.api_key:
            raise RerankError("Re-ranker not configured. Set COHERE_API_KEY in .env")
        self._session = session if session is not None else requests.Session()
        self._requests_made = 0

    def rerank(
        self,
        query: str,
        documents: Sequence[Dict[str, str]],
        top_n: int,
    ) -> List[RerankedDocument]:
        if not documents:
            return []

        payload = {
            "model": self.config.model,
            "query": query,
            "documents": [doc["text"] for doc in documents],
            "top_n": min(top_n, len(documents)),
            "return_documents": False,
        }

        try:
            response = self._session.post(
                f"{self.config.base_url}/rerank",
                json=payload,
                headers={"Authorization": f"Bearer {self.config.api_key}"},
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            raise RerankError(f"Request failed: {e}") from e

        self._requests_made += 1

        if response.status_code == 401:
            raise RerankError("Invalid Cohere credentials")
        elif response.status_code == 429:
            raise RerankError("Cohere rate limit exceeded")
        elif response.status_code != 200:
            raise RerankError(f"Cohere API error: {response.status_code} - {response.text[:200]}")

        try:
            data = response.json()
        except ValueError as e:
            raise RerankError(f"Malformed rerank response: {e}") from e

        return self._parse_results(data, documents)

    @staticmethod
    def _parse_results(data: Dict[str, Any], documents: Sequence[Dict[str, str]]) -> List[RerankedDocument]:
        reranked = []
        for row in data.get("results", []):
            try:
                index = int(row["index"])
                relevance = float(row["relevance_score"])
            except (KeyError, TypeError, ValueError) as e:
                raise RerankError(f"Malformed rerank row {row!r}: {e}") from e
            if not 0 <= index < len(documents):
                raise RerankError(f"Rerank index {index} out of range")
            reranked.append(RerankedDocument(id=documents[index]["id"], relevance=relevance))
        return reranked

    @property
    def requests_made(self) -> int:
        return self._requests_made
