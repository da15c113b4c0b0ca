"""
Embedding Client

This module defines the embedding capability used by the ingestion and
retrieval pipelines, plus its production implementation backed by the Gemini
``embedContent`` endpoint. It is responsible for:

- One request per text, issued sequentially for batches
- Network and transport error isolation
- Strict response validation (shape and dimensionality)
- Cosine similarity between vectors

Clients are stateless and safe to reuse across requests.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import httpx
import numpy as np

from ..core.errors import EmbeddingError

logger = logging.getLogger("rag.embedder")


# ---------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------

def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """
    Cosine similarity in [-1, 1].

    Returns 0.0 when the vectors differ in length, are empty, or either one
    is all zeros.
    """
    a = np.asarray(vec_a, dtype=np.float64)
    b = np.asarray(vec_b, dtype=np.float64)

    if a.shape != b.shape or a.size == 0:
        return 0.0

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = np.dot(a, b) / (norm_a * norm_b)
    return float(np.clip(similarity, -1.0, 1.0))


# ---------------------------------------------------------------------
# Capability
# ---------------------------------------------------------------------

class EmbeddingService(ABC):
    """
    Generates fixed-length embedding vectors for text.
    """

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Embed a single non-empty text."""

    async def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Embed texts one at a time, in order.

        Raises
        ------
        EmbeddingError
            If ``texts`` is empty or any item fails; the batch is abandoned
            at the first failure.
        """
        if not texts:
            raise EmbeddingError("texts cannot be empty")

        embeddings: List[List[float]] = []
        for text in texts:
            embeddings.append(await self.embed(text))
        return embeddings

    def similarity(self, vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
        return cosine_similarity(vec_a, vec_b)


# ---------------------------------------------------------------------
# Gemini Implementation
# ---------------------------------------------------------------------

class GeminiEmbedder(EmbeddingService):
    """
    Embedding client for the Gemini ``models/{model}:embedContent`` API.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "embedding-001",
        base_url: str = "https://generativelanguage.googleapis.com/v1",
        dimensions: Optional[int] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize a GeminiEmbedder.

        Parameters
        ----------
        api_key : str
            Gemini API key, sent in the ``x-goog-api-key`` header.

        model : str
            Embedding model name.

        base_url : str
            API root, without a trailing slash.

        dimensions : Optional[int]
            Expected vector length. Responses of any other length are
            rejected. ``None`` accepts any length.

        timeout : float
            HTTP timeout for each request.

        transport : Optional[httpx.AsyncBaseTransport]
            Transport override (tests use ``httpx.MockTransport``).
        """
        if not api_key:
            raise EmbeddingError("Gemini API key is required")

        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.dimensions = dimensions
        self.timeout = timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:embedContent"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> List[float]:
        """
        Generate an embedding for ``text``.

        Raises
        ------
        EmbeddingError
            If the text is blank, the request fails, or the response is
            malformed.
        """
        if not text or not text.strip():
            raise EmbeddingError("text cannot be empty")

        payload = {"content": {"parts": [{"text": text.strip()}]}}
        headers = {"x-goog-api-key": self.api_key}

        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.post(
                    self.endpoint,
                    json=payload,
                    headers=headers,
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "Embedding request rejected: model=%s, status=%d",
                    self.model,
                    exc.response.status_code,
                )
                raise EmbeddingError(
                    f"Embedding API error (status {exc.response.status_code})"
                ) from exc
            except httpx.HTTPError as exc:
                logger.error(
                    "Embedding request failed (%s): model=%s",
                    type(exc).__name__,
                    self.model,
                )
                raise EmbeddingError(
                    f"Embedding generation failed: {type(exc).__name__}"
                ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise EmbeddingError("Embedding response is not valid JSON.") from exc

        return self._extract_embedding(data)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _extract_embedding(self, data: dict) -> List[float]:
        """
        Parse and validate the embedding payload.

        Gemini returns:
            { "embedding": { "values": [...] } }
        """
        if not isinstance(data, dict) or "embedding" not in data:
            raise EmbeddingError("Embedding response missing 'embedding' field.")

        record = data["embedding"]
        if not isinstance(record, dict) or "values" not in record:
            raise EmbeddingError("Embedding response missing 'values' field.")

        values = record["values"]
        if (
            not isinstance(values, list)
            or not values
            or not all(isinstance(x, (float, int)) for x in values)
        ):
            raise EmbeddingError("Invalid embedding vector: must be a non-empty float list.")

        if self.dimensions is not None and len(values) != self.dimensions:
            raise EmbeddingError(
                f"Embedding has {len(values)} dimensions, expected {self.dimensions}."
            )

        return [float(x) for x in values]
