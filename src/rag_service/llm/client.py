"""
Text Generation Client

Wraps the Gemini ``generateContent`` endpoint behind the ``TextGenerator``
capability used by the retrieval pipeline.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from ..core.errors import GenerationError

logger = logging.getLogger("rag.llm")


class TextGenerator(ABC):
    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Return the model's answer to ``prompt``."""


class GeminiClient(TextGenerator):
    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-pro",
        base_url: str = "https://generativelanguage.googleapis.com/v1",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not api_key:
            raise GenerationError("Gemini API key is required")

        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate(self, prompt: str) -> str:
        """
        Send a single-turn prompt and return the first candidate's text.

        Raises
        ------
        GenerationError
            On transport failure, a non-success status, or a response
            without candidate content.
        """
        payload = {"contents": [{"parts": [{"text": prompt}]}]}

        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            try:
                resp = await client.post(
                    self.endpoint,
                    json=payload,
                    headers={"x-goog-api-key": self.api_key},
                )
            except httpx.HTTPError as exc:
                logger.error(
                    "Generation request failed (%s): model=%s",
                    type(exc).__name__,
                    self.model,
                )
                raise GenerationError(
                    f"Failed to send generation request: {type(exc).__name__}"
                ) from exc

        if resp.status_code != 200:
            logger.error(
                "Gemini API error response (status %d): %s",
                resp.status_code,
                resp.text[:500],
            )
            raise GenerationError(f"API error (status {resp.status_code})")

        try:
            data = resp.json()
        except ValueError as exc:
            raise GenerationError("Failed to decode generation response") from exc

        return self._extract_text(data)

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        """
        Expected shape:
            { "candidates": [ { "content": { "parts": [ {"text": "..."} ] } } ] }
        """
        candidates = data.get("candidates") if isinstance(data, dict) else None
        if not candidates:
            raise GenerationError("no content in response")

        first = candidates[0] if isinstance(candidates[0], dict) else {}
        parts = (first.get("content") or {}).get("parts") or []
        if not parts or not isinstance(parts[0], dict):
            raise GenerationError("no content in response")

        return str(parts[0].get("text", ""))
