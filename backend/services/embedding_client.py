"""Embedding client for the hosted OpenAI embeddings endpoint."""
import logging
import math
import time
from typing import Any, List, Optional

import httpx

from config import EMBEDDING_DIMENSIONS, EMBEDDING_MODEL, HTTP_TIMEOUT, OPENAI_API_KEY, OPENAI_BASE_URL
from services.errors import ConfigurationError, EmbeddingError, upstream_message

logger = logging.getLogger(__name__)


class EmbeddingClient:
    """Wrapper around the OpenAI embeddings API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = EMBEDDING_MODEL,
        dimensions: int = EMBEDDING_DIMENSIONS,
        base_url: str = OPENAI_BASE_URL,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the embedding client.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY from environment)
            model_name: Embedding model identifier
            dimensions: Expected length of every embedding vector
            base_url: API base URL, overridable for compatible gateways
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used by tests

        Raises:
            ConfigurationError: If no API key is available
        """
        self.api_key = api_key or OPENAI_API_KEY
        if not self.api_key:
            raise ConfigurationError("OPENAI_API_KEY environment variable is required")

        self.model_name = model_name
        self.dimensions = dimensions
        self.timeout = timeout
        self.transport = transport
        self.api_url = f"{base_url.rstrip('/')}/embeddings"

        logger.info(f"Initialized EmbeddingClient with model: {model_name}")

    def embed(self, text: str) -> List[float]:
        """
        Generate the embedding for a single text string.

        There is no retry: a failed call propagates immediately.

        Args:
            text: Text to embed

        Returns:
            Embedding vector of ``dimensions`` floats

        Raises:
            ValueError: If text is empty
            EmbeddingError: If the API call fails or returns a malformed vector
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {"input": text, "model": self.model_name}

        start_time = time.time()
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(self.api_url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Embedding request failed: {e}")
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        data = self._parse_json(response)
        if not response.is_success:
            message = upstream_message(data)
            logger.error(
                f"Embedding API returned {response.status_code}: {message or 'no message'}"
            )
            raise EmbeddingError(message, status=response.status_code)

        vector = self._extract_vector(data)
        logger.debug(f"Generated embedding in {time.time() - start_time:.2f}s")
        return vector

    @staticmethod
    def _parse_json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return None

    def _extract_vector(self, data: Any) -> List[float]:
        try:
            vector = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError):
            raise EmbeddingError("Embedding response did not contain a vector")

        if not isinstance(vector, list):
            raise EmbeddingError("Embedding response did not contain a vector")
        if len(vector) != self.dimensions:
            raise EmbeddingError(
                f"Embedding dimension mismatch: expected {self.dimensions}, got {len(vector)}"
            )
        cleaned = []
        for value in vector:
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise EmbeddingError("Embedding contains a non-numeric value")
            cleaned.append(float(value))
        return cleaned
