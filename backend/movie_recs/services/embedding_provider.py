"""
Embedding provider client.

Talks to an Ollama server:
- POST /api/embeddings  {"model": ..., "prompt": ...} -> {"embedding": [...]}
- GET  /api/tags        connection check
"""

import httpx
import numpy as np

from movie_recs.core.config import get_settings
from movie_recs.core.exceptions import InvalidInputError, TransientDependencyError
from movie_recs.core.logging import get_logger
from movie_recs.services.vectors import as_vector, zero_vector

settings = get_settings()
logger = get_logger(__name__)


class OllamaEmbeddingProvider:
    """
    Converts free text into a fixed-dimension embedding.

    `embed` never raises for provider trouble: timeouts, rate limits, server
    errors and malformed payloads all degrade to the zero vector, which the
    similarity search treats as "no signal".
    """

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        dimension: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.model = model or settings.OLLAMA_EMBEDDING_MODEL
        self.dimension = dimension or settings.EMBEDDING_DIMENSION
        self.client = httpx.Client(
            base_url=base_url or settings.OLLAMA_BASE_URL,
            timeout=httpx.Timeout(
                settings.EMBEDDING_READ_TIMEOUT,
                connect=settings.EMBEDDING_CONNECT_TIMEOUT,
            ),
            transport=transport,
        )

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def embed(self, text: str) -> np.ndarray:
        """
        Embed `text`.

        Returns:
            The embedding, or the zero vector if the provider failed
        """
        if not text or not text.strip():
            return zero_vector(self.dimension)

        try:
            return self.request_embedding(text)
        except (TransientDependencyError, InvalidInputError) as e:
            logger.warning(
                "Embedding generation failed, using zero vector",
                extra={"extra_fields": {"model": self.model, "error": str(e)}},
            )
            return zero_vector(self.dimension)

    def request_embedding(self, text: str) -> np.ndarray:
        """
        Embed `text`, raising on failure.

        Raises:
            TransientDependencyError: timeout, connection error, 429 or 5xx
            InvalidInputError: the provider answered with an unusable payload
        """
        try:
            response = self.client.post(
                "/api/embeddings",
                json={"model": self.model, "prompt": text},
            )
        except httpx.TimeoutException as e:
            raise TransientDependencyError(f"Embedding request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransientDependencyError(f"Embedding request failed: {e}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise TransientDependencyError(
                f"Embedding provider returned {response.status_code}"
            )
        if response.status_code != 200:
            raise InvalidInputError(f"Embedding provider returned {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise InvalidInputError("Embedding provider returned invalid JSON") from e

        embedding = payload.get("embedding") if isinstance(payload, dict) else None
        if not embedding:
            raise InvalidInputError("Embedding provider returned no embedding")
        return as_vector(embedding, self.dimension)

    def check_connection(self) -> bool:
        """True if the provider answers its model listing endpoint."""
        try:
            response = self.client.get("/api/tags")
        except httpx.HTTPError as e:
            logger.warning(
                "Embedding provider unreachable",
                extra={"extra_fields": {"error": str(e)}},
            )
            return False
        return response.status_code == 200


_provider: OllamaEmbeddingProvider | None = None


def get_embedding_provider() -> OllamaEmbeddingProvider:
    """Shared provider instance, also used as a FastAPI dependency."""
    global _provider
    if _provider is None:
        _provider = OllamaEmbeddingProvider()
    return _provider


def close_embedding_provider() -> None:
    global _provider
    if _provider is not None:
        _provider.close()
        _provider = None
