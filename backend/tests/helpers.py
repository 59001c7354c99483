"""Shared test helpers."""

import httpx
import numpy as np

DIM = 768


def vec(**components: float) -> np.ndarray:
    """768-d vector with the given non-zero components, e.g. vec(d0=1.0, d3=0.5)."""
    v = np.zeros(DIM, dtype=np.float64)
    for key, value in components.items():
        v[int(key[1:])] = value
    return v


def embedding_transport(
    vector: np.ndarray | None = None, status_code: int = 200
) -> httpx.MockTransport:
    """Mock Ollama server answering every embedding request the same way."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/tags":
            return httpx.Response(200, json={"models": [{"name": "nomic-embed-text"}]})
        if status_code != 200:
            return httpx.Response(status_code, json={"error": "unavailable"})
        return httpx.Response(200, json={"embedding": vector.tolist()})

    return httpx.MockTransport(handler)
