"""
Semantic embeddings for services and search queries
Uses the Hugging Face feature-extraction endpoint (MiniLM, 384 dimensions)
"""

import logging
import math
from typing import Optional, Protocol, Sequence

import httpx

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    """Returns an embedding vector for text, or an empty list on failure"""

    def embed(self, text: str) -> list[float]: ...


class HuggingFaceEmbeddingProvider:
    def __init__(self, api_url: str, token: Optional[str], timeout_seconds: float = 10.0):
        self.api_url = api_url
        self.token = token
        self.timeout_seconds = timeout_seconds

    def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            return []
        if not self.token:
            logger.debug("ℹ️ HF_TOKEN not configured, semantic embeddings disabled")
            return []

        headers = {"Authorization": f"Bearer {self.token}"}
        try:
            with httpx.Client(timeout=self.timeout_seconds) as client:
                response = client.post(self.api_url, headers=headers, json={"inputs": text})
            if response.status_code != 200:
                logger.error(f"❌ Embedding request failed: HTTP {response.status_code}")
                return []
            return _flatten_vector(response.json())
        except Exception as e:
            logger.error(f"❌ AI Embedding Error: {e}")
            return []


def _flatten_vector(payload) -> list[float]:
    """The API returns either [floats] or [[floats]] for a single input"""
    if isinstance(payload, list) and payload and isinstance(payload[0], list):
        payload = payload[0]
    if not isinstance(payload, list):
        return []
    try:
        return [float(x) for x in payload]
    except (TypeError, ValueError):
        return []


def build_embedding_text(
    name: str,
    description: Optional[str],
    category: Optional[str],
    tags: Optional[Sequence[str]],
) -> str:
    """Text a service is embedded from; these are the fields that make an embedding stale"""
    parts = [name or "", description or "", category or "", " ".join(tags or [])]
    return " ".join(p.strip() for p in parts if p and p.strip())


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)
