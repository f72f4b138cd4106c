"""Embedding service for memory entries

Memory entries carry an opaque vector so a real embedding model can be
dropped in later. Nothing compares these vectors today: retrieval is a
recency window (see memory_store.RecencyRetrieval).
"""

import json
from typing import List, Optional
from functools import lru_cache

import numpy as np

from aistaff.config import settings


class PlaceholderEmbeddingService:
    """Produces fixed-length random vectors in [0, 1)."""

    def __init__(self, dimension: Optional[int] = None, seed: Optional[int] = None):
        self.dimension = dimension or settings.embedding_dimension
        self._rng = np.random.default_rng(seed)

    def embed(self, text: str) -> List[float]:
        """Generate a placeholder embedding for a single text"""
        return self._rng.random(self.dimension).tolist()

    def embed_to_json(self, text: str) -> str:
        """Generate embedding and return as JSON string (for text-column storage)"""
        return json.dumps(self.embed(text))


@lru_cache()
def get_embedding_service() -> PlaceholderEmbeddingService:
    """Get the singleton embedding service"""
    return PlaceholderEmbeddingService()
