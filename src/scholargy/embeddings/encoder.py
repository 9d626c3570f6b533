from __future__ import annotations

from abc import ABC, abstractmethod
from collections import OrderedDict
import hashlib
import numpy as np

from scholargy.errors import EmbeddingUnavailable


class EmbeddingEncoder(ABC):
    """
    Abstract embedding encoder.

    Concrete implementations may wrap:
    - hosted embedding APIs
    - local sentence transformers

    Every failure surfaces as EmbeddingUnavailable so the caller
    can fail the query before any vector retrieval is issued.
    """

    def __init__(self, dimension: int | None, *, cache_size: int = 1024) -> None:
        self.dimension = dimension
        self.cache_size = max(int(cache_size), 0)
        self._cache: OrderedDict[str, np.ndarray] = OrderedDict()

    @property
    def configured(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> np.ndarray:
        """
        Encode a single text into a fixed-length vector.

        Uses deterministic caching to avoid recomputation.
        """
        key = self._hash(text)
        cached = self._cache.get(key)
        if cached is not None:
            self._cache.move_to_end(key)
            return cached

        try:
            vector = await self._embed_one(text)
        except EmbeddingUnavailable:
            raise
        except Exception as exc:
            raise EmbeddingUnavailable(
                f"{self.__class__.__name__} failed to embed text: {exc}"
            ) from exc

        vector = np.asarray(vector, dtype=float)
        if self.dimension is None:
            self.dimension = int(vector.shape[-1])
        elif vector.shape[-1] != self.dimension:
            raise EmbeddingUnavailable(
                f"expected a {self.dimension}-dim embedding, got {vector.shape[-1]}"
            )

        self._remember(key, vector)
        return vector

    # ------------------------------------------------------------------
    # Implementation contract
    # ------------------------------------------------------------------

    @abstractmethod
    async def _embed_one(self, text: str) -> np.ndarray:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------

    def _remember(self, key: str, vector: np.ndarray) -> None:
        """
        Least-recently-used cache of at most cache_size vectors.
        """
        if self.cache_size == 0:
            return
        self._cache[key] = vector
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)

    def _hash(self, text: str) -> str:
        """
        Stable cache key incorporating encoder identity.
        """
        payload = f"{self.__class__.__name__}:{self.dimension}:{text}"
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class UnconfiguredEmbeddingEncoder(EmbeddingEncoder):
    """
    Stand-in used when no embedding capability is configured.
    """

    def __init__(self, reason: str = "embedding capability is not configured") -> None:
        super().__init__(dimension=None)
        self.reason = reason

    @property
    def configured(self) -> bool:
        return False

    async def _embed_one(self, text: str) -> np.ndarray:
        raise EmbeddingUnavailable(self.reason)
