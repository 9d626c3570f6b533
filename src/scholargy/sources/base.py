from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Sequence
import logging
import time

import numpy as np

from scholargy.errors import MalformedRecord, SourceUnavailable
from scholargy.rag.evidence import RetrievalHit, SearchOrigin, SourceKind


logger = logging.getLogger("scholargy.sources")


class RetrievalSource(ABC):
    """
    One retrieval capability owned by an external store.

    Sources are configuration-gated: when the backing client is missing,
    search() fails fast with SourceUnavailable instead of returning
    nothing. Raw records are converted to typed hits here, and malformed
    records are dropped at this boundary.
    """

    kind: SourceKind
    origin: SearchOrigin
    uses_embedding: bool = True

    def __init__(self, *, name: str, client: Any | None) -> None:
        self.name = name
        self.client = client

    @property
    def configured(self) -> bool:
        return self.client is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def search(
        self,
        *,
        query_text: str,
        embedding: np.ndarray | None,
        k: int,
    ) -> List[RetrievalHit]:
        self._ensure_configured()
        if self.uses_embedding and embedding is None:
            raise SourceUnavailable(
                f"{self.name} requires an embedding vector",
                source_name=self.name,
            )

        t0 = time.perf_counter()
        try:
            raw = await self._search(query_text=query_text, embedding=embedding, k=k)
        except SourceUnavailable:
            raise
        except Exception as exc:
            raise SourceUnavailable(
                f"{self.name} search failed: {exc}",
                source_name=self.name,
            ) from exc

        hits = self._convert(raw)[:k]
        logger.info(
            "%s returned %s hits (%s raw) in %.2f ms",
            self.name,
            len(hits),
            len(raw),
            (time.perf_counter() - t0) * 1000.0,
        )
        return hits

    # ------------------------------------------------------------------
    # Implementation contract
    # ------------------------------------------------------------------

    @abstractmethod
    async def _search(
        self,
        *,
        query_text: str,
        embedding: np.ndarray | None,
        k: int,
    ) -> Sequence[Mapping[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def _to_hit(self, raw: Mapping[str, Any]) -> RetrievalHit:
        """
        Convert one raw record. Raise MalformedRecord to skip it.
        """
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------

    def _ensure_configured(self) -> None:
        if not self.configured:
            raise SourceUnavailable(
                f"{self.name} is not configured",
                source_name=self.name,
            )

    def _convert(self, raw: Sequence[Mapping[str, Any]]) -> List[RetrievalHit]:
        hits: List[RetrievalHit] = []
        for record in raw:
            try:
                hits.append(self._to_hit(record))
            except (MalformedRecord, ValueError) as exc:
                logger.warning("%s skipped malformed record: %s", self.name, exc)
        return hits
