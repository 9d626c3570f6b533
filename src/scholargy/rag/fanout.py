from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Tuple
import asyncio
import logging
import time

import numpy as np

from scholargy.config.settings import FanOutConfig, RetrievalConfig
from scholargy.embeddings.encoder import EmbeddingEncoder
from scholargy.errors import SourceUnavailable
from scholargy.rag.evidence import RetrievalHit
from scholargy.sources.base import RetrievalSource
from scholargy.utils.cancel import CancellationToken


logger = logging.getLogger("scholargy.fanout")


@dataclass(frozen=True)
class SourceResults:
    """
    Raw hit sequences from the three sources, before fusion.
    """

    articles: List[RetrievalHit] = field(default_factory=list)
    vector_records: List[RetrievalHit] = field(default_factory=list)
    keyword_records: List[RetrievalHit] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)


class FanOutCoordinator:
    """
    Issues the three retrieval calls concurrently for one query.

    The embedding is computed first; both vector sources consume it.
    Exactly three calls are in flight per query, joined together.
    """

    def __init__(
        self,
        *,
        encoder: EmbeddingEncoder,
        articles: RetrievalSource,
        records_by_vector: RetrievalSource,
        records_by_keyword: RetrievalSource,
        retrieval_config: RetrievalConfig | None = None,
        fanout_config: FanOutConfig | None = None,
    ) -> None:
        self.encoder = encoder
        self.articles = articles
        self.records_by_vector = records_by_vector
        self.records_by_keyword = records_by_keyword
        self.retrieval = retrieval_config or RetrievalConfig()
        self.config = fanout_config or FanOutConfig()

    @property
    def sources(self) -> Tuple[RetrievalSource, RetrievalSource, RetrievalSource]:
        return (self.articles, self.records_by_vector, self.records_by_keyword)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def gather(
        self,
        query_text: str,
        cancel: CancellationToken | None = None,
    ) -> SourceResults:
        t0 = time.perf_counter()
        embedding = await self.encoder.embed(query_text)
        logger.info(
            "query embedding (%s dims) in %.2f ms",
            embedding.shape[-1],
            (time.perf_counter() - t0) * 1000.0,
        )

        if cancel is not None:
            cancel.raise_if_cancelled()

        t_join = time.perf_counter()
        outcomes = await self._join(query_text, embedding, cancel)
        logger.info(
            "fan-out joined in %.2f ms",
            (time.perf_counter() - t_join) * 1000.0,
        )

        return self._apply_policy(outcomes)

    # ------------------------------------------------------------------
    # Join
    # ------------------------------------------------------------------

    async def _join(
        self,
        query_text: str,
        embedding: np.ndarray,
        cancel: CancellationToken | None,
    ) -> List[List[RetrievalHit] | BaseException]:
        calls = [
            self.articles.search(
                query_text=query_text,
                embedding=embedding,
                k=self.retrieval.article_top_k,
            ),
            self.records_by_vector.search(
                query_text=query_text,
                embedding=embedding,
                k=self.retrieval.record_top_k,
            ),
            self.records_by_keyword.search(
                query_text=query_text,
                embedding=None,
                k=self.retrieval.keyword_top_k,
            ),
        ]
        joined = asyncio.gather(*calls, return_exceptions=True)

        timeout = float(self.config.timeout_seconds or 0)
        if timeout > 0:
            joined = asyncio.wait_for(joined, timeout=timeout)

        if cancel is None:
            return await self._await_join(joined, timeout)

        join_task = asyncio.ensure_future(self._await_join(joined, timeout))
        cancel_task = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait(
                {join_task, cancel_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancel_task.cancel()
            if not join_task.done():
                join_task.cancel()

        if join_task not in done:
            logger.info("fan-out cancelled: %s", cancel.reason)
            raise asyncio.CancelledError(cancel.reason)
        return join_task.result()

    async def _await_join(self, joined, timeout: float):
        try:
            return await joined
        except asyncio.TimeoutError as exc:
            raise SourceUnavailable(
                f"retrieval fan-out exceeded {timeout:.1f}s",
                source_name="fanout",
            ) from exc

    # ------------------------------------------------------------------
    # Failure policy
    # ------------------------------------------------------------------

    def _apply_policy(
        self,
        outcomes: List[List[RetrievalHit] | BaseException],
    ) -> SourceResults:
        results: List[List[RetrievalHit]] = []
        failures: Dict[str, BaseException] = {}

        for source, outcome in zip(self.sources, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                failures[source.name] = outcome
                results.append([])
            else:
                results.append(list(outcome))

        for name, exc in failures.items():
            logger.warning("source %s failed: %s", name, exc)

        if failures:
            tolerated = (
                self.config.policy == "tolerant"
                and len(failures) < len(self.sources)
            )
            if not tolerated:
                raise self._as_unavailable(*next(iter(failures.items())))

        return SourceResults(
            articles=results[0],
            vector_records=results[1],
            keyword_records=results[2],
            failures={name: str(exc) for name, exc in failures.items()},
        )

    @staticmethod
    def _as_unavailable(name: str, exc: Exception) -> SourceUnavailable:
        if isinstance(exc, SourceUnavailable):
            return exc
        wrapped = SourceUnavailable(f"{name} failed: {exc}", source_name=name)
        wrapped.__cause__ = exc
        return wrapped
