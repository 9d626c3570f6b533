"""
Fakes for the pipeline's external capabilities.
"""

from __future__ import annotations

import asyncio
import json

import numpy as np

from backend.app.services.answer_service import AnswerService

from scholargy.config.settings import ContextConfig, FanOutConfig, RetrievalConfig
from scholargy.embeddings.encoder import EmbeddingEncoder
from scholargy.rag.context_builder import ContextAssembler
from scholargy.rag.evidence import RetrievalHit, SearchOrigin, SourceKind
from scholargy.rag.fanout import FanOutCoordinator
from scholargy.rag.prompt import GroundedPromptBuilder
from scholargy.sources.base import RetrievalSource


def article(name: str, text: str = "", score: float = 1.0) -> RetrievalHit:
    return RetrievalHit(
        source_kind=SourceKind.ARTICLE,
        identity_key=name,
        rendered_text=text or f"contents of {name}",
        relevance_score=score,
        origin=SearchOrigin.VECTOR_SEARCH,
        label=name,
    )


def record(
    unitid: str,
    text: str = "",
    *,
    origin: SearchOrigin = SearchOrigin.VECTOR_SEARCH,
    score: float = 0.5,
    label: str = "",
) -> RetrievalHit:
    return RetrievalHit(
        source_kind=SourceKind.STRUCTURED_RECORD,
        identity_key=unitid,
        rendered_text=text or f"record {unitid}",
        relevance_score=score,
        origin=origin,
        label=label or f"College {unitid}",
    )


class FakeEncoder(EmbeddingEncoder):
    def __init__(
        self,
        dimension: int = 4,
        error: Exception | None = None,
        cache_size: int = 1024,
    ) -> None:
        super().__init__(dimension=dimension, cache_size=cache_size)
        self.error = error
        self.calls = 0

    async def _embed_one(self, text: str) -> np.ndarray:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return np.ones(self.dimension, dtype=float)


class FakeSource(RetrievalSource):
    def __init__(
        self,
        name: str,
        hits=(),
        *,
        kind: SourceKind = SourceKind.STRUCTURED_RECORD,
        origin: SearchOrigin = SearchOrigin.VECTOR_SEARCH,
        uses_embedding: bool = True,
        configured: bool = True,
        error: Exception | None = None,
        delay: float = 0.0,
        barrier: "Barrier | None" = None,
    ) -> None:
        super().__init__(name=name, client=object() if configured else None)
        self.kind = kind
        self.origin = origin
        self.uses_embedding = uses_embedding
        self.hits = list(hits)
        self.error = error
        self.delay = delay
        self.barrier = barrier
        self.calls = 0
        self.cancelled = False
        self.received_embedding = "unset"

    async def _search(self, *, query_text, embedding, k):
        self.calls += 1
        self.received_embedding = embedding
        try:
            if self.barrier is not None:
                await self.barrier.arrive()
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.error is not None:
            raise self.error
        return list(self.hits)

    def _to_hit(self, raw):
        return raw


class Barrier:
    """
    Releases once `parties` callers have arrived; times out otherwise.
    """

    def __init__(self, parties: int) -> None:
        self.parties = parties
        self.arrived = 0
        self.max_waiting = 0
        self._event: asyncio.Event | None = None

    async def arrive(self) -> None:
        if self._event is None:
            self._event = asyncio.Event()
        self.arrived += 1
        self.max_waiting = max(self.max_waiting, self.arrived)
        if self.arrived >= self.parties:
            self._event.set()
        await asyncio.wait_for(self._event.wait(), timeout=1.0)


class FakeBackend:
    def __init__(
        self,
        fragments=("The ", "answer ", "is X."),
        *,
        fail_open: Exception | None = None,
        fail_after: int | None = None,
        configured: bool = True,
    ) -> None:
        self.fragments = list(fragments)
        self.fail_open = fail_open
        self.fail_after = fail_after
        self.configured = configured
        self.opened = 0
        self.messages = None
        self.closed = False
        self.yielded = 0

    async def open_stream(self, messages):
        self.opened += 1
        self.messages = messages
        if self.fail_open is not None:
            raise self.fail_open
        return self._stream()

    async def _stream(self):
        try:
            for i, fragment in enumerate(self.fragments):
                if self.fail_after is not None and i == self.fail_after:
                    raise RuntimeError("upstream connection reset")
                self.yielded += 1
                yield fragment
        finally:
            self.closed = True


def make_coordinator(
    *,
    encoder=None,
    articles=None,
    vector=None,
    keyword=None,
    policy: str = "strict",
    timeout_seconds: float = 0.0,
) -> FanOutCoordinator:
    return FanOutCoordinator(
        encoder=encoder or FakeEncoder(),
        articles=articles or FakeSource("articles", kind=SourceKind.ARTICLE),
        records_by_vector=vector or FakeSource("vector"),
        records_by_keyword=keyword
        or FakeSource(
            "keyword",
            origin=SearchOrigin.KEYWORD_SEARCH,
            uses_embedding=False,
        ),
        retrieval_config=RetrievalConfig(),
        fanout_config=FanOutConfig(policy=policy, timeout_seconds=timeout_seconds),
    )


def make_service(fakes, *, context: ContextConfig | None = None) -> AnswerService:
    return AnswerService(
        coordinator=make_coordinator(
            encoder=fakes.encoder,
            articles=fakes.articles,
            vector=fakes.vector,
            keyword=fakes.keyword,
            policy=fakes.policy,
        ),
        assembler=ContextAssembler(context or fakes.context),
        prompt_builder=GroundedPromptBuilder(),
        backend=fakes.backend,
    )


def parse_frames(body: str) -> list[dict]:
    frames = []
    for block in body.split("\n\n"):
        if block.startswith("data: "):
            frames.append(json.loads(block[len("data: "):]))
    return frames

