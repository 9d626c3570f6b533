from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence
import logging
import time

from scholargy.errors import ValidationError
from scholargy.rag.context_builder import ContextAssembler
from scholargy.rag.evidence import Query, history_from_payload
from scholargy.rag.fanout import FanOutCoordinator
from scholargy.rag.fusion import fuse_evidence
from scholargy.rag.generator import CompletionBackend, StreamingRelay
from scholargy.rag.prompt import GroundedPromptBuilder
from scholargy.utils.cancel import CancellationToken


logger = logging.getLogger("scholargy.service")


class AnswerService:
    """
    Orchestration layer for one question.

    question -> embedding -> fan-out -> fusion -> context -> prompt
    -> opened relay. Every failure up to and including opening the
    relay is raised to the caller, before any response is committed.
    """

    def __init__(
        self,
        *,
        coordinator: FanOutCoordinator,
        assembler: ContextAssembler,
        prompt_builder: GroundedPromptBuilder,
        backend: CompletionBackend,
    ) -> None:
        self.coordinator = coordinator
        self.assembler = assembler
        self.prompt_builder = prompt_builder
        self.backend = backend

    def capabilities(self) -> Dict[str, bool]:
        status = {"embedding": self.coordinator.encoder.configured}
        for source in self.coordinator.sources:
            status[source.name] = source.configured
        status["completion"] = bool(getattr(self.backend, "configured", True))
        return status

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def validate(
        question: Any,
        history: Sequence[Mapping[str, Any]] | None = None,
    ) -> Query:
        if not isinstance(question, str) or not question.strip():
            raise ValidationError("question is required")
        try:
            turns = history_from_payload(history)
        except (AttributeError, ValueError) as exc:
            raise ValidationError(f"invalid history: {exc}") from exc
        return Query(text=question, history=turns)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def build_messages(
        self,
        query: Query,
        cancel: CancellationToken | None = None,
    ) -> List[Dict[str, str]]:
        t0 = time.perf_counter()
        results = await self.coordinator.gather(query.text, cancel)

        evidence = fuse_evidence(
            results.articles,
            results.vector_records,
            results.keyword_records,
        )
        block = self.assembler.assemble(evidence)
        logger.info(
            "context: %s articles, %s records, %s dropped, %s chars",
            block.articles_used,
            block.records_used,
            block.dropped,
            len(block.text),
        )

        messages = self.prompt_builder.build(query, block.text)
        logger.info(
            "prompt ready (%s messages) in %.2f ms",
            len(messages),
            (time.perf_counter() - t0) * 1000.0,
        )
        return messages

    async def prepare(
        self,
        query: Query,
        cancel: CancellationToken | None = None,
    ) -> StreamingRelay:
        """
        Run everything that must succeed before headers are sent.
        """
        cancel = cancel or CancellationToken()
        messages = await self.build_messages(query, cancel)
        relay = StreamingRelay(self.backend, cancel=cancel)
        return await relay.open(messages)

    async def answer_text(self, query: Query) -> str:
        """
        Collect the whole streamed answer into one string.
        """
        relay = await self.prepare(query)
        parts = [fragment async for fragment in relay.fragments()]
        return "".join(parts)
