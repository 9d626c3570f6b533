from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence
import logging

from scholargy.config.settings import ContextConfig
from scholargy.errors import ContextOverflow
from scholargy.rag.evidence import FusedEvidenceSet, RetrievalHit


logger = logging.getLogger("scholargy.context")

ARTICLES_HEADER = "Articles:"
DATABASE_HEADER = "Database:"


@dataclass(frozen=True)
class ContextBlock:
    """
    Rendered evidence plus how much of it survived the budget.
    """

    text: str
    articles_used: int
    records_used: int
    dropped: int


class ContextAssembler:
    """
    Renders fused evidence into labeled text sections.

    Articles come first, then database records, each in fusion order.
    When a character budget is configured, the lowest-ranked hits are
    dropped until the text fits.
    """

    def __init__(self, config: ContextConfig | None = None) -> None:
        self.config = config or ContextConfig()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def render(self, evidence: FusedEvidenceSet) -> str:
        return self.assemble(evidence).text

    def assemble(self, evidence: FusedEvidenceSet) -> ContextBlock:
        articles = list(evidence.articles)
        records = list(evidence.records)
        text = self._render(articles, records)

        budget = int(self.config.max_context_chars or 0)
        if budget <= 0 or len(text) <= budget:
            return ContextBlock(text, len(articles), len(records), 0)

        if self.config.overflow != "truncate":
            raise ContextOverflow(
                f"rendered context is {len(text)} chars, budget is {budget}",
                size=len(text),
                budget=budget,
            )

        dropped = 0
        while len(text) > budget and (articles or records):
            # Lowest rank = furthest from the head of its collection.
            # On a tie the database hit goes first.
            if len(records) >= len(articles):
                records.pop()
            else:
                articles.pop()
            dropped += 1
            text = self._render(articles, records)

        logger.info(
            "context trimmed to %s chars: dropped %s hits (budget %s)",
            len(text),
            dropped,
            budget,
        )
        return ContextBlock(text, len(articles), len(records), dropped)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    @staticmethod
    def render_hit(hit: RetrievalHit) -> str:
        return f"[Source: {hit.label}] {hit.rendered_text}"

    def _section(self, header: str, hits: Sequence[RetrievalHit]) -> str:
        return header + "\n" + "\n\n".join(self.render_hit(h) for h in hits)

    def _render(
        self,
        articles: Sequence[RetrievalHit],
        records: Sequence[RetrievalHit],
    ) -> str:
        sections: List[str] = []
        if articles:
            sections.append(self._section(ARTICLES_HEADER, articles))
        if records:
            sections.append(self._section(DATABASE_HEADER, records))
        return "\n\n".join(sections)
