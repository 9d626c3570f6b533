from __future__ import annotations

from typing import Dict, Iterable
import logging

from scholargy.rag.evidence import FusedEvidenceSet, RetrievalHit, SourceKind


logger = logging.getLogger("scholargy.fusion")


def fuse_evidence(
    articles: Iterable[RetrievalHit],
    vector_records: Iterable[RetrievalHit],
    keyword_records: Iterable[RetrievalHit],
) -> FusedEvidenceSet:
    """
    Merge the three raw hit sequences into one deduplicated evidence set.

    Articles pass through in their ranked order. Structured records are
    keyed by identity: vector-search hits are inserted first, keyword
    hits only for identities not already present. Output order is
    insertion order; no re-sorting by score.
    """
    article_hits = [h for h in articles if h.source_kind is SourceKind.ARTICLE]

    by_identity: Dict[str, RetrievalHit] = {}
    for hit in vector_records:
        if hit.source_kind is SourceKind.STRUCTURED_RECORD:
            by_identity.setdefault(hit.identity_key, hit)

    vector_count = len(by_identity)
    for hit in keyword_records:
        if hit.source_kind is SourceKind.STRUCTURED_RECORD:
            by_identity.setdefault(hit.identity_key, hit)

    logger.debug(
        "fused %s articles, %s records (%s from keyword search)",
        len(article_hits),
        len(by_identity),
        len(by_identity) - vector_count,
    )

    return FusedEvidenceSet(
        articles=tuple(article_hits),
        records=tuple(by_identity.values()),
    )
