from __future__ import annotations

from typing import Any, Dict, List, Mapping

import numpy as np
from pymongo.asynchronous.collection import AsyncCollection

from scholargy.errors import MalformedRecord
from scholargy.rag.evidence import RetrievalHit, SearchOrigin, SourceKind
from scholargy.sources.base import RetrievalSource
from scholargy.utils.text import dig, format_count, format_percent, normalize_text


# Fields copied onto the hit so the context label can be rebuilt later.
RECORD_FIELDS = {
    "name": "general_info.name",
    "city": "general_info.city",
    "state": "general_info.state",
    "admission_rate": "admissions.admission_rate",
    "graduation_rate": "graduation.overall_rate",
    "enrollment": "enrollment.total",
    "tuition_in_state": "cost_and_aid.tuition_in_state",
}


def record_label(fields: Mapping[str, Any]) -> str:
    """
    Institution name followed by its headline statistics.
    """
    name = fields.get("name") or "Unknown institution"
    stats: List[str] = []

    admission = format_percent(fields.get("admission_rate"))
    if admission:
        stats.append(f"Admission rate: {admission}")
    graduation = format_percent(fields.get("graduation_rate"))
    if graduation:
        stats.append(f"Graduation rate: {graduation}")
    enrollment = format_count(fields.get("enrollment"))
    if enrollment:
        stats.append(f"Enrollment: {enrollment}")

    if not stats:
        return str(name)
    return f"{name} ({', '.join(stats)})"


def record_text(document: Mapping[str, Any], fields: Mapping[str, Any]) -> str:
    """
    Prefer the record's own prose; otherwise describe it from its fields.
    """
    for key in ("content", "summary", "description"):
        value = document.get(key)
        if isinstance(value, str) and value.strip():
            return normalize_text(value)

    name = fields.get("name")
    if not name:
        return ""

    parts = [str(name)]
    location = ", ".join(str(v) for v in (fields.get("city"), fields.get("state")) if v)
    if location:
        parts.append(f"is located in {location}.")
    else:
        parts.append("is a postsecondary institution.")
    tuition = format_count(fields.get("tuition_in_state"))
    if tuition:
        parts.append(f"In-state tuition is ${tuition}.")
    return " ".join(parts)


def record_to_hit(
    document: Mapping[str, Any],
    *,
    score: float,
    origin: SearchOrigin,
) -> RetrievalHit:
    unitid = document.get("unitid")
    if unitid is None or unitid == "":
        raise MalformedRecord("record has no unitid")

    fields = {key: dig(document, path) for key, path in RECORD_FIELDS.items()}
    text = record_text(document, fields)
    if not text:
        raise MalformedRecord(f"record {unitid} has no renderable text")

    return RetrievalHit(
        source_kind=SourceKind.STRUCTURED_RECORD,
        identity_key=str(unitid),
        rendered_text=text,
        relevance_score=score,
        origin=origin,
        label=record_label(fields),
        fields=fields,
    )


class RecordVectorSource(RetrievalSource):
    """
    Vector similarity search over institution records (Cosmos DB for
    MongoDB vCore `$search` with `cosmosDbVectorSearch`).
    """

    kind = SourceKind.STRUCTURED_RECORD
    origin = SearchOrigin.VECTOR_SEARCH

    def __init__(
        self,
        collection: AsyncCollection | None,
        *,
        index_name: str = "vector_index_on_ipeds_colleges",
        vector_field: str = "embedding",
        name: str = "record_vector_search",
    ) -> None:
        super().__init__(name=name, client=collection)
        self.index_name = index_name
        self.vector_field = vector_field

    def pipeline(self, embedding: np.ndarray, k: int) -> List[Dict[str, Any]]:
        return [
            {
                "$search": {
                    "index": self.index_name,
                    "cosmosDbVectorSearch": {
                        "vector": [float(x) for x in embedding],
                        "path": self.vector_field,
                        "k": k,
                    },
                }
            },
            {
                "$project": {
                    "similarityScore": {"$meta": "searchScore"},
                    "document": "$$ROOT",
                }
            },
        ]

    async def _search(
        self,
        *,
        query_text: str,
        embedding: np.ndarray | None,
        k: int,
    ) -> List[Dict[str, Any]]:
        cursor = await self.client.aggregate(self.pipeline(embedding, k))
        return await cursor.to_list(length=None)

    def _to_hit(self, raw: Mapping[str, Any]) -> RetrievalHit:
        document = raw.get("document")
        if not isinstance(document, Mapping):
            raise MalformedRecord("vector hit has no document")
        return record_to_hit(
            document,
            score=float(raw.get("similarityScore") or 0.0),
            origin=self.origin,
        )


class RecordKeywordSource(RetrievalSource):
    """
    Lexical search over the same records through the collection's
    text index. Results are unranked; no embedding is needed.
    """

    kind = SourceKind.STRUCTURED_RECORD
    origin = SearchOrigin.KEYWORD_SEARCH
    uses_embedding = False

    def __init__(
        self,
        collection: AsyncCollection | None,
        *,
        vector_field: str = "embedding",
        name: str = "record_keyword_search",
    ) -> None:
        super().__init__(name=name, client=collection)
        self.vector_field = vector_field

    async def _search(
        self,
        *,
        query_text: str,
        embedding: np.ndarray | None,
        k: int,
    ) -> List[Dict[str, Any]]:
        cursor = self.client.find(
            {"$text": {"$search": query_text}},
            projection={self.vector_field: 0},
        ).limit(k)
        return await cursor.to_list(length=k)

    def _to_hit(self, raw: Mapping[str, Any]) -> RetrievalHit:
        return record_to_hit(raw, score=0.0, origin=self.origin)
