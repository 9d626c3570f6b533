from __future__ import annotations

from typing import Any, Dict, List, Mapping

import numpy as np
from azure.search.documents.aio import SearchClient
from azure.search.documents.models import VectorizedQuery

from scholargy.errors import MalformedRecord
from scholargy.rag.evidence import RetrievalHit, SearchOrigin, SourceKind
from scholargy.sources.base import RetrievalSource


class ArticleSearchSource(RetrievalSource):
    """
    Hybrid search over the curated article corpus in Azure AI Search.

    The raw question drives lexical relevance and the embedding drives
    vector similarity; the service blends both into one ranked list.
    """

    kind = SourceKind.ARTICLE
    origin = SearchOrigin.VECTOR_SEARCH

    def __init__(
        self,
        client: SearchClient | None,
        *,
        vector_field: str = "embedding",
        name: str = "article_search",
    ) -> None:
        super().__init__(name=name, client=client)
        self.vector_field = vector_field

    async def _search(
        self,
        *,
        query_text: str,
        embedding: np.ndarray | None,
        k: int,
    ) -> List[Dict[str, Any]]:
        vector_query = VectorizedQuery(
            vector=[float(x) for x in embedding],
            k_nearest_neighbors=k,
            fields=self.vector_field,
        )
        results = await self.client.search(
            search_text=query_text,
            vector_queries=[vector_query],
            top=k,
        )
        return [doc async for doc in results]

    def _to_hit(self, raw: Mapping[str, Any]) -> RetrievalHit:
        content = raw.get("content")
        if not content:
            raise MalformedRecord("article has no content")

        storage_name = (
            raw.get("metadata_storage_name")
            or raw.get("title")
            or raw.get("id")
        )
        if not storage_name:
            raise MalformedRecord("article has no storage name")

        return RetrievalHit(
            source_kind=self.kind,
            identity_key=str(storage_name),
            rendered_text=str(content).strip(),
            relevance_score=float(raw.get("@search.score") or 0.0),
            origin=self.origin,
            label=str(storage_name),
        )
