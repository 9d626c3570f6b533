"""
Retrieval sources for scholargy.

Three independent capabilities feed the fan-out:
- ArticleSearchSource     (sources.articles, Azure AI Search)
- RecordVectorSource      (sources.records, Mongo vector search)
- RecordKeywordSource     (sources.records, Mongo text search)
"""

from scholargy.sources.base import RetrievalSource

__all__ = [
    "RetrievalSource",
]
