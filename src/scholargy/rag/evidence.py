from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Literal, Mapping, Sequence, Tuple
import math


class SourceKind(str, Enum):
    ARTICLE = "article"
    STRUCTURED_RECORD = "structured_record"


class SearchOrigin(str, Enum):
    VECTOR_SEARCH = "vector_search"
    KEYWORD_SEARCH = "keyword_search"


Role = Literal["user", "assistant", "system"]
_ROLES = ("user", "assistant", "system")


@dataclass(frozen=True)
class ChatTurn:
    """
    One prior conversation turn, replayed verbatim into the prompt.
    """

    role: Role
    content: str

    def __post_init__(self) -> None:
        if self.role not in _ROLES:
            raise ValueError(f"unknown chat role: {self.role!r}")
        if not isinstance(self.content, str):
            raise ValueError("chat turn content must be a string")

    def to_message(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class Query:
    """
    Immutable inbound question plus the conversation that preceded it.
    """

    text: str
    history: Tuple[ChatTurn, ...] = ()


@dataclass(frozen=True)
class RetrievalHit:
    """
    A single piece of evidence returned by a retrieval source.

    identity_key is the natural primary key of the underlying record.
    Articles and structured records use disjoint identity spaces.
    """

    source_kind: SourceKind
    identity_key: str
    rendered_text: str
    relevance_score: float
    origin: SearchOrigin
    label: str = ""
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.identity_key, str) or not self.identity_key:
            raise ValueError("hit requires a non-empty identity_key")
        if not isinstance(self.rendered_text, str) or not self.rendered_text.strip():
            raise ValueError(f"hit {self.identity_key!r} has no rendered text")
        score = float(self.relevance_score)
        if not math.isfinite(score):
            raise ValueError(f"hit {self.identity_key!r} has a non-finite score")
        object.__setattr__(self, "relevance_score", score)
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        if not self.label:
            object.__setattr__(self, "label", self.identity_key)


@dataclass(frozen=True)
class FusedEvidenceSet:
    """
    Deduplicated evidence, kept in two separate collections.

    No two records share an identity_key, and the two collections
    never mix source kinds.
    """

    articles: Tuple[RetrievalHit, ...] = ()
    records: Tuple[RetrievalHit, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "articles", tuple(self.articles))
        object.__setattr__(self, "records", tuple(self.records))

        for hit in self.articles:
            if hit.source_kind is not SourceKind.ARTICLE:
                raise ValueError(
                    f"record hit {hit.identity_key!r} in article collection"
                )

        seen = set()
        for hit in self.records:
            if hit.source_kind is not SourceKind.STRUCTURED_RECORD:
                raise ValueError(
                    f"article hit {hit.identity_key!r} in record collection"
                )
            if hit.identity_key in seen:
                raise ValueError(f"duplicate record identity {hit.identity_key!r}")
            seen.add(hit.identity_key)

    @property
    def is_empty(self) -> bool:
        return not self.articles and not self.records

    def __len__(self) -> int:
        return len(self.articles) + len(self.records)


def history_from_payload(turns: Sequence[Mapping[str, Any]] | None) -> Tuple[ChatTurn, ...]:
    """
    Convert loosely-shaped {role, content} dicts into typed turns.
    """
    if not turns:
        return ()
    history: List[ChatTurn] = []
    for turn in turns:
        history.append(
            ChatTurn(
                role=turn.get("role"),
                content=turn.get("content"),
            )
        )
    return tuple(history)
