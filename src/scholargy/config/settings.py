from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

FANOUT_POLICIES = ("strict", "tolerant")
OVERFLOW_MODES = ("truncate", "raise")

# ---------------------------------------------------------------------
# Retrieval sources
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class RetrievalConfig:
    """
    Controls how many hits each retrieval source returns and
    where the structured records live.
    """

    article_top_k: int = 3
    record_top_k: int = 5
    keyword_top_k: int = 5
    vector_field: str = "embedding"
    records_collection: str = "ipeds_colleges"
    vector_index: str = "vector_index_on_ipeds_colleges"


# ---------------------------------------------------------------------
# Fan-out join
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class FanOutConfig:
    """
    Controls the concurrent join over the three retrieval sources.

    strict:   any single source failure fails the whole query.
    tolerant: failed sources contribute nothing; the query fails only
              when every source failed.
    """

    policy: Literal["strict", "tolerant"] = "strict"
    timeout_seconds: float = 0.0

    def __post_init__(self) -> None:
        if self.policy not in FANOUT_POLICIES:
            raise ValueError(
                f"unknown fan-out policy {self.policy!r}; expected one of {FANOUT_POLICIES}"
            )
        if self.timeout_seconds < 0:
            raise ValueError("fan-out timeout must be >= 0")


# ---------------------------------------------------------------------
# Context assembly
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class ContextConfig:
    """
    Bounds the rendered evidence handed to the completion capability.

    A budget of 0 disables the limit.
    """

    max_context_chars: int = 12000
    overflow: Literal["truncate", "raise"] = "truncate"

    def __post_init__(self) -> None:
        if self.overflow not in OVERFLOW_MODES:
            raise ValueError(
                f"unknown context overflow mode {self.overflow!r}; expected one of {OVERFLOW_MODES}"
            )


# ---------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class GenerationConfig:
    max_tokens: int = 800
    temperature: float = 0.7


# ---------------------------------------------------------------------
# Root configuration object
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class ScholargyConfig:
    """
    Root configuration object for the answer engine.

    Constructed explicitly and passed to each subsystem;
    treated as immutable policy.
    """

    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    fanout: FanOutConfig = field(default_factory=FanOutConfig)
    context: ContextConfig = field(default_factory=ContextConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
