"""
Retrieval-augmented answer pipeline for scholargy.

This module performs:
- concurrent fan-out across the retrieval sources
- identity-based fusion of their results
- bounded context assembly
- grounded prompt construction
- incremental relay of the generated answer
"""

from scholargy.rag.evidence import (
    ChatTurn,
    Query,
    RetrievalHit,
    FusedEvidenceSet,
    SourceKind,
    SearchOrigin,
)
from scholargy.rag.fanout import FanOutCoordinator, SourceResults
from scholargy.rag.fusion import fuse_evidence
from scholargy.rag.context_builder import ContextAssembler, ContextBlock
from scholargy.rag.prompt import GroundedPromptBuilder, GROUNDING_INSTRUCTION
from scholargy.rag.generator import CompletionBackend, StreamingRelay, RelayState

__all__ = [
    "ChatTurn",
    "Query",
    "RetrievalHit",
    "FusedEvidenceSet",
    "SourceKind",
    "SearchOrigin",
    "FanOutCoordinator",
    "SourceResults",
    "fuse_evidence",
    "ContextAssembler",
    "ContextBlock",
    "GroundedPromptBuilder",
    "GROUNDING_INSTRUCTION",
    "CompletionBackend",
    "StreamingRelay",
    "RelayState",
]
