"""
scholargy
=========

A hybrid retrieval-augmented answer engine for college and
scholarship questions.

A question is embedded once, fanned out to an article corpus and to
vector and keyword search over institution records, fused by record
identity into a bounded, labeled context, and answered by a hosted
completion model under a grounding instruction. The answer is relayed
to the caller fragment by fragment.

Public API:
- FanOutCoordinator
- fuse_evidence
- ContextAssembler
- GroundedPromptBuilder
- StreamingRelay
"""

from scholargy.rag.fanout import FanOutCoordinator
from scholargy.rag.fusion import fuse_evidence
from scholargy.rag.context_builder import ContextAssembler
from scholargy.rag.prompt import GroundedPromptBuilder
from scholargy.rag.generator import StreamingRelay

__all__ = [
    "FanOutCoordinator",
    "fuse_evidence",
    "ContextAssembler",
    "GroundedPromptBuilder",
    "StreamingRelay",
]

__version__ = "0.1.0"
