"""
Embedding subsystem for scholargy.

Turns question text into the fixed-dimension vector consumed by the
article search and the structured-record vector search.

Concrete encoders (hosted Azure OpenAI, local HuggingFace) are imported
from their own modules so their client libraries load only when used.
"""

from scholargy.embeddings.encoder import EmbeddingEncoder, UnconfiguredEmbeddingEncoder

__all__ = [
    "EmbeddingEncoder",
    "UnconfiguredEmbeddingEncoder",
]
