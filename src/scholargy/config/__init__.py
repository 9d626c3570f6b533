"""
Configuration layer for scholargy.

Policy objects are explicit (passed, not global), typed, and immutable.
Environment loading lives in the service layer, not here.
"""

from scholargy.config.settings import (
    RetrievalConfig,
    FanOutConfig,
    ContextConfig,
    GenerationConfig,
    ScholargyConfig,
)

__all__ = [
    "RetrievalConfig",
    "FanOutConfig",
    "ContextConfig",
    "GenerationConfig",
    "ScholargyConfig",
]
