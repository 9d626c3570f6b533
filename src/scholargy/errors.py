from __future__ import annotations


class ScholargyError(Exception):
    """
    Base class for every error raised by the answer engine.
    """


class ValidationError(ScholargyError):
    """
    Bad or missing input. Raised before any retrieval work begins.
    """


class SourceUnavailable(ScholargyError):
    """
    A retrieval capability is unconfigured, unreachable, or failed.
    """

    def __init__(self, message: str, *, source_name: str | None = None) -> None:
        super().__init__(message)
        self.source_name = source_name


class EmbeddingUnavailable(SourceUnavailable):
    """
    The embedding capability is unconfigured or the call errored.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, source_name="embedding")


class GenerationUnavailable(SourceUnavailable):
    """
    The completion capability could not be opened.

    Only raised before response headers are committed.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, source_name="completion")


class UpstreamGenerationError(ScholargyError):
    """
    The completion capability failed after streaming began.
    """


class ContextOverflow(ScholargyError):
    """
    Rendered evidence exceeds the configured context budget.
    """

    def __init__(self, message: str, *, size: int, budget: int) -> None:
        super().__init__(message)
        self.size = size
        self.budget = budget


class MalformedRecord(ScholargyError):
    """
    A record returned by a source lacks a required field.
    """
