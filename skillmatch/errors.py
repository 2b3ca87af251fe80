"""
Error taxonomy shared by the transport, data and LLM layers.
"""

from __future__ import annotations


class SkillMatchError(Exception):
    """Base class for every error raised by skillmatch."""


class TransportError(SkillMatchError):
    """Streaming channel could not be opened, failed, or timed out."""


class ProtocolError(SkillMatchError):
    """Reserved: frame classification is total, so this is never raised."""


class UpstreamError(SkillMatchError):
    """The remote model service answered with a non-success response."""


class CompletionError(UpstreamError):
    """A blocking completion call failed.

    ``status`` carries the HTTP status when the failure came from a response.
    """

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class DataError(SkillMatchError):
    """One uploaded file could not be turned into a record."""

    def __init__(self, message: str, filename: str = ""):
        super().__init__(message)
        self.filename = filename


class ExtractionError(DataError):
    """Unreadable or unsupported file."""


class StructuringError(DataError):
    """The model did not return usable structured CV data."""
