"""
Error Taxonomy — Failures Surfaced by the Extraction Service

The first group is escalated to the caller as a non-2xx HTTP response.
PersistenceError is raised by stores but absorbed by the pipeline.
Extraction misses and parse failures are not exceptions at all; they are
reported as messages on the parse outcome.
"""


class ExtractorError(Exception):
    """Base class for all service errors."""


class ValidationError(ExtractorError, ValueError):
    """The input text is missing, not a string, or blank."""


class ConfigurationError(ExtractorError):
    """Required configuration (credential, URL, deadline) is missing or invalid."""


class UpstreamTimeoutError(ExtractorError, TimeoutError):
    """The inference call did not finish before the deadline."""

    def __init__(self, timeout: float):
        super().__init__(f"Inference endpoint did not respond within {timeout:.1f}s")
        self.timeout = timeout


class UpstreamError(ExtractorError):
    """The inference endpoint failed or returned something unusable."""

    def __init__(self, message: str, status: int | None = None, details: str = ""):
        super().__init__(message)
        self.status = status
        self.details = details


class EmptyUpstreamResponseError(UpstreamError):
    """A 2xx response carried no generated text."""


class UnrecognizedShapeError(EmptyUpstreamResponseError):
    """A 2xx response matched none of the known payload shapes."""


class PersistenceError(ExtractorError):
    """The durable write of an extraction failed."""
