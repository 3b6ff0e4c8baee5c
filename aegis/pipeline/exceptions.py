class PipelineError(Exception):
    """Base exception for sanitization pipeline errors."""


class ReconstructionUnavailableError(PipelineError):
    """Raised when a file type has no safe reconstruction path."""
