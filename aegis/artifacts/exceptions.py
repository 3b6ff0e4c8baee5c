class ArtifactNotReadyError(Exception):
    """Raised when an artifact is requested for a task that is still running."""
