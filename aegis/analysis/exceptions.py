class ThreatAnalysisError(Exception):
    """Raised when threat analysis fails."""


class ThreatAnalysisNetworkError(ThreatAnalysisError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""
