from abc import ABC, abstractmethod


class BaseThreatAnalyzer(ABC):
    """Contract for threat-surface analysis adapters."""

    @abstractmethod
    async def analyze(self, filename: str, content_b64: str, mime_type: str) -> str:
        """Describe the threat surface of a file in plain text.

        Args:
            filename: Original filename as submitted.
            content_b64: File content, base64-encoded.
            mime_type: MIME type reported for the file.

        Returns:
            Human-readable analysis. Degraded results (missing credentials,
            provider failures) are returned as fallback text, never raised.
        """
