from abc import ABC, abstractmethod


class BaseAnalysisClient(ABC):
    """Contract for provider-specific analysis AI clients."""

    @abstractmethod
    async def create_completion(
        self,
        *,
        model: str,
        prompt: str,
        filename: str,
        content_b64: str,
        mime_type: str,
    ) -> str:
        """Send the prompt plus the inline file and return the provider's text."""
