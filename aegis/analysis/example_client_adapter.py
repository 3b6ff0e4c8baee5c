"""Example analysis client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseAnalysisClient and register the provider in AnalyzerFactory.
"""

from typing import ClassVar

from aegis.analysis.client_base import BaseAnalysisClient


class ExampleClientAdapter(BaseAnalysisClient):
    """Example adapter that returns a fixed analysis.

    No network calls. Useful for local development and tests.
    """

    DEFAULT_RESPONSE: ClassVar[str] = (
        "No embedded scripts, macros or hidden payload markers were identified. "
        "The file was rebuilt from its visible content as a precaution."
    )

    async def create_completion(
        self,
        *,
        model: str,
        prompt: str,
        filename: str,
        content_b64: str,
        mime_type: str,
    ) -> str:
        _ = model, prompt, filename, content_b64, mime_type
        return self.DEFAULT_RESPONSE
