"""AI-backed threat surface analyzer with degraded fallbacks."""

from pathlib import Path

from aegis.analysis.base import BaseThreatAnalyzer
from aegis.analysis.client_base import BaseAnalysisClient
from aegis.analysis.exceptions import ThreatAnalysisError
from aegis.analysis.prompt_loader import load_prompt_template
from aegis.logging.logger import Log

MISSING_CREDENTIALS_TEXT = "Analysis unavailable: API Key missing."
PROCESSING_ERROR_TEXT = "Analysis skipped due to processing error."
EMPTY_RESULT_TEXT = "No analysis generated."


class ThreatAnalyzer(BaseThreatAnalyzer):
    """Asks an AI provider for a short threat surface summary of a file.

    A missing client stands for missing credentials. Provider failures are
    logged and turned into fallback text so the pipeline keeps going.
    """

    def __init__(
        self,
        *,
        client: BaseAnalysisClient | None,
        model: str,
        prompt_template_path: Path | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._prompt_template = load_prompt_template(prompt_template_path)

    async def analyze(self, filename: str, content_b64: str, mime_type: str) -> str:
        if self._client is None:
            return MISSING_CREDENTIALS_TEXT

        prompt = self._prompt_template.format(filename=filename)
        Log.debug(f"Threat analysis prompt:\n{prompt}")
        try:
            text = await self._client.create_completion(
                model=self._model,
                prompt=prompt,
                filename=filename,
                content_b64=content_b64,
                mime_type=mime_type,
            )
        except ThreatAnalysisError as exc:
            Log.error(f"Threat analysis failed for {filename}: {exc}")
            return PROCESSING_ERROR_TEXT

        text = text.strip()
        if not text:
            return EMPTY_RESULT_TEXT
        Log.info(f"Threat analysis complete for {filename}: {len(text)} chars")
        return text
