from typing import Any

import httpx
import openai

from aegis.analysis.client_base import BaseAnalysisClient
from aegis.analysis.exceptions import ThreatAnalysisError, ThreatAnalysisNetworkError


class OpenAIClientAdapter(BaseAnalysisClient):
    """Analysis AI client adapter built on the OpenAI-compatible chat API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
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
        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            self._file_part(filename, content_b64, mime_type),
                            {"type": "text", "text": prompt},
                        ],
                    },
                ],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ThreatAnalysisNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise ThreatAnalysisNetworkError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise ThreatAnalysisError("AI returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise ThreatAnalysisError("AI returned empty response")
        return content

    @staticmethod
    def _file_part(filename: str, content_b64: str, mime_type: str) -> dict[str, Any]:
        data_url = f"data:{mime_type};base64,{content_b64}"
        if mime_type.startswith("image/"):
            return {"type": "image_url", "image_url": {"url": data_url}}
        return {"type": "file", "file": {"filename": filename, "file_data": data_url}}
