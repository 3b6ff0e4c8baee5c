from typing import ClassVar

from aegis.analysis.analyzer import ThreatAnalyzer
from aegis.analysis.base import BaseThreatAnalyzer
from aegis.analysis.example_client_adapter import ExampleClientAdapter
from aegis.analysis.openai_client_adapter import OpenAIClientAdapter
from aegis.config.settings import Settings


class AnalyzerFactory:
    """Creates the configured threat analyzer."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    # Local servers accept any key, so an empty one is not "missing".
    KEYLESS_PROVIDERS: ClassVar[frozenset[str]] = frozenset({"ollama"})

    @classmethod
    def create(cls, settings: Settings) -> BaseThreatAnalyzer:
        """Create a configured analyzer from application settings."""
        provider = settings.analysis_provider.lower()
        if provider == "example":
            return ThreatAnalyzer(client=ExampleClientAdapter(), model="example")

        base_url = cls._resolve_base_url(provider, settings)
        api_key = settings.analysis_api_key.strip()
        if not api_key and provider not in cls.KEYLESS_PROVIDERS:
            return ThreatAnalyzer(client=None, model=settings.analysis_model_name)

        client = OpenAIClientAdapter(
            api_key=api_key or "unused",
            timeout_seconds=settings.analysis_timeout_seconds,
            base_url=base_url,
        )
        return ThreatAnalyzer(client=client, model=settings.analysis_model_name)

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = settings.analysis_base_url.strip()
            if not url:
                raise ValueError(
                    "analysis_base_url is required for analysis_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return default_base_url
        supported = [
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(f"Unknown analysis provider '{provider}'. Choose from: {supported}")
