from typing import ClassVar

from doclyze.backend.base import BaseAIBackend
from doclyze.backend.example_adapter import ExampleBackend
from doclyze.backend.openai_adapter import OpenAIBackend
from doclyze.config.settings import Settings
from doclyze.logging.logger import Log


class BackendFactory:
    """Creates the configured AI backend adapter."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(cls, settings: Settings) -> BaseAIBackend | None:
        """Create the backend from settings.

        Returns None when the backend is disabled or has no credentials, so
        callers can fail documents definitively instead of waiting on it.
        """
        provider = settings.ai_provider.lower()
        if provider == "disabled":
            Log.warning("AI backend disabled by configuration")
            return None
        if provider == "example":
            return ExampleBackend()
        base_url = cls._resolve_base_url(provider, settings)
        if not settings.openai_api_key and provider != "ollama":
            Log.warning(f"AI provider '{provider}' has no API key; backend unavailable")
            return None
        return OpenAIBackend(
            api_key=settings.openai_api_key or "ollama",
            model=settings.openai_model_name,
            embedding_model=settings.openai_embedding_model_name,
            timeout_seconds=settings.openai_timeout_seconds,
            base_url=base_url,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return settings.openai_base_url
        if provider == "openai_compatible":
            url = (settings.openai_base_url or "").strip()
            if not url:
                raise ValueError(
                    "openai_base_url is required for ai_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return settings.openai_base_url or default_base_url
        supported = [
            "disabled",
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(f"Unknown AI provider '{provider}'. Choose from: {supported}")
