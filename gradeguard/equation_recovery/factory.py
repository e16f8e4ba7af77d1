from typing import ClassVar

from gradeguard.config.policy import GradingPolicy
from gradeguard.config.settings import Settings
from gradeguard.equation_recovery.base import BaseEquationRecoverer
from gradeguard.equation_recovery.example_client_adapter import ExampleClientAdapter
from gradeguard.equation_recovery.openai_client_adapter import OpenAIClientAdapter
from gradeguard.equation_recovery.recoverer import EquationRecoverer
from gradeguard.extraction.equations import EquationFallbackPolicy


class EquationRecovererFactory:
    """Creates the configured equation recoverer."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create(
        cls, settings: Settings, policy: GradingPolicy | None = None
    ) -> BaseEquationRecoverer:
        """Create a configured recoverer from application settings."""
        fallback = EquationFallbackPolicy.from_policy(policy or GradingPolicy.from_settings(settings))
        provider = settings.equation_recovery_provider.lower()
        if provider == "example":
            return EquationRecoverer(
                client=ExampleClientAdapter(),
                model="example",
                policy=fallback,
            )
        client = OpenAIClientAdapter(
            api_key=settings.equation_recovery_api_key,
            timeout_seconds=settings.equation_recovery_timeout_seconds or 30,
            base_url=cls._resolve_base_url(provider, settings),
        )
        return EquationRecoverer(
            client=client,
            model=settings.equation_recovery_model_name,
            policy=fallback,
            temperature=settings.equation_recovery_temperature,
        )

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = (settings.equation_recovery_base_url or "").strip()
            if not url:
                raise ValueError(
                    "equation_recovery_base_url is required for "
                    "equation_recovery_provider=openai_compatible"
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
        raise ValueError(
            f"Unknown equation recovery provider '{provider}'. Choose from: {supported}"
        )
