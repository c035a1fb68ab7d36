from config import OPENROUTER_API_KEY
from errors import ConfigurationError
from providers.base import BaseProvider
from providers.openrouter_provider import OpenRouterProvider


def get_llm_provider() -> BaseProvider:
    """FastAPI dependency - the configured language-model provider."""
    if not OPENROUTER_API_KEY:
        raise ConfigurationError("OPENROUTER_API_KEY is not set")
    return OpenRouterProvider(api_key=OPENROUTER_API_KEY)


__all__ = [
    "BaseProvider",
    "OpenRouterProvider",
    "get_llm_provider",
]
