from __future__ import annotations

from quizsmith.config import Settings
from quizsmith.errors import ProviderConfigurationError
from quizsmith.providers.base import LLMProvider

KNOWN_PROVIDERS = ("openrouter", "gemini", "openai", "anthropic", "ollama")


def check_provider_name(name: str) -> str:
    name = (name or "").strip().lower()
    if name not in KNOWN_PROVIDERS:
        raise ProviderConfigurationError(
            f"Unknown LLM provider: {name!r} (expected one of {', '.join(KNOWN_PROVIDERS)})"
        )
    return name


def get_llm(s: Settings) -> LLMProvider:
    """Build the backend named by a settings snapshot."""
    provider = check_provider_name(s.llm_provider)
    if provider == "openrouter":
        from quizsmith.providers.llm_openrouter import OpenRouterProvider
        return OpenRouterProvider(model=s.llm_model, app_url=s.app_url, app_title=s.app_title)
    elif provider == "gemini":
        from quizsmith.providers.llm_gemini import GeminiProvider
        return GeminiProvider(model=s.llm_model)
    elif provider == "openai":
        from quizsmith.providers.llm_openai import OpenAIProvider
        return OpenAIProvider(model=s.llm_model)
    elif provider == "anthropic":
        from quizsmith.providers.llm_anthropic import AnthropicProvider
        return AnthropicProvider(model=s.llm_model)
    from quizsmith.providers.llm_ollama import OllamaProvider
    return OllamaProvider(base_url=s.ollama_url, model=s.llm_model, thinking=s.llm_thinking)
