from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "llm_provider": "openrouter",
    "llm_model": "",
    "ollama_url": "http://localhost:11434",
    "app_url": "http://localhost:8765",
    "app_title": "Science Quiz Generator",
    "request_timeout": 55.0,
    "temperature": 0.7,
    "top_p": 0.95,
    "max_output_tokens": 8192,
    "search_enabled": False,
    "search_results": 5,
    "llm_thinking": False,
}


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration. Frozen: updates build a new object.

    API keys are not settings; each backend reads its own from the environment.
    """

    llm_provider: str = DEFAULTS["llm_provider"]
    llm_model: str = DEFAULTS["llm_model"]
    ollama_url: str = DEFAULTS["ollama_url"]
    app_url: str = DEFAULTS["app_url"]
    app_title: str = DEFAULTS["app_title"]
    request_timeout: float = DEFAULTS["request_timeout"]
    temperature: float = DEFAULTS["temperature"]
    top_p: float = DEFAULTS["top_p"]
    max_output_tokens: int = DEFAULTS["max_output_tokens"]
    search_enabled: bool = DEFAULTS["search_enabled"]
    search_results: int = DEFAULTS["search_results"]
    llm_thinking: bool = DEFAULTS["llm_thinking"]

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def known_fields() -> set[str]:
    return {f.name for f in fields(Settings)}


_POSITIVE_FIELDS = ("request_timeout", "max_output_tokens", "search_results")


def check_field(name: str, value):
    """Return *value* if it has the type of the field's default (ints widen to float).

    Raises ValueError otherwise, or when a count/duration field is not positive.
    """
    expected = type(DEFAULTS[name])
    if expected is float and isinstance(value, int) and not isinstance(value, bool):
        value = float(value)
    if isinstance(value, bool) != (expected is bool) or not isinstance(value, expected):
        raise ValueError(f"{name} must be a {expected.__name__} (got {value!r})")
    if name in _POSITIVE_FIELDS and value <= 0:
        raise ValueError(f"{name} must be positive (got {value!r})")
    return value


def load_settings(path: Path | None = None) -> Settings:
    path = path or CONFIG_PATH
    if path.exists():
        raw = json.loads(path.read_text())
        filtered = {k: check_field(k, v) for k, v in raw.items() if k in known_fields()}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings, path: Path | None = None) -> None:
    (path or CONFIG_PATH).write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
