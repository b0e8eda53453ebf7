from __future__ import annotations

from dataclasses import dataclass
import os


DEFAULT_AI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_AI_MODEL = "gpt-4o-mini"


@dataclass(frozen=True)
class ProfilerConfig:
    ai_api_key: str
    ai_base_url: str
    ai_model: str
    ai_temperature: float
    ai_max_tokens: int
    ai_timeout_seconds: float
    analyze_on_upload: bool
    sample_lines: int
    preview_rows: int

    @property
    def ai_enabled(self) -> bool:
        return bool(self.ai_api_key)


def _strip_quotes(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1].strip()
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    return value


def _flag(name: str, default: str = "off") -> bool:
    value = os.getenv(name, default).strip().lower()
    return value in {"1", "true", "yes", "on"}


def load_config() -> ProfilerConfig:
    base_url = _strip_quotes(os.getenv("DATA_AGENT_AI_BASE_URL", "")) or DEFAULT_AI_BASE_URL
    return ProfilerConfig(
        ai_api_key=_strip_quotes(os.getenv("OPENAI_API_KEY", "")),
        ai_base_url=base_url.rstrip("/"),
        ai_model=_strip_quotes(os.getenv("DATA_AGENT_AI_MODEL", "")) or DEFAULT_AI_MODEL,
        ai_temperature=_float_env("DATA_AGENT_AI_TEMPERATURE", 0.1),
        ai_max_tokens=_int_env("DATA_AGENT_AI_MAX_TOKENS", 2000),
        ai_timeout_seconds=_float_env("DATA_AGENT_AI_TIMEOUT_SECONDS", 30.0),
        analyze_on_upload=_flag("DATA_AGENT_AI_ON_UPLOAD", "on"),
        sample_lines=_int_env("DATA_AGENT_SAMPLE_LINES", 20),
        preview_rows=_int_env("DATA_AGENT_PREVIEW_ROWS", 50),
    )
