import os
from dataclasses import dataclass
from typing import List

from dotenv import load_dotenv

# Load .env as early as possible
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _parse_list(values: str) -> List[str]:
    return [x.strip() for x in values.split(",") if x.strip()]


@dataclass(frozen=True)
class Capabilities:
    chat_streaming: bool = True
    completions_streaming: bool = False


class Settings:
    # Backend
    OLLAMA_BASE: str = os.getenv("OLLAMA_BASE", "http://127.0.0.1:11434").rstrip("/")
    UPSTREAM_TIMEOUT: float = float(os.getenv("UPSTREAM_TIMEOUT", "300"))

    # Listener (used by the CLI only)
    PROXY_LISTEN: str = os.getenv("PROXY_LISTEN", "http://0.0.0.0:8080")

    # Logging
    DEBUG: bool = _env_bool("DEBUG", "false")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Translation
    DEFAULT_MODEL: str = os.getenv("DEFAULT_MODEL", "mistral:7b")
    EMBEDDING_CONCURRENCY: int = int(os.getenv("EMBEDDING_CONCURRENCY", "0"))
    CHAT_STREAMING: bool = _env_bool("CHAT_STREAMING", "true")
    COMPLETIONS_STREAMING: bool = _env_bool("COMPLETIONS_STREAMING", "false")

    # CORS
    CORS_ORIGINS: List[str] = _parse_list(os.getenv("CORS_ORIGINS", "*"))

    def __init__(self, **overrides):
        for key, value in overrides.items():
            if not hasattr(type(self), key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)

    @property
    def capabilities(self) -> Capabilities:
        return Capabilities(
            chat_streaming=self.CHAT_STREAMING,
            completions_streaming=self.COMPLETIONS_STREAMING,
        )
