"""
Settings for the assistant, read from the environment.

A .env file in the project root is loaded first (python-dotenv), then
every value is read once into an immutable Settings object. API keys
and the database password only ever come from the environment.
"""
import os
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# Populate os.environ before any setting is read
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(env_path)


@dataclass(frozen=True)
class Settings:
    """
    Immutable runtime configuration.

    Attributes:
        app_name: Name used in startup/shutdown log lines
        app_env: development, staging or production
        log_level: Console log level
        database_url: SQLAlchemy URL of the storage database
        llm_provider: Which chat-completion provider to build ("groq" or "gemini")
        groq_api_key: Groq credential (empty when unused)
        google_api_key: Gemini credential (empty when unused)
        llm_model: Model identifier for the selected provider
        llm_temperature: Sampling temperature for answers
        llm_max_tokens: Answer length cap
        llm_timeout_seconds: Deadline for one streamed answer
        llm_fact_extraction: Also ask the LLM to extract user facts
        assistant_name: Persona name used when storage has none
        short_term_memory_size: Messages kept per user in short-term memory
        breaker_max_failures: Failures before the LLM circuit opens
        breaker_reset_timeout_seconds: Cooldown before a half-open trial
        rate_limit_*: Token-bucket refill rate and burst per IP and per user
        ws_messages_per_minute: Per-connection WebSocket message budget
    """
    app_name: str
    app_env: str
    log_level: str

    database_url: str

    llm_provider: str
    groq_api_key: str
    google_api_key: str
    llm_model: str
    llm_temperature: float
    llm_max_tokens: int
    llm_timeout_seconds: int
    llm_fact_extraction: bool

    assistant_name: str
    short_term_memory_size: int

    breaker_max_failures: int
    breaker_reset_timeout_seconds: int
    rate_limit_ip_per_second: float
    rate_limit_ip_burst: int
    rate_limit_user_per_second: float
    rate_limit_user_burst: int
    ws_messages_per_minute: int

    def is_development(self) -> bool:
        return self.app_env.lower() == "development"

    def is_production(self) -> bool:
        return self.app_env.lower() == "production"


def _get_env(key: str, default: Optional[str] = None) -> str:
    """
    Read one variable, falling back to `default`.

    Raises:
        ValueError: The variable is unset and has no default
    """
    value = os.environ.get(key, default)
    if value is None:
        raise ValueError(f"Environment variable '{key}' is required; add it to .env")
    return value


def _get_bool(key: str, default: str) -> bool:
    return _get_env(key, default).strip().lower() in ("1", "true", "yes")


def _default_model(provider: str) -> str:
    if provider == "gemini":
        return "gemini-2.0-flash"
    return "llama-3.3-70b-versatile"


def _build_database_url() -> str:
    """
    DATABASE_URL when set (managed databases), otherwise a MySQL URL
    assembled from DB_HOST, DB_PORT, DB_USER, DB_PASSWORD and DB_NAME.
    """
    url = os.environ.get("DATABASE_URL")

    if not url:
        url = "mysql+pymysql://{user}:{password}@{host}:{port}/{name}".format(
            user=_get_env("DB_USER", "root"),
            password=_get_env("DB_PASSWORD", ""),
            host=_get_env("DB_HOST", "localhost"),
            port=_get_env("DB_PORT", "3306"),
            name=_get_env("DB_NAME", "nestchat"),
        )

    # Hosting providers hand out driverless URLs
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    elif url.startswith("mysql://"):
        url = "mysql+pymysql://" + url[len("mysql://"):]

    # pymysql rejects the ssl-mode query parameter
    url = re.sub(r"[?&]ssl-mode=[^&]*", "", url)
    if "?" not in url and "&" in url:
        url = url.replace("&", "?", 1)

    return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Build the process-wide Settings on first use.

    Raises:
        ValueError: A numeric variable cannot be parsed
    """
    provider = _get_env("LLM_PROVIDER", "groq").lower()

    return Settings(
        app_name=_get_env("APP_NAME", "NestChat"),
        app_env=_get_env("APP_ENV", "development"),
        log_level=_get_env("LOG_LEVEL", "INFO"),

        database_url=_build_database_url(),

        llm_provider=provider,
        groq_api_key=_get_env("GROQ_API_KEY", ""),
        google_api_key=_get_env("GOOGLE_API_KEY", ""),
        llm_model=_get_env("LLM_MODEL", _default_model(provider)),
        llm_temperature=float(_get_env("LLM_TEMPERATURE", "0.7")),
        llm_max_tokens=int(_get_env("LLM_MAX_TOKENS", "200")),
        llm_timeout_seconds=int(_get_env("LLM_TIMEOUT_SECONDS", "30")),
        llm_fact_extraction=_get_bool("LLM_FACT_EXTRACTION", "false"),

        assistant_name=_get_env("ASSISTANT_NAME", "MomBot"),
        short_term_memory_size=int(_get_env("SHORT_TERM_MEMORY_SIZE", "10")),

        breaker_max_failures=int(_get_env("BREAKER_MAX_FAILURES", "5")),
        breaker_reset_timeout_seconds=int(_get_env("BREAKER_RESET_TIMEOUT_SECONDS", "300")),
        rate_limit_ip_per_second=float(_get_env("RATE_LIMIT_IP_PER_SECOND", "10")),
        rate_limit_ip_burst=int(_get_env("RATE_LIMIT_IP_BURST", "20")),
        rate_limit_user_per_second=float(_get_env("RATE_LIMIT_USER_PER_SECOND", "2")),
        rate_limit_user_burst=int(_get_env("RATE_LIMIT_USER_BURST", "5")),
        ws_messages_per_minute=int(_get_env("WS_MESSAGES_PER_MINUTE", "20")),
    )
