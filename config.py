# config.py
import logging
import os
import secrets
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

log = logging.getLogger(__name__)

# Truthy: 1, true, on, yes. Falsy: 0, false, off, no, empty.
# Anything else is treated as disabled.
TRUTHY = {"1", "true", "on", "yes"}
FALSY = {"0", "false", "off", "no", ""}

FLAG_ENV = {
    "guest_accounts": "APP_ENABLE_GUEST_ACCOUNTS",
    "share_conversations": "APP_ENABLE_SHARE_CONVERSATIONS",
    "upload_files": "APP_ENABLE_UPLOAD_FILES",
    "weather_tool": "APP_ENABLE_WEATHER_TOOL",
}

ALLOWED_UPLOAD_MIME_TYPES = ("image/jpeg", "image/png", "image/webp")
MAX_UPLOAD_SIZE_BYTES = 7 * 1024 * 1024
MAX_UPLOAD_SIZE_LABEL = "7MB"

DEFAULT_CHAT_MODEL = "chat-model"
CHAT_MODEL_IDS = ("chat-model", "chat-model-reasoning")


def parse_flag(raw: Optional[str]) -> bool:
    if not raw:
        return False
    value = raw.strip().lower()
    if value in TRUTHY:
        return True
    if value in FALSY:
        return False
    return False


def parse_int(name: str, raw: Optional[str], default: Optional[int]) -> Optional[int]:
    """Blank means default; a malformed value is logged and ignored."""
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        log.warning("%s=%r is not an integer; using %s", name, raw, default)
        return default


@dataclass(frozen=True)
class FeatureFlags:
    guest_accounts: bool = False
    share_conversations: bool = False
    upload_files: bool = False
    weather_tool: bool = False

    @classmethod
    def from_env(cls, environ=None) -> "FeatureFlags":
        environ = os.environ if environ is None else environ
        return cls(**{name: parse_flag(environ.get(var)) for name, var in FLAG_ENV.items()})

    def serialize(self) -> dict:
        """camelCase shape expected by the browser client."""
        return {
            "guestAccounts": self.guest_accounts,
            "shareConversations": self.share_conversations,
            "uploadFiles": self.upload_files,
            "weatherTool": self.weather_tool,
        }


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite+aiosqlite:///./chat_app.db"
    auth_secret: str = field(default_factory=lambda: secrets.token_hex(32))
    production: bool = False

    ollama_base_url: str = "http://localhost:11434"
    chat_model: str = "llama3.1"
    reasoning_model: str = "qwen3"
    title_model: str = "llama3.1"
    artifact_model: str = "llama3.1"

    model_catalog_url: str = "https://models.dev/api.json"
    model_catalog_provider: str = "ollama"
    model_catalog_ttl_seconds: int = 24 * 60 * 60

    # None disables resumable streams.
    stream_cache_ttl_seconds: Optional[int] = None
    max_duration_seconds: int = 60

    upload_dir: str = "./uploads"
    product_url: str = "http://localhost:8000"
    email_from: Optional[str] = None
    log_level: str = "INFO"

    flags: FeatureFlags = field(default_factory=FeatureFlags)

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        env = os.environ

        auth_secret = env.get("AUTH_SECRET")
        if not auth_secret:
            auth_secret = secrets.token_hex(32)
            log.warning("AUTH_SECRET is not set; using ephemeral secret (sessions reset on restart).")

        stream_ttl = parse_int("STREAM_CACHE_TTL_SECONDS", env.get("STREAM_CACHE_TTL_SECONDS"), None)
        max_duration = parse_int("MAX_DURATION_SECONDS", env.get("MAX_DURATION_SECONDS"), cls.max_duration_seconds)

        return cls(
            database_url=env.get("DATABASE_URL", cls.database_url),
            auth_secret=auth_secret,
            production=env.get("APP_ENV", "development") == "production",
            ollama_base_url=env.get("OLLAMA_BASE_URL", cls.ollama_base_url),
            chat_model=env.get("OLLAMA_CHAT_MODEL", cls.chat_model),
            reasoning_model=env.get("OLLAMA_REASONING_MODEL", cls.reasoning_model),
            title_model=env.get("OLLAMA_TITLE_MODEL", cls.title_model),
            artifact_model=env.get("OLLAMA_ARTIFACT_MODEL", cls.artifact_model),
            model_catalog_url=env.get("MODEL_CATALOG_URL", cls.model_catalog_url),
            model_catalog_provider=env.get("MODEL_CATALOG_PROVIDER", cls.model_catalog_provider),
            stream_cache_ttl_seconds=stream_ttl,
            max_duration_seconds=max_duration,
            upload_dir=env.get("UPLOAD_DIR", cls.upload_dir),
            product_url=env.get("PRODUCT_URL", cls.product_url),
            email_from=env.get("EMAIL_FROM") or None,
            log_level=env.get("LOG_LEVEL", cls.log_level),
            flags=FeatureFlags.from_env(env),
        )
