"""
Process-wide configuration.
Read once from the environment (and .env) at startup, immutable afterwards.
"""

import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv


DEFAULT_OPENPHONE_API = "https://api.openphone.com/v1"
DEFAULT_LIBRE_URL = "https://libretranslate.com"
DEFAULT_DEEPL_URL = "https://api-free.deepl.com/v2/translate"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


@dataclass(frozen=True)
class Settings:
    openphone_api: str = DEFAULT_OPENPHONE_API
    openphone_api_key: Optional[str] = None
    openphone_from: Optional[str] = None
    openphone_user_id: Optional[str] = None

    translate_provider: str = "LIBRE"
    deepl_api_key: Optional[str] = None
    deepl_url: str = DEFAULT_DEEPL_URL
    libre_url: str = DEFAULT_LIBRE_URL
    libre_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_model: str = DEFAULT_OPENAI_MODEL

    port: int = 3000
    origin: Optional[str] = None
    http_timeout_seconds: float = 30.0
    log_level: str = "INFO"

    @property
    def allowed_origin(self) -> str:
        """CORS origin. Defaults to the local frontend on the same port."""
        return self.origin or f"http://localhost:{self.port}"

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "Settings":
        if load_dotenv_file:
            load_dotenv()

        port = int(_env("PORT", "3000"))
        return cls(
            openphone_api=_env("OPENPHONE_API", DEFAULT_OPENPHONE_API).rstrip("/"),
            openphone_api_key=_env("OPENPHONE_API_KEY"),
            openphone_from=_env("OPENPHONE_FROM"),
            openphone_user_id=_env("OPENPHONE_USER_ID"),
            translate_provider=_env("TRANSLATE_PROVIDER", "LIBRE").upper(),
            deepl_api_key=_env("DEEPL_API_KEY"),
            deepl_url=_env("DEEPL_URL", DEFAULT_DEEPL_URL),
            libre_url=_env("LIBRE_URL", DEFAULT_LIBRE_URL).rstrip("/"),
            libre_api_key=_env("LIBRE_API_KEY"),
            openai_api_key=_env("OPENAI_API_KEY"),
            openai_model=_env("OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
            port=port,
            origin=_env("ORIGIN"),
            http_timeout_seconds=float(_env("HTTP_TIMEOUT_SECONDS", "30")),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
        )

    def missing_warnings(self) -> List[str]:
        """Human-readable warnings for settings that are needed at first use."""
        warnings = []
        if not self.openphone_api_key:
            warnings.append("OPENPHONE_API_KEY not configured")
        if not self.openphone_from:
            warnings.append("OPENPHONE_FROM not configured (sender must come in the request body)")
        if self.translate_provider == "DEEPL" and not self.deepl_api_key:
            warnings.append("TRANSLATE_PROVIDER is DEEPL but DEEPL_API_KEY is missing")
        if not self.openai_api_key:
            warnings.append("OPENAI_API_KEY not configured (/translate will answer 500)")
        return warnings
