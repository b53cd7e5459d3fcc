"""
Configuration for the SecurePass web server.
"""
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")


@dataclass(frozen=True)
class Settings:
    host: str = "127.0.0.1"
    port: int = 3000

    # Directory served for every non-API path
    static_dir: str = STATIC_DIR

    # Request bodies above this many bytes are refused
    max_body_bytes: int = 1_000_000

    cors_origin: str = "*"

    def override(self, **changes) -> "Settings":
        """Copy with the given fields replaced; None values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def _int_from_env(environ: Mapping[str, str], key: str, default: int) -> int:
    value = environ.get(key)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read settings from the environment, falling back to defaults."""
    env = os.environ if environ is None else environ
    defaults = Settings()

    return Settings(
        host=env.get("SECUREPASS_HOST", defaults.host),
        port=_int_from_env(env, "PORT", defaults.port),
        static_dir=os.path.abspath(env.get("SECUREPASS_STATIC_DIR", defaults.static_dir)),
        max_body_bytes=_int_from_env(env, "SECUREPASS_MAX_BODY_BYTES", defaults.max_body_bytes),
        cors_origin=env.get("SECUREPASS_CORS_ORIGIN", defaults.cors_origin),
    )
