import os
from pathlib import Path


def get_env(name: str, default: str) -> str:
    return os.getenv(name, default)


BUNDLED_DATABASE_PATH = str(Path(__file__).with_name("database.json"))

HOST = get_env("HOST", "0.0.0.0")
PORT = int(get_env("PORT", "8088"))
LEGACY_DATABASE_PATH = get_env("LEGACY_DATABASE_PATH", BUNDLED_DATABASE_PATH)
LEGACY_DATABASE_URL = os.getenv("LEGACY_DATABASE_URL")
HOMEPAGE_URL = get_env("HOMEPAGE_URL", "https://github.com/axetroy/deno_registry")
UPSTREAM_TIMEOUT_SECONDS = float(get_env("UPSTREAM_TIMEOUT_SECONDS", "30"))
FRONTEND_ORIGINS = get_env("FRONTEND_ORIGINS", "")
LOG_LEVEL = get_env("LOG_LEVEL", "INFO").upper()
