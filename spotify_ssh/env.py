"""Environment-variable helpers and credential loading."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .config import CLIENT_ID_ENV, CLIENT_SECRET_ENV, ENV_FILE_PATH, REFRESH_TOKEN_ENV

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    client_id: str
    client_secret: str
    refresh_token: str


def load_env_file(path: Path = ENV_FILE_PATH) -> None:
    """Load simple KEY=VALUE pairs from a .env file into process env."""
    if not path.exists():
        return

    with path.open("r", encoding="utf-8") as env_file:
        for raw_line in env_file:
            line = raw_line.strip()
            # Skip comments, blank lines, and malformed rows.
            if not line or line.startswith("#") or "=" not in line:
                continue

            # Split once so values containing '=' are preserved.
            key, value = line.split("=", 1)
            os.environ.setdefault(key.strip(), value.strip().strip("'\""))


def get_required_env(name: str) -> str:
    """Fetch a required environment variable or raise a clear error."""
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def load_credentials() -> Credentials | None:
    """Read the operator's Spotify credentials, or None when any is missing."""
    values = {name: os.getenv(name, "").strip() for name in (CLIENT_ID_ENV, CLIENT_SECRET_ENV, REFRESH_TOKEN_ENV)}
    missing = [name for name, value in values.items() if not value]
    if missing:
        logger.warning("Spotify credentials not found (%s), widget disabled", ", ".join(missing))
        return None

    return Credentials(
        client_id=values[CLIENT_ID_ENV],
        client_secret=values[CLIENT_SECRET_ENV],
        refresh_token=values[REFRESH_TOKEN_ENV],
    )
