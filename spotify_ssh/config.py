"""Shared configuration constants used across the application."""

from pathlib import Path

# Spotify OAuth scopes needed for reading the player state and history.
SCOPE = "user-read-currently-playing user-read-recently-played"
DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"

# Spotify endpoints.
TOKEN_URL = "https://accounts.spotify.com/api/token"
CURRENTLY_PLAYING_URL = "https://api.spotify.com/v1/me/player/currently-playing"

# Environment variable names for the operator's credentials.
CLIENT_ID_ENV = "SPOTIFY_CLIENT_ID"
CLIENT_SECRET_ENV = "SPOTIFY_CLIENT_SECRET"
REFRESH_TOKEN_ENV = "SPOTIFY_REFRESH_TOKEN"
ENV_FILE_PATH = Path(".env")

# SSH listener defaults, overridable from the environment or the CLI.
SSH_HOST_ENV = "SSH_HOST"
SSH_PORT_ENV = "SSH_PORT"
SSH_HOST_KEY_ENV = "SSH_HOST_KEY"
DEFAULT_SSH_HOST = "0.0.0.0"
DEFAULT_SSH_PORT = 22
DEFAULT_SSH_HOST_KEY_PATH = Path(".ssh/id_ed25519")

# Runtime tuning constants.
HTTP_TIMEOUT_SECONDS = 10
TOKEN_EXPIRY_MARGIN_SECONDS = 60  # Refresh before Spotify actually expires the token.
POLL_INTERVAL_SECONDS = 10
SHUTDOWN_TIMEOUT_SECONDS = 30

# Artwork rendering and cache.
ARTWORK_COLS = 16
ARTWORK_ROWS = 8
ARTWORK_CACHE_SIZE = 10
ARTWORK_CACHE_TTL_SECONDS = 5 * 60

# Widget layout.
MAX_LABEL_LENGTH = 26
TRUNCATED_LABEL_LENGTH = 23
TEXT_COLUMN_WIDTH = 28
