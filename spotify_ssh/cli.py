"""CLI entrypoint and high-level application orchestration."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

import requests

from .artwork import ArtworkRenderer
from .config import (
    DEFAULT_REDIRECT_URI,
    DEFAULT_SSH_HOST,
    DEFAULT_SSH_HOST_KEY_PATH,
    DEFAULT_SSH_PORT,
    SSH_HOST_ENV,
    SSH_HOST_KEY_ENV,
    SSH_PORT_ENV,
)
from .env import load_credentials, load_env_file
from .server import NowPlayingServer
from .spotify_client import close_sessions, create_authorization_manager, create_spotify_client
from .tracks import TrackFetcher

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI options for the SSH server and the one-shot auth helper."""
    argv = sys.argv[1:] if argv is None else list(argv)
    host = os.getenv(SSH_HOST_ENV, DEFAULT_SSH_HOST)
    port = int(os.getenv(SSH_PORT_ENV, str(DEFAULT_SSH_PORT)))
    host_key = Path(os.getenv(SSH_HOST_KEY_ENV, str(DEFAULT_SSH_HOST_KEY_PATH)))

    parser = argparse.ArgumentParser(description="Spotify now-playing widget served over SSH")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO).",
    )
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the SSH server (default).")
    serve.add_argument("--host", default=host, help=f"Address to listen on (default: {host}).")
    serve.add_argument("--port", type=int, default=port, help=f"Port to listen on (default: {port}).")
    serve.add_argument(
        "--host-key",
        type=Path,
        default=host_key,
        help="Private host key; an ephemeral key is used when the file is missing.",
    )

    authorize = subparsers.add_parser("authorize", help="Obtain a refresh token for SPOTIFY_REFRESH_TOKEN.")
    authorize.add_argument(
        "--redirect-uri",
        default=DEFAULT_REDIRECT_URI,
        help=f"Redirect URI registered for the Spotify app (default: {DEFAULT_REDIRECT_URI}).",
    )

    args = parser.parse_args(argv)
    if args.command is None:
        # Serving is the default when no subcommand is given.
        args = parser.parse_args([*argv, "serve"])
    return args


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def run_authorize(redirect_uri: str) -> None:
    """Run the authorization-code flow once and print the refresh token."""
    auth_manager = create_authorization_manager(redirect_uri)
    print(f"Using redirect URI: {redirect_uri}")

    code = auth_manager.get_authorization_code()
    auth_manager.get_access_token(code, as_dict=False, check_cache=False)
    token_info = auth_manager.cache_handler.get_cached_token() or {}

    refresh_token = token_info.get("refresh_token")
    if not refresh_token:
        raise RuntimeError("Spotify did not return a refresh token")

    print("Refresh token (set it as SPOTIFY_REFRESH_TOKEN):")
    print(refresh_token)


def run_server(host: str, port: int, host_key: Path) -> None:
    credentials = load_credentials()
    sp = None
    fetcher = None
    if credentials is not None:
        sp = create_spotify_client(credentials)
        fetcher = TrackFetcher(sp)
        logger.info("Spotify client initialized")

    renderer = ArtworkRenderer(session=requests.Session())
    server = NowPlayingServer(fetcher, renderer)
    try:
        asyncio.run(server.serve(host, port, host_key))
    finally:
        # Ensure HTTP sessions are closed on normal exit or error.
        if sp is not None:
            close_sessions(sp)


def main(argv: list[str] | None = None) -> None:
    """Run the selected command: the SSH server or the auth helper."""
    # Values already exported in the environment take precedence over .env.
    load_env_file()
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "authorize":
        run_authorize(args.redirect_uri)
        return

    run_server(args.host, args.port, args.host_key)
