"""SSH frontend: one state-machine session per connection."""

import asyncio
import logging
import signal
import time
from pathlib import Path

import asyncssh
import requests
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOauthError

from .artwork import ArtworkRenderer
from .config import ARTWORK_COLS, ARTWORK_ROWS, SHUTDOWN_TIMEOUT_SECONDS
from .session import (
    ArtworkReady,
    Command,
    FetchTrack,
    Key,
    Quit,
    RenderArtwork,
    Resize,
    ScheduleTick,
    SessionModel,
    Tick,
    TrackArrived,
    fetch_track,
    init,
    update,
    view,
)
from .tracks import TrackFetcher
from .ui import enter_alternate_screen, frame_output, leave_alternate_screen

logger = logging.getLogger(__name__)

# Failures a poll may hit; they are reported to the session, which keeps its last track.
FETCH_ERRORS = (SpotifyException, SpotifyOauthError, requests.RequestException, ValueError)

NO_PTY_NOTICE = "This widget needs an interactive terminal. Connect with: ssh -t <host>\r\n"


def key_name(data: str) -> str:
    if data == "\x03":
        return "ctrl+c"
    if data in ("\r", "\n"):
        return "enter"
    return data


def load_host_key(path: Path) -> asyncssh.SSHKey:
    if path.exists():
        return asyncssh.read_private_key(str(path))

    # Nothing is written to disk; clients see a new fingerprint after a restart.
    logger.warning("Host key %s not found, using an ephemeral Ed25519 key", path)
    return asyncssh.generate_private_key("ssh-ed25519")


class SessionRunner:
    """Drives one session: input events in, commands out, frames drawn."""

    def __init__(
        self,
        process: asyncssh.SSHServerProcess,
        fetcher: TrackFetcher | None,
        renderer: ArtworkRenderer,
    ) -> None:
        self._process = process
        self._fetcher = fetcher
        self._renderer = renderer
        self._queue: asyncio.Queue = asyncio.Queue()
        self._tasks: set[asyncio.Task] = set()
        self._timer: asyncio.TimerHandle | None = None

    def request_quit(self) -> None:
        self._queue.put_nowait(None)

    async def run(self) -> None:
        width, height, _, _ = self._process.get_terminal_size()
        model = SessionModel(width=width, height=height)
        reader = asyncio.create_task(self._read_input())

        try:
            self._write(enter_alternate_screen())
            self._draw(model)
            commands = init(model)
            while self._execute(commands):
                msg = await self._queue.get()
                if msg is None:
                    break
                model, commands = update(model, msg)
                self._draw(model)
        except BrokenPipeError:
            logger.debug("Session output closed")
        finally:
            reader.cancel()
            if self._timer is not None:
                self._timer.cancel()
            # Results still in flight belong to a finished session.
            for task in list(self._tasks):
                task.cancel()
            try:
                self._write(leave_alternate_screen())
            except BrokenPipeError:
                pass

    def _execute(self, commands: list[Command]) -> bool:
        loop = asyncio.get_running_loop()
        for command in commands:
            if isinstance(command, Quit):
                return False
            if isinstance(command, FetchTrack):
                self._spawn(self._fetch())
            elif isinstance(command, RenderArtwork):
                self._spawn(self._render(command.url))
            elif isinstance(command, ScheduleTick):
                if self._timer is not None:
                    self._timer.cancel()
                self._timer = loop.call_later(command.delay, lambda: self._queue.put_nowait(Tick(time.time())))
        return True

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _fetch(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            track = await loop.run_in_executor(None, fetch_track, self._fetcher)
        except FETCH_ERRORS as exc:
            logger.warning("Could not fetch track: %s", exc)
            await self._queue.put(TrackArrived(None, exc))
            return
        await self._queue.put(TrackArrived(track))

    async def _render(self, url: str) -> None:
        loop = asyncio.get_running_loop()
        frame = await loop.run_in_executor(
            None, self._renderer.render_from_url, url, ARTWORK_COLS, ARTWORK_ROWS
        )
        await self._queue.put(ArtworkReady(url, frame))

    async def _read_input(self) -> None:
        while True:
            try:
                data = await self._process.stdin.read(1)
            except asyncssh.TerminalSizeChanged as exc:
                await self._queue.put(Resize(exc.width, exc.height))
                continue
            except (asyncssh.BreakReceived, asyncssh.SignalReceived):
                break

            if not data:
                break
            await self._queue.put(Key(key_name(data)))

        await self._queue.put(None)

    def _draw(self, model: SessionModel) -> None:
        self._write(frame_output(view(model)))

    def _write(self, data: str) -> None:
        self._process.stdout.write(data)


class NowPlayingSSHServer(asyncssh.SSHServer):
    """Anonymous access: every client gets the widget without authenticating."""

    def connection_made(self, conn: asyncssh.SSHServerConnection) -> None:
        self._peer = conn.get_extra_info("peername")
        logger.info("Client connected: %s", self._peer)

    def connection_lost(self, exc: Exception | None) -> None:
        if exc:
            logger.info("Client %s disconnected: %s", self._peer, exc)
        else:
            logger.info("Client disconnected: %s", self._peer)

    def begin_auth(self, username: str) -> bool:
        return False


class NowPlayingServer:
    """Owns the shared fetcher and renderer, and every live session."""

    def __init__(self, fetcher: TrackFetcher | None, renderer: ArtworkRenderer) -> None:
        self.fetcher = fetcher
        self.renderer = renderer
        self._sessions: dict[SessionRunner, asyncio.Task] = {}

    async def handle_process(self, process: asyncssh.SSHServerProcess) -> None:
        if process.get_terminal_type() is None:
            process.stdout.write(NO_PTY_NOTICE)
            process.exit(0)
            return

        runner = SessionRunner(process, self.fetcher, self.renderer)
        self._sessions[runner] = asyncio.current_task()
        try:
            await runner.run()
        finally:
            self._sessions.pop(runner, None)
            process.exit(0)

    async def shutdown(self, timeout: float = SHUTDOWN_TIMEOUT_SECONDS) -> None:
        """Ask every session to quit, then cancel what is left after ``timeout``."""
        tasks = [task for task in self._sessions.values() if task is not None]
        for runner in list(self._sessions):
            runner.request_quit()
        if not tasks:
            return

        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning("Forced %d session(s) to close", len(pending))

    async def serve(self, host: str, port: int, host_key_path: Path) -> None:
        loop = asyncio.get_running_loop()
        stop = asyncio.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)

        acceptor = await asyncssh.create_server(
            NowPlayingSSHServer,
            host,
            port,
            server_host_keys=[load_host_key(host_key_path)],
            process_factory=self.handle_process,
            line_editor=False,
        )
        logger.info("SSH server started on %s:%s", host, port)

        await stop.wait()
        logger.info("Shutting down server...")
        acceptor.close()
        await self.shutdown()
        await acceptor.wait_closed()
