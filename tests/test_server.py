import asyncio

import asyncssh
import pytest

from spotify_ssh.artwork import ArtworkRenderer, render_placeholder
from spotify_ssh.server import NO_PTY_NOTICE, NowPlayingServer, SessionRunner, key_name, load_host_key
from spotify_ssh.tracks import Track
from spotify_ssh.ui import ENTER_ALTERNATE_SCREEN, LEAVE_ALTERNATE_SCREEN
from tests.support.fakes import FakeSession


class StdinStub:
    """Replays chunks (or raises queued exceptions), then reports EOF."""

    def __init__(self, events):
        self._events = list(events)

    async def read(self, n=-1):
        await asyncio.sleep(0.01)
        if not self._events:
            return ""
        event = self._events.pop(0)
        if isinstance(event, Exception):
            raise event
        return event


class StdoutStub:
    def __init__(self):
        self.chunks: list[str] = []

    def write(self, data):
        self.chunks.append(data)

    @property
    def text(self):
        return "".join(self.chunks)


class ProcessStub:
    def __init__(self, events, size=(80, 24), term_type="xterm-256color"):
        self.stdin = StdinStub(events)
        self.stdout = StdoutStub()
        self._size = size
        self._term_type = term_type
        self.exit_status = None

    def get_terminal_type(self):
        return self._term_type

    def get_terminal_size(self):
        return (*self._size, 0, 0)

    def exit(self, status):
        self.exit_status = status


class FetcherStub:
    def __init__(self, track):
        self.track = track
        self.calls = 0

    def get_currently_playing(self):
        self.calls += 1
        return self.track

    def get_recently_played(self):
        return None


def run_session(process, fetcher=None, renderer=None):
    renderer = renderer or ArtworkRenderer(session=FakeSession())
    runner = SessionRunner(process, fetcher, renderer)
    asyncio.run(asyncio.wait_for(runner.run(), timeout=5))


@pytest.mark.parametrize(
    "data, expected",
    [("\x03", "ctrl+c"), ("\r", "enter"), ("\n", "enter"), ("q", "q"), ("x", "x")],
)
def test_key_name(data, expected):
    assert key_name(data) == expected


def test_quit_key_ends_session_and_restores_screen():
    process = ProcessStub(["q"])

    run_session(process)

    output = process.stdout.text
    assert output.startswith(ENTER_ALTERNATE_SCREEN)
    assert output.endswith(LEAVE_ALTERNATE_SCREEN)
    assert "No track" in output


def test_eof_ends_session():
    process = ProcessStub([])

    run_session(process)

    assert process.stdout.text.endswith(LEAVE_ALTERNATE_SCREEN)


def test_window_resize_redraws_widget():
    process = ProcessStub([asyncssh.TerminalSizeChanged(100, 40, 0, 0), "q"], size=(0, 0))

    run_session(process)

    frames = process.stdout.chunks
    assert "Loading" in frames[1]
    assert any("No track" in chunk for chunk in frames[2:])


def test_fetched_track_and_artwork_are_drawn():
    track = Track(name="Fade", artist="Blur", album="13", artwork_url="", is_playing=False)
    fetcher = FetcherStub(track)
    # Give the fetch and the placeholder render time to land before quitting.
    process = ProcessStub(["x", "x", "x", "x", "x", "q"])

    run_session(process, fetcher=fetcher)

    assert fetcher.calls >= 1
    output = process.stdout.text
    assert "Fade" in output
    assert render_placeholder(16, 8).split("\n")[0] in output


def test_session_without_pty_gets_notice():
    server = NowPlayingServer(fetcher=None, renderer=ArtworkRenderer(session=FakeSession()))
    process = ProcessStub([], term_type=None)

    asyncio.run(server.handle_process(process))

    assert process.stdout.text == NO_PTY_NOTICE
    assert process.exit_status == 0


def test_handle_process_exits_after_session():
    server = NowPlayingServer(fetcher=None, renderer=ArtworkRenderer(session=FakeSession()))
    process = ProcessStub(["q"])

    asyncio.run(asyncio.wait_for(server.handle_process(process), timeout=5))

    assert process.exit_status == 0


def test_shutdown_asks_sessions_to_quit():
    server = NowPlayingServer(fetcher=None, renderer=ArtworkRenderer(session=FakeSession()))

    class IdleStdin:
        async def read(self, n=-1):
            await asyncio.sleep(3600)

    async def scenario():
        process = ProcessStub([])
        process.stdin = IdleStdin()
        session = asyncio.create_task(server.handle_process(process))
        await asyncio.sleep(0.05)
        await server.shutdown(timeout=2)
        await session
        return process

    process = asyncio.run(asyncio.wait_for(scenario(), timeout=5))

    assert process.exit_status == 0
    assert process.stdout.text.endswith(LEAVE_ALTERNATE_SCREEN)


def test_missing_host_key_generates_ephemeral_key(tmp_path):
    key = load_host_key(tmp_path / "missing_key")

    assert key.get_algorithm() == "ssh-ed25519"
    assert not (tmp_path / "missing_key").exists()


def test_existing_host_key_is_loaded(tmp_path):
    path = tmp_path / "id_ed25519"
    asyncssh.generate_private_key("ssh-ed25519").write_private_key(str(path))

    key = load_host_key(path)

    assert key.get_algorithm() == "ssh-ed25519"
