"""Per-session state machine.

``update`` is a pure transition function: it takes the model and one
message and returns the new model plus the commands to run. The SSH
frontend executes those commands and feeds their results back in as
messages, so no network I/O ever happens inside ``update``.
"""

from dataclasses import dataclass, replace

from .config import POLL_INTERVAL_SECONDS
from .tracks import Track, TrackFetcher
from .ui import build_view

QUIT_KEYS = {"ctrl+c", "q", "enter"}


# Messages.


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True)
class Key:
    key: str


@dataclass(frozen=True)
class Tick:
    at: float


@dataclass(frozen=True)
class TrackArrived:
    track: Track | None
    error: Exception | None = None


@dataclass(frozen=True)
class ArtworkReady:
    url: str
    frame: str


Message = Resize | Key | Tick | TrackArrived | ArtworkReady


# Commands.


@dataclass(frozen=True)
class FetchTrack:
    pass


@dataclass(frozen=True)
class ScheduleTick:
    delay: float = POLL_INTERVAL_SECONDS


@dataclass(frozen=True)
class RenderArtwork:
    url: str


@dataclass(frozen=True)
class Quit:
    pass


Command = FetchTrack | ScheduleTick | RenderArtwork | Quit


@dataclass(frozen=True)
class SessionModel:
    width: int = 0
    height: int = 0
    track: Track | None = None
    artwork: str | None = None
    artwork_url: str = ""


def fetch_track(fetcher: TrackFetcher | None) -> Track | None:
    """Currently playing track, or the last one played when nothing is."""
    if fetcher is None:
        return None

    track = fetcher.get_currently_playing()
    if track is not None:
        return track

    track = fetcher.get_recently_played()
    if track is not None:
        track = replace(track, is_playing=False)
    return track


def init(model: SessionModel) -> list[Command]:
    return [FetchTrack(), ScheduleTick()]


def update(model: SessionModel, msg: Message) -> tuple[SessionModel, list[Command]]:
    if isinstance(msg, Resize):
        return replace(model, width=msg.width, height=msg.height), []

    if isinstance(msg, Key):
        if msg.key in QUIT_KEYS:
            return model, [Quit()]
        return model, []

    if isinstance(msg, Tick):
        return model, [FetchTrack(), ScheduleTick()]

    if isinstance(msg, TrackArrived):
        # Errors and empty answers keep whatever is on screen.
        if msg.error is not None or msg.track is None:
            return model, []

        url = msg.track.artwork_url
        if url == model.artwork_url and model.track is not None:
            # Keep the current frame on screen; a failed download is not
            # cached, so asking again retries it and a hit costs nothing.
            return replace(model, track=msg.track), [RenderArtwork(url)]
        model = replace(model, track=msg.track, artwork=None, artwork_url=url)
        return model, [RenderArtwork(url)]

    if isinstance(msg, ArtworkReady):
        # Drop artwork for a track that has since been replaced.
        if model.track is None or msg.url != model.artwork_url:
            return model, []
        return replace(model, artwork=msg.frame), []

    return model, []


def view(model: SessionModel) -> str:
    return build_view(model.width, model.height, model.track, model.artwork)
