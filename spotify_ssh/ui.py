"""Widget layout: borders, labels, and full-screen frame composition."""

import re

from .artwork import render_placeholder
from .config import (
    ARTWORK_COLS,
    ARTWORK_ROWS,
    MAX_LABEL_LENGTH,
    TEXT_COLUMN_WIDTH,
    TRUNCATED_LABEL_LENGTH,
)
from .tracks import Track

ENTER_ALTERNATE_SCREEN = "\033[?1049h\033[H"
LEAVE_ALTERNATE_SCREEN = "\033[?1049l"
HIDE_CURSOR = "\033[?25l"
SHOW_CURSOR = "\033[?25h"
CURSOR_HOME = "\033[H"
CLEAR_LINE_END = "\033[K"
CLEAR_SCREEN_END = "\033[J"
RESET = "\033[0m"

SPOTIFY_GREEN = (29, 185, 84)
SUBTLE_GRAY = (83, 83, 83)
LIGHT_GRAY = (179, 179, 179)
WHITE = (255, 255, 255)

ROUNDED_BORDER = ("╭", "─", "╮", "│", "╰", "╯")
DOUBLE_BORDER = ("╔", "═", "╗", "║", "╚", "╝")

ANSI_PATTERN = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")


def visible_width(text: str) -> int:
    return len(ANSI_PATTERN.sub("", text))


def style(text: str, color: tuple[int, int, int], bold: bool = False, italic: bool = False) -> str:
    if not text:
        return text
    codes = []
    if bold:
        codes.append("1")
    if italic:
        codes.append("3")
    codes.append("38;2;{};{};{}".format(*color))
    return f"\033[{';'.join(codes)}m{text}{RESET}"


def truncate(text: str, limit: int = MAX_LABEL_LENGTH, keep: int = TRUNCATED_LABEL_LENGTH) -> str:
    if len(text) > limit:
        return text[:keep] + "…"
    return text


def pad_right(line: str, width: int) -> str:
    return line + " " * max(0, width - visible_width(line))


def boxed(
    lines: list[str],
    border: tuple[str, ...],
    color: tuple[int, int, int],
    padding: tuple[int, int] = (0, 0),
) -> list[str]:
    """Draw ``border`` around ``lines`` with (vertical, horizontal) padding."""
    top_left, horizontal, top_right, vertical, bottom_left, bottom_right = border
    pad_v, pad_h = padding
    inner = max((visible_width(line) for line in lines), default=0) + pad_h * 2
    body = [""] * pad_v + lines + [""] * pad_v

    edge = style(vertical, color)
    boxed_lines = [style(top_left + horizontal * inner + top_right, color)]
    for line in body:
        boxed_lines.append(edge + pad_right(" " * pad_h + line, inner) + edge)
    boxed_lines.append(style(bottom_left + horizontal * inner + bottom_right, color))
    return boxed_lines


def join_horizontal(left: list[str], right: list[str]) -> list[str]:
    """Place ``right`` beside ``left``, centering the shorter block vertically."""
    height = max(len(left), len(right))
    left_width = max((visible_width(line) for line in left), default=0)

    def centered(block: list[str]) -> list[str]:
        top = (height - len(block)) // 2
        return [""] * top + block + [""] * (height - len(block) - top)

    return [pad_right(a, left_width) + b for a, b in zip(centered(left), centered(right))]


def build_empty_widget() -> list[str]:
    content = [
        style("♫ Spotify", SPOTIFY_GREEN, bold=True),
        "",
        style("No track", SUBTLE_GRAY),
    ]
    width = max(visible_width(line) for line in content)
    # Center each line inside the widget.
    content = [" " * ((width - visible_width(line)) // 2) + line for line in content]
    return boxed(content, ROUNDED_BORDER, SUBTLE_GRAY, padding=(1, 2))


def build_track_widget(track: Track, artwork: str | None) -> list[str]:
    art = artwork if artwork is not None else render_placeholder(ARTWORK_COLS, ARTWORK_ROWS)
    art_frame = boxed(art.split("\n"), ROUNDED_BORDER, SUBTLE_GRAY)

    status = "▶ Playing now" if track.is_playing else "■ Last played"
    text_lines = [
        style(truncate(track.name), WHITE, bold=True),
        style(truncate(track.artist), LIGHT_GRAY),
        style(truncate(track.album), SUBTLE_GRAY, italic=True),
        "",
        style(status, SPOTIFY_GREEN if track.is_playing else SUBTLE_GRAY),
    ]
    text_block = [pad_right("  " + line, TEXT_COLUMN_WIDTH) for line in text_lines]

    content = join_horizontal(art_frame, text_block)
    return boxed(content, DOUBLE_BORDER, SPOTIFY_GREEN, padding=(1, 2))


def build_view(width: int, height: int, track: Track | None, artwork: str | None) -> str:
    """Compose the full-screen frame for one session."""
    if width <= 0 or height <= 0:
        return style("● Loading...", SPOTIFY_GREEN, bold=True)

    widget = build_empty_widget() if track is None else build_track_widget(track, artwork)
    footer = style(" Press q or Enter to quit ", SUBTLE_GRAY)

    content = widget + [footer]
    content_width = max(visible_width(line) for line in content)
    # Center the widget and the footer relative to each other, then on screen.
    content = [" " * ((content_width - visible_width(line)) // 2) + line for line in content]
    left_pad = " " * max(0, (width - content_width) // 2)
    top_padding = max(0, (height - len(content)) // 2)

    lines = [""] * top_padding + [left_pad + line for line in content]
    return "\n".join(lines)


def frame_output(view: str) -> str:
    """Terminal bytes that redraw ``view`` in place over the previous frame."""
    body = (CLEAR_LINE_END + "\r\n").join(view.split("\n"))
    return CURSOR_HOME + body + CLEAR_LINE_END + CLEAR_SCREEN_END


def enter_alternate_screen() -> str:
    return ENTER_ALTERNATE_SCREEN + HIDE_CURSOR


def leave_alternate_screen() -> str:
    return RESET + SHOW_CURSOR + LEAVE_ALTERNATE_SCREEN
