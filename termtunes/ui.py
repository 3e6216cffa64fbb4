"""
Rendering for termtunes.

Everything here is pure: the session goes in, a list of screen lines comes
out. The terminal module is responsible for writing them.
"""
import re
import unicodedata
from functools import lru_cache
from typing import List, Optional, Tuple

from .events import KeyMap
from .state import FilterState, Session

# ANSI styles
C_HEADER = "\033[1m"
C_SECONDARY = "\033[90m"
C_SELECTION = "\033[7m"
C_PLAYING = "\033[32m"
C_STATUS = "\033[33m"
C_RESET = "\033[0m"

BAR_FILLED = "█"
BAR_EMPTY = "░"
DESCRIPTION_SEPARATOR = "⋅"

# Rows above and below the track list: progress, blank, title, status / help
HEADER_ROWS: int = 4
FOOTER_ROWS: int = 1
ROWS_PER_ITEM: int = 3
MIN_BAR_WIDTH: int = 1


def _strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text for accurate length calculation."""
    return re.sub(r"\x1b\[[0-?]*[ -/]*[@-~]", "", text)


@lru_cache(maxsize=4096)
def _char_display_width(ch: str) -> int:
    """Return display width of a single Unicode character (0, 1 or 2)."""
    if not ch:
        return 0
    cat = unicodedata.category(ch)
    if cat in ("Mn", "Me", "Cf"):
        return 0
    ea = unicodedata.east_asian_width(ch)
    if ea in ("F", "W"):
        return 2
    return 1


@lru_cache(maxsize=4096)
def display_width(text: str) -> int:
    """Return the visible terminal width of `text`, ignoring ANSI escapes."""
    s = _strip_ansi(text)
    return sum(_char_display_width(ch) for ch in s)


def truncate_to_width(text: str, max_width: int, ellipsis: str = "…") -> str:
    """Truncate `text` (plain text) to fit in `max_width` display columns.

    Adds `ellipsis` when there's room; otherwise hard-truncates to fit.
    """
    if max_width <= 0:
        return ""
    if display_width(text) <= max_width:
        return text

    e_width = display_width(ellipsis)
    target = max_width if e_width >= max_width else max_width - e_width

    out = []
    cur = 0
    for ch in text:
        w = _char_display_width(ch)
        if cur + w > target:
            break
        out.append(ch)
        cur += w

    if e_width >= max_width:
        return "".join(out)
    return "".join(out) + ellipsis


def pad_to_width(text: str, width: int) -> str:
    return text + " " * max(0, width - display_width(text))


def list_capacity(height: int) -> int:
    """Number of track entries that fit on a screen of `height` rows."""
    return max(1, (height - HEADER_ROWS - FOOTER_ROWS) // ROWS_PER_ITEM)


def progress_bar_span(session: Session) -> Tuple[int, int]:
    """Return (first column, width) of the progress bar on row 0."""
    used = 2 + display_width(session.glyph) + display_width(session.progress_text)
    return 1, max(MIN_BAR_WIDTH, session.width - used)


def render_progress_bar(fraction: float, width: int) -> str:
    fraction = max(0.0, min(1.0, fraction))
    filled = int(round(fraction * width))
    return BAR_FILLED * filled + BAR_EMPTY * (width - filled)


def render_progress_line(session: Session) -> str:
    start, width = progress_bar_span(session)
    bar = render_progress_bar(session.fraction, width)
    return " " * start + bar + session.glyph + session.progress_text + " "


def _render_item(session: Session, index: int, selected: bool, inner_width: int) -> List[str]:
    track = session.tracks[index]
    playing = index == session.now_playing

    marker = "♪ " if playing else "  "
    title = truncate_to_width(track.title, inner_width - 2)
    description = truncate_to_width(
        f"{track.album}{DESCRIPTION_SEPARATOR}{track.artist}", inner_width - 2
    )

    title_style = C_SELECTION if selected else (C_PLAYING if playing else "")
    title_line = f" {title_style}{marker}{pad_to_width(title, inner_width - 2)}{C_RESET}"
    description_line = f" {C_SECONDARY}  {description}{C_RESET}"
    return [title_line, description_line, ""]


def render_help(keys: KeyMap, width: int) -> str:
    parts = [f"{b.help_key} {b.help_text}" for b in keys.short_help()]
    return C_SECONDARY + truncate_to_width(" " + " • ".join(parts), width) + C_RESET


def render_full_help(keys: KeyMap, width: int) -> List[str]:
    """One line per binding, columns laid side by side."""
    columns = [[f"{b.help_key} {b.help_text}" for b in column] for column in keys.full_help()]
    column_width = max(display_width(entry) for column in columns for entry in column) + 3
    lines = []
    for row in range(max(len(column) for column in columns)):
        cells = [pad_to_width(column[row] if row < len(column) else "", column_width)
                 for column in columns]
        lines.append(C_SECONDARY + truncate_to_width(" " + "".join(cells).rstrip(), width) + C_RESET)
    return lines


def render_title(session: Session, width: int) -> str:
    selection = session.selection
    title = f" {C_HEADER}Tracks{C_RESET}"
    if selection.filter_state is FilterState.FILTERING:
        title = f" Filter: {truncate_to_width(selection.filter_text, width - 12)}█"
    elif selection.filter_state is FilterState.APPLIED:
        title += f" {C_SECONDARY}[filter: {truncate_to_width(selection.filter_text, width - 20)}]{C_RESET}"
    if session.repeat:
        title += f" {C_SECONDARY}(repeat){C_RESET}"
    return title


def render(session: Session, keys: Optional[KeyMap] = None) -> List[str]:
    """Render the whole screen as `session.height` lines."""
    keys = keys or KeyMap()
    width, height = max(10, session.width), max(HEADER_ROWS + FOOTER_ROWS + 1, session.height)
    inner_width = width - 2

    status = f" {C_STATUS}{truncate_to_width(session.status_message, inner_width)}{C_RESET}" \
        if session.status_message else ""

    lines = [render_progress_line(session), "", render_title(session, width), status]

    if session.show_full_help:
        lines.extend(render_full_help(keys, width))
    else:
        visible = session.visible_indices
        capacity = list_capacity(height)
        offset = session.selection.scroll_offset
        for row in range(offset, min(len(visible), offset + capacity)):
            selected = row == session.selection.cursor
            lines.extend(_render_item(session, visible[row], selected, inner_width))
        if not session.tracks:
            lines.append(f" {C_SECONDARY}No items.{C_RESET}")
        elif not visible:
            lines.append(f" {C_SECONDARY}No matches.{C_RESET}")

    body_rows = height - FOOTER_ROWS
    lines = lines[:body_rows]
    lines.extend([""] * (body_rows - len(lines)))
    lines.append(render_help(keys, width))
    return lines
