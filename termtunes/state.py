"""
State management module for termtunes.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from .logging_config import get_logger

if TYPE_CHECKING:
    from .controller import PlaybackController
    from .library import Track

logger = get_logger('state')

MAX_VOLUME: int = 128

GLYPH_PLAYING = " ▶ "
GLYPH_PAUSED = " ⏸ "
GLYPH_STOPPED = " ■ "

EMPTY_PROGRESS = "--:-- / --:--"


class AdjustmentKind(Enum):
    VOLUME = "volume"
    SEEK = "seek"


class FilterState(Enum):
    """Title filter lifecycle: typing a query, or browsing its matches."""
    UNFILTERED = "unfiltered"
    FILTERING = "filtering"
    APPLIED = "applied"


@dataclass
class PlaybackState:
    """State of the one open track. Times are integer milliseconds."""
    track_index: int
    total: int
    position: int = 0
    volume: int = MAX_VOLUME
    playing: bool = True

    def __post_init__(self):
        # A zero-length decode still needs a non-zero denominator
        self.total = max(1, self.total)
        self.position = max(0, min(self.total, self.position))
        self.volume = max(0, min(MAX_VOLUME, self.volume))

    @property
    def fraction(self) -> float:
        return self.position / self.total


@dataclass
class PendingAdjustment:
    """Coalescing window for one adjustment kind."""
    kind: AdjustmentKind
    delta: int = 0
    generation: int = 0


@dataclass
class ListState:
    """Track list selection, scrolling and title filter.

    ``cursor`` indexes the visible (possibly filtered) rows, not the tracks.
    """
    cursor: int = 0
    scroll_offset: int = 0
    filter_text: str = ""
    filter_state: FilterState = FilterState.UNFILTERED

    def is_cursor_valid(self, max_items: int) -> bool:
        """Check if cursor position is valid."""
        return 0 <= self.cursor < max_items

    def move(self, delta: int, max_items: int) -> None:
        """Move the cursor with bounds checking."""
        if max_items <= 0:
            self.cursor = 0
            return
        self.cursor = max(0, min(max_items - 1, self.cursor + delta))
        logger.debug(f"Cursor moved by {delta} to {self.cursor}")

    def jump(self, index: int, max_items: int) -> None:
        self.move(index - self.cursor, max_items)

    def scroll_into_view(self, visible: int) -> None:
        """Adjust scroll offset so the cursor is on screen."""
        visible = max(1, visible)
        if self.cursor < self.scroll_offset:
            self.scroll_offset = self.cursor
        elif self.cursor >= self.scroll_offset + visible:
            self.scroll_offset = self.cursor - visible + 1


@dataclass
class Session:
    """Everything the event loop owns, passed explicitly to each component."""
    tracks: List["Track"]
    controller: "PlaybackController"
    repeat: bool = False
    selection: ListState = field(default_factory=ListState)
    now_playing: Optional[int] = None
    glyph: str = GLYPH_STOPPED
    progress_text: str = EMPTY_PROGRESS
    fraction: float = 0.0
    status_message: str = ""
    status_expires: float = 0.0
    completion_handled: bool = False
    show_full_help: bool = False
    width: int = 80
    height: int = 24
    running: bool = True

    @property
    def visible_indices(self) -> List[int]:
        """Track indexes whose title contains the filter text, in list order."""
        query = self.selection.filter_text.casefold()
        if self.selection.filter_state is FilterState.UNFILTERED or not query:
            return list(range(len(self.tracks)))
        return [t.index for t in self.tracks if query in t.title.casefold()]

    @property
    def selected_track(self) -> Optional["Track"]:
        visible = self.visible_indices
        if self.selection.is_cursor_valid(len(visible)):
            return self.tracks[visible[self.selection.cursor]]
        return None

    def start_filter(self) -> None:
        self.selection.filter_state = FilterState.FILTERING

    def set_filter(self, text: str) -> None:
        """Replace the query; the selection restarts at the first match."""
        self.selection.filter_text = text
        self.selection.cursor = 0
        self.selection.scroll_offset = 0
        logger.debug(f"Filter '{text}' matches {len(self.visible_indices)} tracks")

    def accept_filter(self) -> None:
        """Stop typing and browse the matches; an empty query unfilters."""
        if self.selection.filter_text:
            self.selection.filter_state = FilterState.APPLIED
        else:
            self.selection.filter_state = FilterState.UNFILTERED

    def clear_filter(self) -> None:
        """Drop the filter, keeping the selected track selected."""
        track = self.selected_track
        self.selection.filter_text = ""
        self.selection.filter_state = FilterState.UNFILTERED
        self.selection.cursor = 0
        if track is not None:
            self.selection.jump(track.index, len(self.tracks))

    def set_status(self, message: str, now: float, lifetime: float) -> None:
        self.status_message = message
        self.status_expires = now + lifetime
        logger.debug(f"Status: {message}")

    def expire_status(self, now: float) -> None:
        if self.status_message and now >= self.status_expires:
            self.status_message = ""

    def mark_stopped(self) -> None:
        """Reset the display fields after the open track went away."""
        self.now_playing = None
        self.glyph = GLYPH_STOPPED
        self.progress_text = EMPTY_PROGRESS
        self.fraction = 0.0
