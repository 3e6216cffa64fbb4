"""
Event loop messages and key bindings for termtunes.
"""
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Tuple

if TYPE_CHECKING:
    from .state import AdjustmentKind


@dataclass(frozen=True)
class Tick:
    """Fixed-cadence progress poll."""
    at: float


@dataclass(frozen=True)
class KeyPress:
    key: str


@dataclass(frozen=True)
class Click:
    """Pointer press at 0-based terminal cell (x, y)."""
    x: int
    y: int


@dataclass(frozen=True)
class DebounceFire:
    kind: "AdjustmentKind"
    generation: int


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True)
class Binding:
    keys: Tuple[str, ...]
    help_key: str
    help_text: str

    def matches(self, key: str) -> bool:
        return key in self.keys


def _binding(keys, help_key, help_text) -> Binding:
    return Binding(tuple(keys), help_key, help_text)


@dataclass
class KeyMap:
    """Key bindings for playback and list navigation."""
    play: Binding = field(default_factory=lambda: _binding(["enter"], "enter", "select & play"))
    toggle_pause: Binding = field(default_factory=lambda: _binding([" "], "space", "toggle pause"))
    toggle_repeat: Binding = field(default_factory=lambda: _binding(["r"], "r", "toggle repeat"))
    seek_right: Binding = field(default_factory=lambda: _binding(["right"], "→", "seek right"))
    seek_left: Binding = field(default_factory=lambda: _binding(["left"], "←", "seek left"))
    volume_up: Binding = field(default_factory=lambda: _binding(["up"], "↑", "volume up"))
    volume_down: Binding = field(default_factory=lambda: _binding(["down"], "↓", "volume down"))
    cursor_down: Binding = field(default_factory=lambda: _binding(["j"], "j", "down"))
    cursor_up: Binding = field(default_factory=lambda: _binding(["k"], "k", "up"))
    prev_page: Binding = field(default_factory=lambda: _binding(["h", "pgup"], "h/pgup", "prev page"))
    next_page: Binding = field(default_factory=lambda: _binding(["l", "pgdown"], "l/pgdn", "next page"))
    go_to_start: Binding = field(default_factory=lambda: _binding(["g", "home"], "g", "first"))
    go_to_end: Binding = field(default_factory=lambda: _binding(["G", "end"], "G", "last"))
    filter: Binding = field(default_factory=lambda: _binding(["/"], "/", "filter"))
    clear_filter: Binding = field(default_factory=lambda: _binding(["esc"], "esc", "clear filter"))
    accept_filter: Binding = field(default_factory=lambda: _binding(["enter"], "enter", "apply filter"))
    show_full_help: Binding = field(default_factory=lambda: _binding(["?"], "?", "toggle help"))
    quit: Binding = field(default_factory=lambda: _binding(["q"], "q", "quit"))
    # Still quits while a filter query is being typed
    force_quit: Binding = field(default_factory=lambda: _binding(["ctrl+c"], "ctrl+c", "force quit"))

    def short_help(self) -> List[Binding]:
        return [self.play, self.toggle_pause, self.filter, self.quit, self.show_full_help]

    def full_help(self) -> List[List[Binding]]:
        """Every binding, grouped into columns for the help overlay."""
        return [
            [self.play, self.toggle_pause, self.toggle_repeat,
             self.seek_right, self.seek_left, self.volume_up, self.volume_down],
            [self.cursor_up, self.cursor_down, self.prev_page, self.next_page,
             self.go_to_start, self.go_to_end],
            [self.filter, self.accept_filter, self.clear_filter,
             self.show_full_help, self.quit, self.force_quit],
        ]

