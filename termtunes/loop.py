"""
Single-threaded event loop for termtunes.

Messages (ticks, keys, clicks, debounce fires, resizes) are handled one at a
time, in arrival order, each to completion. Timers live in a heap and join
the message queue in deadline order once they are due, so a debounce fire is
ordered by when it fires, not by when it was scheduled.
"""
import heapq
import itertools
import time
from collections import deque
from typing import Any, Callable, Deque, Iterable, List, Optional, Tuple

from .config import AppConfig
from .debounce import InputDebouncer
from .events import Click, DebounceFire, KeyMap, KeyPress, Resize, Tick
from .logging_config import DecodeError, ExhaustedError, SeekError, VolumeError, get_logger
from .sequencer import TrackSequencer
from .state import AdjustmentKind, FilterState, Session
from . import ui

logger = get_logger('loop')


class Scheduler:
    """One-shot timers keyed by deadline."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._timers: List[Tuple[float, int, Any]] = []
        self._seq = itertools.count()

    def schedule(self, delay: float, message: Any) -> None:
        heapq.heappush(self._timers, (self.clock() + delay, next(self._seq), message))

    def due(self, now: Optional[float] = None) -> List[Any]:
        """Pop every message whose deadline has passed, earliest first."""
        now = self.clock() if now is None else now
        fired = []
        while self._timers and self._timers[0][0] <= now:
            fired.append(heapq.heappop(self._timers)[2])
        return fired

    def next_deadline(self) -> Optional[float]:
        return self._timers[0][0] if self._timers else None

    def __len__(self) -> int:
        return len(self._timers)


class EventLoop:
    """Applies messages to the session's controller and sequencer.

    Args:
        session: The session this loop owns
        config: Step sizes, tick cadence and debounce window
        input_source: Object with ``poll(timeout) -> iterable of messages``
        render: Called with the session after messages were handled
        clock: Monotonic clock in seconds
    """

    def __init__(
        self,
        session: Session,
        config: Optional[AppConfig] = None,
        input_source=None,
        render: Optional[Callable[[Session], None]] = None,
        clock: Callable[[], float] = time.monotonic,
        keys: Optional[KeyMap] = None,
    ):
        self.session = session
        self.config = config or AppConfig()
        self.controller = session.controller
        self.sequencer = TrackSequencer(session.tracks, session.controller)
        self.scheduler = Scheduler(clock)
        self.debouncer = InputDebouncer(self.scheduler.schedule, self.config.debounce_ms)
        self.keys = keys or KeyMap()
        self.input_source = input_source
        self.render = render
        self.clock = clock
        self.queue: Deque[Any] = deque()
        self.tick_interval = self.config.tick_ms / 1000.0

    # ------------------------------------------------------------------
    # Queue handling
    # ------------------------------------------------------------------

    def post(self, message: Any) -> None:
        self.queue.append(message)

    def post_all(self, messages: Iterable[Any]) -> None:
        self.queue.extend(messages)

    def start(self) -> None:
        """Arm the first tick."""
        self.scheduler.schedule(self.tick_interval, Tick(self.clock() + self.tick_interval))

    def pump(self, now: Optional[float] = None) -> int:
        """Queue due timers, then handle everything queued.

        Returns:
            Number of messages handled
        """
        self.post_all(self.scheduler.due(now))
        handled = 0
        while self.queue and self.session.running:
            self.dispatch(self.queue.popleft())
            handled += 1
        return handled

    def run(self) -> None:
        """Loop until quit; the open track is closed however the loop ends."""
        self.start()
        try:
            self._draw()
            while self.session.running:
                if self.pump():
                    self._draw()
                if not self.session.running:
                    break
                timeout = self._timeout()
                if self.input_source is not None:
                    self.post_all(self.input_source.poll(timeout))
                else:
                    time.sleep(timeout)
        finally:
            self.controller.close()
            self.debouncer.reset()
            logger.info("Event loop stopped")

    def _timeout(self) -> float:
        deadline = self.scheduler.next_deadline()
        if deadline is None:
            return self.tick_interval
        return max(0.0, deadline - self.clock())

    def _draw(self) -> None:
        if self.render is not None:
            self.render(self.session)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, message: Any) -> None:
        if isinstance(message, Tick):
            self._on_tick(message)
        elif isinstance(message, KeyPress):
            self._on_key(message.key)
        elif isinstance(message, DebounceFire):
            self._on_debounce(message)
        elif isinstance(message, Click):
            self._on_click(message)
        elif isinstance(message, Resize):
            self.session.width, self.session.height = message.width, message.height
            self._scroll()
        else:
            logger.warning(f"Unknown message: {message!r}")

    def _on_tick(self, message: Tick) -> None:
        session = self.session
        now = self.clock()
        self.scheduler.schedule(self.tick_interval, Tick(now + self.tick_interval))
        session.expire_status(now)

        if not self.controller.is_open:
            return
        session.progress_text, session.fraction = self.controller.poll_progress()
        if session.fraction < 1.0:
            session.completion_handled = False
        elif not session.completion_handled:
            session.completion_handled = True
            self._advance()

    def _on_key(self, key: str) -> None:
        keys = self.keys
        session = self.session

        if keys.force_quit.matches(key):
            self._quit()
        elif session.selection.filter_state is FilterState.FILTERING:
            # Keys are query text while typing; playback bindings are off
            self._on_filter_key(key)
        elif keys.quit.matches(key):
            self._quit()
        elif keys.filter.matches(key):
            session.start_filter()
        elif keys.clear_filter.matches(key):
            if session.selection.filter_state is FilterState.APPLIED:
                session.clear_filter()
                self._scroll()
        elif keys.show_full_help.matches(key):
            session.show_full_help = not session.show_full_help
        elif keys.play.matches(key):
            self._play_selected()
        elif keys.toggle_pause.matches(key):
            if self.controller.is_open:
                session.glyph = self.controller.toggle_pause()
        elif keys.toggle_repeat.matches(key):
            session.repeat = not session.repeat
            self._status(f"Repeat {'on' if session.repeat else 'off'}")
        elif keys.volume_up.matches(key):
            self._press(AdjustmentKind.VOLUME, +1)
        elif keys.volume_down.matches(key):
            self._press(AdjustmentKind.VOLUME, -1)
        elif keys.seek_right.matches(key):
            self._press(AdjustmentKind.SEEK, +1)
        elif keys.seek_left.matches(key):
            self._press(AdjustmentKind.SEEK, -1)
        elif keys.cursor_down.matches(key):
            self._navigate(1)
        elif keys.cursor_up.matches(key):
            self._navigate(-1)
        elif keys.next_page.matches(key):
            self._navigate(ui.list_capacity(session.height))
        elif keys.prev_page.matches(key):
            self._navigate(-ui.list_capacity(session.height))
        elif keys.go_to_start.matches(key):
            self._navigate(-len(session.tracks))
        elif keys.go_to_end.matches(key):
            self._navigate(len(session.tracks))

    def _on_filter_key(self, key: str) -> None:
        session = self.session
        if self.keys.clear_filter.matches(key):
            session.clear_filter()
        elif self.keys.accept_filter.matches(key):
            session.accept_filter()
        elif key == "backspace":
            session.set_filter(session.selection.filter_text[:-1])
        elif len(key) == 1 and key.isprintable():
            session.set_filter(session.selection.filter_text + key)
        self._scroll()

    def _on_debounce(self, message: DebounceFire) -> None:
        delta = self.debouncer.fire(message)
        if delta is None:
            return
        if not self.controller.is_open:
            if message.kind is AdjustmentKind.VOLUME:
                # Only the carried-over volume changes
                self.controller.adjust_volume(delta * self.config.volume_step)
            else:
                logger.info(f"Seek {delta:+d} dropped, no track open")
            return
        try:
            if message.kind is AdjustmentKind.VOLUME:
                self.controller.adjust_volume(delta * self.config.volume_step)
            else:
                self.controller.adjust_seek(delta * self.config.seek_seconds)
                self.session.progress_text, self.session.fraction = self.controller.poll_progress()
        except (SeekError, VolumeError) as e:
            logger.warning(f"{message.kind.value} adjustment failed: {e}")
            self._status(str(e))

    def _on_click(self, message: Click) -> None:
        if not self.controller.is_open:
            return
        start, width = ui.progress_bar_span(self.session)
        if message.y == 0 and start <= message.x < start + width:
            fraction = (message.x - start) / max(1, width - 1)
            try:
                self.controller.seek_to_fraction(fraction)
            except SeekError as e:
                logger.warning(f"Scrub failed: {e}")
                self._status(str(e))
                return
            self.session.progress_text, self.session.fraction = self.controller.poll_progress()
        else:
            self.session.glyph = self.controller.toggle_pause()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _press(self, kind: AdjustmentKind, delta: int) -> None:
        if self.controller.is_open:
            self.debouncer.press(kind, delta)

    def _play_selected(self) -> None:
        session = self.session
        track = session.selected_track
        if track is None:
            return
        if self.controller.is_open and session.now_playing is not None:
            self.controller.rewind(session.tracks[session.now_playing])
        self.debouncer.reset(AdjustmentKind.SEEK)
        try:
            self.sequencer.play_selected(track.index)
        except DecodeError as e:
            session.mark_stopped()
            self._status(f"Cannot Play Audio: {e}")
            return
        self._started()
        self._status(f"Current Song: {track.title}")

    def _advance(self) -> None:
        session = self.session
        from_index = session.now_playing if session.now_playing is not None else 0
        # Seek bursts never carry over to the next track
        self.debouncer.reset(AdjustmentKind.SEEK)
        try:
            state = self.sequencer.advance(from_index, session.repeat)
        except ExhaustedError as e:
            session.mark_stopped()
            self._status(f"Library unplayable: {e}")
            return
        self._started()
        self._status(f"Current Song: {session.tracks[state.track_index].title}")

    def _started(self) -> None:
        session = self.session
        state = self.controller.state
        session.now_playing = state.track_index
        session.glyph = self.controller.glyph
        session.completion_handled = False
        session.progress_text, session.fraction = self.controller.poll_progress()

    def _quit(self) -> None:
        logger.info("Quit requested")
        self.controller.close()
        self.session.mark_stopped()
        self.session.running = False

    def _navigate(self, delta: int) -> None:
        self.session.selection.move(delta, len(self.session.visible_indices))
        self._scroll()

    def _scroll(self) -> None:
        self.session.selection.scroll_into_view(ui.list_capacity(self.session.height))

    def _status(self, message: str) -> None:
        self.session.set_status(message, self.clock(), self.config.status_seconds)
