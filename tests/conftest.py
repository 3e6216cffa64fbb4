import io
import sys
import tempfile
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from termtunes.audio import BYTES_PER_SAMPLE
from termtunes.config import AppConfig
from termtunes.controller import PlaybackController
from termtunes.library import FORMAT_MP3, Track
from termtunes.logging_config import DecodeError, SeekError, VolumeError
from termtunes.state import Session

RATE = 48000


def seconds_to_bytes(seconds: float) -> int:
    return int(seconds * RATE) * BYTES_PER_SAMPLE


class ManualClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHandle:
    """Adapter handle whose position follows the manual clock while playing."""

    def __init__(self, clock, length_bytes: int, sample_rate: int = RATE):
        self.clock = clock
        self._length = length_bytes
        self.sample_rate = sample_rate
        self.playing = False
        self.closed = False
        self.volume = None
        self.calls = []
        self.fail_seek = False
        self.fail_volume = False
        self.fail_play = False
        self._pos = 0
        self._since = None

    @property
    def total_ms(self) -> int:
        return self._length * 1000 // BYTES_PER_SAMPLE // self.sample_rate

    def play(self):
        self.calls.append("play")
        if self.fail_play:
            raise DecodeError("no voice")
        if not self.playing:
            self.playing = True
            self._since = self.clock()

    def pause(self):
        self.calls.append("pause")
        self._pos = self.current()
        self.playing = False
        self._since = None

    def is_playing(self):
        return self.playing

    def rewind(self):
        self.calls.append("rewind")
        self._pos = 0
        if self.playing:
            self._since = self.clock()

    def seek(self, position_ms):
        self.calls.append(("seek", position_ms))
        if self.fail_seek:
            raise SeekError("seek refused")
        self._pos = position_ms
        if self.playing:
            self._since = self.clock()

    def set_volume(self, fraction):
        self.calls.append(("volume", fraction))
        if self.fail_volume:
            raise VolumeError("volume refused")
        self.volume = fraction

    def current(self):
        if not self.playing:
            return self._pos
        elapsed = round((self.clock() - self._since) * 1000)
        return min(self.total_ms, self._pos + elapsed)

    def length(self):
        return self._length

    def close(self):
        self.calls.append("close")
        self.closed = True
        self.playing = False


class FakeOutput:
    """Adapter that hands out FakeHandles for registered byte sources."""

    def __init__(self, clock):
        self.clock = clock
        self.lengths = {}
        self.failing = set()
        self.opened = []
        self.handles = []

    def register(self, source, length_bytes: int) -> None:
        self.lengths[id(source)] = length_bytes

    def fail(self, source) -> None:
        self.failing.add(id(source))

    def open(self, source, sample_rate, format_tag):
        self.opened.append(source)
        if id(source) in self.failing:
            raise DecodeError(f"cannot decode {format_tag}")
        handle = FakeHandle(self.clock, self.lengths[id(source)])
        self.handles.append(handle)
        return handle

    @property
    def last_handle(self) -> FakeHandle:
        return self.handles[-1]


class Player:
    """Tracks, fake output and controller wired together for a test."""

    def __init__(self, durations, failing=()):
        self.clock = ManualClock()
        self.output = FakeOutput(self.clock)
        self.tracks = []
        for i, seconds in enumerate(durations):
            source = io.BytesIO(b"track-%d" % i)
            self.output.register(source, seconds_to_bytes(seconds))
            self.tracks.append(Track(
                index=i,
                path=Path(f"/music/track{i}.mp3"),
                title=f"Track {i}",
                album=f"Album {i}",
                artist="Artist",
                format=FORMAT_MP3,
                source=source,
            ))
        for i in failing:
            self.output.fail(self.tracks[i].source)
        self.controller = PlaybackController(self.output, RATE)

    def session(self, **kwargs) -> Session:
        return Session(tracks=self.tracks, controller=self.controller, **kwargs)

    def opened_indexes(self):
        by_id = {id(t.source): t.index for t in self.tracks}
        return [by_id[id(s)] for s in self.output.opened]


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def make_player():
    """Build a Player from track durations in seconds."""
    def factory(durations=(180, 60, 90), failing=()):
        return Player(durations, failing)
    return factory


@pytest.fixture
def fast_config():
    """Config with unit step sizes so applied deltas equal debounced sums."""
    return AppConfig(volume_step=1, seek_seconds=1, debounce_ms=100, tick_ms=100,
                     status_seconds=1.0, log_file=None)


@pytest.fixture
def temp_music_dir():
    """Create a temporary music directory with test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        music_dir = Path(tmpdir) / "music"
        music_dir.mkdir()

        (music_dir / "subdir").mkdir()

        (music_dir / "test1.mp3").touch()
        (music_dir / "test2.flac").touch()
        (music_dir / "test3.ogg").touch()
        (music_dir / "test4.txt").touch()
        (music_dir / "test5.OPUS").touch()
        (music_dir / "cover.jpg").touch()

        (music_dir / "subdir" / "nested.mp3").touch()
        (music_dir / "subdir" / "nested.spx").touch()

        yield music_dir
