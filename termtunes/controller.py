"""
Playback control for termtunes.

The controller is the single source of truth for what is playing and where.
It wraps one adapter handle at a time; opening a track replaces the previous
PlaybackState entirely.
"""
from typing import Optional, Tuple

from .audio import BYTES_PER_SAMPLE, SAMPLE_RATE
from .library import Track
from .logging_config import AudioPlayerError, DecodeError, SeekError, VolumeError, get_logger
from .state import EMPTY_PROGRESS, GLYPH_PAUSED, GLYPH_PLAYING, GLYPH_STOPPED, MAX_VOLUME, PlaybackState

logger = get_logger('controller')


def format_clock(ms: int) -> str:
    """Format milliseconds as MM:SS, or H:MM:SS past the hour.

    Args:
        ms: Duration in milliseconds

    Returns:
        Formatted string truncated to whole seconds
    """
    seconds = max(0, int(ms)) // 1000
    hours, rest = divmod(seconds, 3600)
    mins, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{mins:02d}:{secs:02d}"
    return f"{mins:02d}:{secs:02d}"


class PlaybackController:
    """Owns the open adapter handle and the PlaybackState that mirrors it."""

    def __init__(self, output, sample_rate: int = SAMPLE_RATE):
        self.output = output
        self.sample_rate = sample_rate
        self._handle = None
        self._state: Optional[PlaybackState] = None
        self._last_volume: int = MAX_VOLUME

    @property
    def state(self) -> Optional[PlaybackState]:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is not None

    @property
    def is_playing(self) -> bool:
        return self._state is not None and self._state.playing

    @property
    def volume(self) -> int:
        """Current volume, or the carry-over value when nothing is open."""
        return self._state.volume if self._state else self._last_volume

    @property
    def glyph(self) -> str:
        if self._state is None:
            return GLYPH_STOPPED
        return GLYPH_PLAYING if self._state.playing else GLYPH_PAUSED

    def open(self, track: Track, volume: Optional[int] = None) -> PlaybackState:
        """Close whatever is open, then open and start ``track``.

        Args:
            track: Track to play
            volume: Carry-over volume; defaults to the last used volume

        Returns:
            The fresh PlaybackState

        Raises:
            DecodeError: If the adapter cannot parse the stream or allocate a voice
        """
        self.close()
        volume = self._last_volume if volume is None else volume
        volume = max(0, min(MAX_VOLUME, volume))

        try:
            handle = self.output.open(track.source, self.sample_rate, track.format)
        except DecodeError:
            logger.warning(f"Cannot open track {track.index}: {track.path}")
            raise
        except (AudioPlayerError, OSError, ValueError) as e:
            logger.warning(f"Cannot open track {track.index}: {e}")
            raise DecodeError(str(e)) from e

        try:
            rate = getattr(handle, "sample_rate", self.sample_rate) or self.sample_rate
            total = handle.length() * 1000 // BYTES_PER_SAMPLE // rate
            handle.set_volume(volume / MAX_VOLUME)
            handle.play()
        except (AudioPlayerError, OSError, ValueError) as e:
            handle.close()
            raise DecodeError(f"Cannot start playback: {e}") from e

        self._handle = handle
        self._state = PlaybackState(track_index=track.index, total=total, volume=volume)
        logger.info(f"Playing track {track.index} '{track.title}' ({format_clock(self._state.total)})")
        return self._state

    def close(self) -> None:
        """Release the adapter handle. Closing twice is a no-op."""
        if self._handle is None and self._state is None:
            return
        if self._state is not None:
            self._last_volume = self._state.volume
            logger.info(f"Closing track {self._state.track_index}")
        handle, self._handle, self._state = self._handle, None, None
        if handle is not None:
            handle.close()

    def toggle_pause(self) -> str:
        """Pause or resume; returns the new status glyph."""
        if self._state is None:
            return GLYPH_STOPPED
        if self._state.playing:
            self._handle.pause()
            self._state.position = self._clamp(self._handle.current())
            self._state.playing = False
            logger.info(f"Paused at {format_clock(self._state.position)}")
        else:
            self._handle.play()
            self._state.playing = True
            logger.info(f"Resumed at {format_clock(self._state.position)}")
        return self.glyph

    def rewind(self, track: Track) -> None:
        """Return ``track`` to its start before it gets replaced.

        While playing, the adapter resets its own read cursor, after which the
        handle is spent and gets closed. A paused stream cannot be rewound by
        the adapter, so the underlying byte source is sought to zero instead
        and the handle stays open for a later resume.
        """
        if self._state is None:
            return
        if self._state.playing:
            self._handle.rewind()
            self.close()
        else:
            track.source.seek(0)
        logger.debug(f"Rewound track {track.index}")

    def adjust_volume(self, delta: int) -> int:
        """Apply ``delta`` to the volume, clamped to [0,128].

        Raises:
            VolumeError: If the adapter rejects the new level
        """
        if self._state is None:
            self._last_volume = max(0, min(MAX_VOLUME, self._last_volume + delta))
            return self._last_volume
        self._state.volume = max(0, min(MAX_VOLUME, self._state.volume + delta))
        self._last_volume = self._state.volume
        try:
            self._handle.set_volume(self._state.volume / MAX_VOLUME)
        except (AudioPlayerError, ValueError) as e:
            raise VolumeError(f"Cannot set volume: {e}") from e
        logger.debug(f"Volume {self._state.volume}/{MAX_VOLUME}")
        return self._state.volume

    def adjust_seek(self, delta_seconds: int) -> int:
        """Seek relative to the current position.

        Raises:
            SeekError: If the adapter rejects the seek; position is unchanged
        """
        if self._state is None:
            return 0
        base = self._handle.current() if self._state.playing else self._state.position
        return self._seek_to(base + delta_seconds * 1000)

    def seek_to_fraction(self, fraction: float) -> int:
        """Seek to ``fraction`` of the track, clamped to [0,1].

        Raises:
            SeekError: If the adapter rejects the seek; position is unchanged
        """
        if self._state is None:
            return 0
        fraction = max(0.0, min(1.0, fraction))
        return self._seek_to(round(self._state.total * fraction))

    def poll_progress(self) -> Tuple[str, float]:
        """Refresh position and return ("elapsed / total", fraction)."""
        if self._state is None:
            return EMPTY_PROGRESS, 0.0
        if self._state.playing:
            self._state.position = self._clamp(self._handle.current())
        text = f"{format_clock(self._state.position)} / {format_clock(self._state.total)}"
        return text, self._state.fraction

    def _seek_to(self, target: int) -> int:
        target = self._clamp(target)
        try:
            self._handle.seek(target)
        except SeekError:
            raise
        except (AudioPlayerError, OSError, ValueError) as e:
            raise SeekError(f"Cannot seek: {e}") from e
        self._state.position = target
        logger.debug(f"Seeked to {format_clock(target)}")
        return target

    def _clamp(self, position: int) -> int:
        return max(0, min(self._state.total, int(position)))
