"""
Audio decode/output adapter for termtunes.

Decoding goes through libsndfile (``soundfile``), output through a
``sounddevice`` callback stream. The callback runs on the audio subsystem's
own thread; every public method here returns immediately.
"""
import threading
from typing import BinaryIO, Optional, Protocol

import numpy as np
import soundfile as sf

try:
    import sounddevice as sd
except (ImportError, OSError):  # pragma: no cover - PortAudio not installed
    sd = None

from .library import FORMAT_FLAC, FORMAT_MP3, FORMAT_OGG, FORMAT_WAV
from .logging_config import AudioPlayerError, DecodeError, SeekError, VolumeError, get_logger

logger = get_logger('audio')

SAMPLE_RATE: int = 48000
# One decoded frame of 16-bit stereo PCM
BYTES_PER_SAMPLE: int = 4
BLOCK_SIZE: int = 2048


class AudioStream(Protocol):
    """Decoded PCM source: read, seek and length in frames."""

    samplerate: int
    channels: int
    frames: int

    def read(self, frames: int) -> np.ndarray: ...

    def seek(self, frame: int) -> int: ...

    def tell(self) -> int: ...

    def close(self) -> None: ...


# format tag -> display name; libsndfile sniffs the container itself
_SNDFILE_FORMATS = {
    FORMAT_OGG: "Ogg/Vorbis",
    FORMAT_MP3: "MPEG layer III",
    FORMAT_FLAC: "FLAC",
    FORMAT_WAV: "WAV",
}


class SndfileStream:
    """AudioStream backed by a libsndfile decoder over a borrowed file object."""

    def __init__(self, source: BinaryIO, format_tag: str):
        if format_tag not in _SNDFILE_FORMATS:
            raise DecodeError(f"Unsupported format: {format_tag}")
        self.format_name = _SNDFILE_FORMATS[format_tag]
        try:
            self._file = sf.SoundFile(source, mode="r")
        except (sf.SoundFileError, RuntimeError) as e:
            raise DecodeError(f"Cannot decode {self.format_name} stream: {e}") from e
        self.samplerate = self._file.samplerate
        self.channels = self._file.channels
        self.frames = max(0, self._file.frames)

    def read(self, frames: int) -> np.ndarray:
        return self._file.read(frames, dtype="float32", always_2d=True)

    def seek(self, frame: int) -> int:
        return self._file.seek(frame)

    def tell(self) -> int:
        return self._file.tell()

    def close(self) -> None:
        # SoundFile over a file object leaves the object itself open
        if not self._file.closed:
            self._file.close()


def open_stream(source: BinaryIO, format_tag: str) -> AudioStream:
    """Pick the decoder for ``format_tag`` and open it on ``source``."""
    if format_tag in _SNDFILE_FORMATS:
        return SndfileStream(source, format_tag)
    raise DecodeError(f"Unsupported format: {format_tag}")


class PlayerHandle:
    """One open, playable stream with its own output voice.

    Positions are integer milliseconds; ``length()`` is the decoded byte
    count of 16-bit stereo PCM at the handle's sample rate.
    """

    def __init__(self, stream: AudioStream, device: Optional[int] = None):
        self._stream = stream
        self._lock = threading.Lock()
        self._playing = False
        self._volume = 1.0
        self._closed = False
        self.sample_rate = stream.samplerate
        if sd is None:
            raise DecodeError("Cannot allocate output voice: sounddevice/PortAudio unavailable")
        try:
            self._output = sd.OutputStream(
                samplerate=stream.samplerate,
                channels=stream.channels,
                dtype="float32",
                blocksize=BLOCK_SIZE,
                device=device,
                callback=self._callback,
            )
        except (sd.PortAudioError, ValueError) as e:
            raise DecodeError(f"Cannot allocate output voice: {e}") from e
        try:
            self._output.start()
        except (sd.PortAudioError, ValueError) as e:
            self._output.close()
            raise DecodeError(f"Cannot start output voice: {e}") from e

    def _callback(self, outdata, frames, time_info, status):
        with self._lock:
            if not self._playing:
                outdata.fill(0)
                return
            data = self._stream.read(frames)
            volume = self._volume
        filled = len(data)
        outdata[:filled] = data
        if filled < frames:
            # End of stream: stay silent at the final position
            outdata[filled:].fill(0)
        if volume != 1.0:
            outdata *= volume

    def play(self) -> None:
        with self._lock:
            self._playing = True

    def pause(self) -> None:
        with self._lock:
            self._playing = False

    def is_playing(self) -> bool:
        return self._playing

    def rewind(self) -> None:
        with self._lock:
            self._stream.seek(0)

    def seek(self, position_ms: int) -> None:
        frame = int(position_ms * self.sample_rate // 1000)
        frame = max(0, min(frame, self._stream.frames))
        try:
            with self._lock:
                self._stream.seek(frame)
        except (sf.SoundFileError, RuntimeError, ValueError) as e:
            raise SeekError(f"Seek to {position_ms} ms failed: {e}") from e

    def set_volume(self, fraction: float) -> None:
        if not 0.0 <= fraction <= 1.0:
            raise VolumeError(f"Volume out of range: {fraction}")
        with self._lock:
            self._volume = fraction

    def current(self) -> int:
        with self._lock:
            frame = self._stream.tell()
        return int(frame * 1000 // self.sample_rate)

    def length(self) -> int:
        return self._stream.frames * BYTES_PER_SAMPLE

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        with self._lock:
            self._playing = False
        try:
            self._output.abort()
            self._output.close()
        except sd.PortAudioError as e:
            logger.warning(f"Output close error: {e}")
        finally:
            self._stream.close()


class AudioOutput:
    """Opens tracks as PlayerHandles, the counterpart of an audio context."""

    def __init__(self, sample_rate: int = SAMPLE_RATE, device: Optional[int] = None):
        self.sample_rate = sample_rate
        self.device = device

    def open(self, source: BinaryIO, sample_rate: int, format_tag: str) -> PlayerHandle:
        """Decode ``source`` and allocate an output voice for it.

        ``sample_rate`` is the requested rate; the voice runs at the decoded
        stream's native rate, which the handle reports back.

        Raises:
            DecodeError: If the stream cannot be parsed or no voice is available
        """
        try:
            source.seek(0)
        except (OSError, ValueError) as e:
            raise DecodeError(f"Cannot rewind byte source: {e}") from e
        stream = open_stream(source, format_tag)
        if stream.samplerate != sample_rate:
            logger.debug(f"Stream rate {stream.samplerate} Hz differs from requested {sample_rate} Hz")
        try:
            return PlayerHandle(stream, device=self.device)
        except AudioPlayerError:
            stream.close()
            raise
