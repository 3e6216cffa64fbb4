"""
Music library scanning and metadata for termtunes.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, List, Optional, Set, Tuple

from mutagen import File as MutagenFile
from mutagen import MutagenError

from .logging_config import FilesystemError, get_logger

logger = get_logger('library')

# Audio file extensions
AUDIO_EXTENSIONS: Set[str] = {".mp3", ".wav", ".oga", ".ogg", ".spx", ".opus", ".flac"}

# Decode format tags
FORMAT_OGG = "ogg"
FORMAT_MP3 = "mp3"
FORMAT_WAV = "wav"
FORMAT_FLAC = "flac"

# mutagen FileType class name -> decode format tag
_MUTAGEN_FORMATS = {
    "MP3": FORMAT_MP3,
    "EasyMP3": FORMAT_MP3,
    "OggVorbis": FORMAT_OGG,
    "OggOpus": FORMAT_OGG,
    "OggSpeex": FORMAT_OGG,
    "OggFLAC": FORMAT_OGG,
    "OggTheora": FORMAT_OGG,
    "FLAC": FORMAT_FLAC,
    "WAVE": FORMAT_WAV,
}


@dataclass(frozen=True)
class Track:
    """One playable entry of the track list.

    Attributes:
        index: Stable position in the ordered track list
        path: Path to the audio file
        title: Display title
        album: Display album
        artist: Display artist
        format: Decode format tag
        source: Open binary file object, owned by the Library
    """

    index: int
    path: Path
    title: str
    album: str
    artist: str
    format: str
    source: BinaryIO

    @property
    def description(self) -> str:
        return f"{self.album}⋅{self.artist}"


def scan_paths(roots: Iterable[Path]) -> List[Path]:
    """Collect audio files under every root, in a stable order.

    Args:
        roots: Directories to walk recursively

    Returns:
        Paths whose extension is a known audio extension

    Raises:
        FilesystemError: If a root does not exist or is not a directory
    """
    roots = list(roots)
    found: List[Path] = []
    for root in roots:
        root = Path(root).expanduser()
        if not root.is_dir():
            raise FilesystemError(f"Could not find or open music directory: {root}")
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for name in sorted(filenames):
                if Path(name).suffix.lower() in AUDIO_EXTENSIONS:
                    found.append(Path(dirpath) / name)
    logger.info(f"Found {len(found)} audio files under {len(roots)} roots")
    return found


def _first(tags, key: str) -> str:
    value = tags.get(key) if tags is not None else None
    if not value:
        return ""
    if isinstance(value, list):
        return str(value[0]).strip()
    return str(value).strip()


def read_metadata(path: Path) -> Optional[Tuple[str, str, str, str]]:
    """Read (title, album, artist, format) from an audio file.

    Returns None when mutagen cannot parse the file.
    """
    try:
        audio = MutagenFile(str(path), easy=True)
    except (MutagenError, OSError) as e:
        logger.debug(f"Cannot read tags from {path}: {e}")
        return None
    if audio is None:
        logger.debug(f"Unrecognized audio file: {path}")
        return None

    fmt = _MUTAGEN_FORMATS.get(type(audio).__name__, FORMAT_WAV)
    title = _first(audio.tags, "title") or Path(path).stem
    album = _first(audio.tags, "album")
    artist = _first(audio.tags, "artist")
    return title, album, artist, fmt


class Library:
    """Ordered track list plus the file handles backing it.

    Use as a context manager: every handle opened while loading is closed on
    exit, including when the body raises.
    """

    def __init__(self, paths: Iterable[Path]):
        self._paths = list(paths)
        self.tracks: List[Track] = []

    def load(self) -> List[Track]:
        """Open each parseable file once and build the track list."""
        for path in self._paths:
            meta = read_metadata(path)
            if meta is None:
                continue
            try:
                source = open(path, "rb")
            except OSError as e:
                logger.warning(f"Cannot open {path}: {e}")
                continue
            title, album, artist, fmt = meta
            self.tracks.append(Track(
                index=len(self.tracks),
                path=Path(path),
                title=title,
                album=album,
                artist=artist,
                format=fmt,
                source=source,
            ))
        logger.info(f"Loaded {len(self.tracks)} tracks ({len(self._paths) - len(self.tracks)} skipped)")
        return self.tracks

    def close(self) -> None:
        for track in self.tracks:
            if not track.source.closed:
                track.source.close()
        logger.debug("Closed all track file handles")

    def __enter__(self) -> "Library":
        try:
            self.load()
        except BaseException:
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self.tracks)
