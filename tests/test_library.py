import numpy as np
import pytest
import soundfile as sf
from pathlib import Path

from termtunes import library
from termtunes.library import (
    FORMAT_FLAC,
    FORMAT_MP3,
    FORMAT_OGG,
    FORMAT_WAV,
    Library,
    read_metadata,
    scan_paths,
)
from termtunes.logging_config import FilesystemError


def fake_audio(class_name, tags):
    return type(class_name, (), {"tags": tags})()


@pytest.fixture
def fake_mutagen(monkeypatch):
    """Route mutagen lookups through a dict keyed by file name."""
    registry = {}

    def fake_file(path, easy=False):
        return registry.get(Path(path).name)

    monkeypatch.setattr(library, "MutagenFile", fake_file)
    return registry


class TestScanPaths:
    """Tests for scan_paths()."""

    def test_filters_by_extension(self, temp_music_dir):
        """Test only audio extensions are collected, case-insensitively."""
        names = [p.name for p in scan_paths([temp_music_dir])]

        assert "test4.txt" not in names
        assert "cover.jpg" not in names
        assert set(names) == {
            "test1.mp3", "test2.flac", "test3.ogg", "test5.OPUS", "nested.mp3", "nested.spx",
        }

    def test_order_is_stable(self, temp_music_dir):
        """Test files are sorted within a directory before descending."""
        paths = scan_paths([temp_music_dir])

        assert paths == scan_paths([temp_music_dir])
        assert [p.name for p in paths] == [
            "test1.mp3", "test2.flac", "test3.ogg", "test5.OPUS", "nested.mp3", "nested.spx",
        ]

    def test_multiple_roots_concatenate(self, temp_music_dir):
        """Test roots are scanned in the given order."""
        paths = scan_paths([temp_music_dir / "subdir", temp_music_dir])

        assert paths[0].name == "nested.mp3"
        assert len(paths) == 8

    def test_missing_root_raises(self, tmp_path):
        """Test a missing directory is fatal."""
        with pytest.raises(FilesystemError):
            scan_paths([tmp_path / "missing"])

    def test_file_root_raises(self, tmp_path):
        """Test a regular file is not a scan root."""
        path = tmp_path / "song.mp3"
        path.touch()

        with pytest.raises(FilesystemError):
            scan_paths([path])


class TestReadMetadata:
    """Tests for read_metadata()."""

    def test_tags_and_format(self, fake_mutagen, tmp_path):
        """Test tags are read and the mutagen type picks the format."""
        fake_mutagen["a.mp3"] = fake_audio("EasyMP3", {
            "title": ["Song"], "album": ["Record"], "artist": ["Band"],
        })

        assert read_metadata(tmp_path / "a.mp3") == ("Song", "Record", "Band", FORMAT_MP3)

    @pytest.mark.parametrize("class_name,expected", [
        ("OggVorbis", FORMAT_OGG),
        ("OggOpus", FORMAT_OGG),
        ("FLAC", FORMAT_FLAC),
        ("WAVE", FORMAT_WAV),
    ])
    def test_format_tags(self, fake_mutagen, tmp_path, class_name, expected):
        """Test each supported container maps to its decode format."""
        fake_mutagen["x"] = fake_audio(class_name, {})

        assert read_metadata(tmp_path / "x")[3] == expected

    def test_title_falls_back_to_stem(self, fake_mutagen, tmp_path):
        """Test untagged files are titled after their file name."""
        fake_mutagen["Untitled Jam.ogg"] = fake_audio("OggVorbis", None)

        title, album, artist, _ = read_metadata(tmp_path / "Untitled Jam.ogg")

        assert (title, album, artist) == ("Untitled Jam", "", "")

    def test_unparseable_returns_none(self, fake_mutagen, tmp_path):
        """Test files mutagen does not recognise are dropped."""
        assert read_metadata(tmp_path / "junk.mp3") is None

    def test_real_wav(self, tmp_path):
        """Test a real WAV file is recognised by mutagen."""
        path = tmp_path / "tone.wav"
        sf.write(str(path), np.zeros((4800, 2), dtype="float32"), 48000)

        title, _, _, fmt = read_metadata(path)

        assert title == "tone"
        assert fmt == FORMAT_WAV


class TestLibrary:
    """Tests for the Library context manager."""

    def test_loads_parseable_tracks(self, fake_mutagen, temp_music_dir):
        """Test unparseable files are skipped and indexes stay contiguous."""
        fake_mutagen["test1.mp3"] = fake_audio("MP3", {"title": ["One"]})
        fake_mutagen["nested.mp3"] = fake_audio("MP3", {"title": ["Nested"]})

        with Library(scan_paths([temp_music_dir])) as lib:
            assert len(lib) == 2
            assert [t.index for t in lib.tracks] == [0, 1]
            assert lib.tracks[1].title == "Nested"
            assert lib.tracks[0].description == "⋅"

    def test_handles_closed_on_exit(self, fake_mutagen, temp_music_dir):
        """Test every file handle is closed when the block exits."""
        fake_mutagen["test1.mp3"] = fake_audio("MP3", {})

        with Library(scan_paths([temp_music_dir])) as lib:
            source = lib.tracks[0].source
            assert source.closed is False

        assert source.closed is True

    def test_handles_closed_on_error(self, fake_mutagen, temp_music_dir):
        """Test handles are closed when the body raises."""
        fake_mutagen["test1.mp3"] = fake_audio("MP3", {})

        with pytest.raises(RuntimeError):
            with Library(scan_paths([temp_music_dir])) as lib:
                source = lib.tracks[0].source
                raise RuntimeError("boom")

        assert source.closed is True

    def test_empty_library(self, fake_mutagen, temp_music_dir):
        """Test a directory with nothing parseable yields no tracks."""
        with Library(scan_paths([temp_music_dir])) as lib:
            assert len(lib) == 0
