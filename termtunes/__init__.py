"""
termtunes - Terminal-based music player.
"""

__version__ = "1.0.0"
__author__ = "termtunes Team"
__description__ = "A terminal music player with a live progress bar, debounced controls and auto-advance."

# Import all modules
from . import logging_config
from . import config
from . import state
from . import library
from . import audio
from . import controller
from . import debounce
from . import sequencer
from . import events
from . import loop

from .audio import AudioOutput, PlayerHandle, SndfileStream, open_stream
from .config import AppConfig, ConfigManager, load_config
from .controller import PlaybackController, format_clock
from .debounce import InputDebouncer
from .events import Click, DebounceFire, KeyMap, KeyPress, Resize, Tick
from .library import Library, Track, read_metadata, scan_paths
from .logging_config import (
    DecodeError,
    ExhaustedError,
    SeekError,
    TermTunesError,
    VolumeError,
    get_logger,
    setup_logging,
)
from .loop import EventLoop, Scheduler
from .sequencer import TrackSequencer
from .state import AdjustmentKind, ListState, PendingAdjustment, PlaybackState, Session

# Re-export key classes and functions
__all__ = [
    # Audio
    'AudioOutput',
    'PlayerHandle',
    'SndfileStream',
    'open_stream',

    # Config
    'AppConfig',
    'ConfigManager',
    'load_config',

    # Core
    'PlaybackController',
    'format_clock',
    'InputDebouncer',
    'TrackSequencer',
    'EventLoop',
    'Scheduler',

    # Events
    'Click',
    'DebounceFire',
    'KeyMap',
    'KeyPress',
    'Resize',
    'Tick',

    # Library
    'Library',
    'Track',
    'read_metadata',
    'scan_paths',

    # State
    'AdjustmentKind',
    'ListState',
    'PendingAdjustment',
    'PlaybackState',
    'Session',

    # Errors and logging
    'TermTunesError',
    'DecodeError',
    'SeekError',
    'VolumeError',
    'ExhaustedError',
    'get_logger',
    'setup_logging',
]
