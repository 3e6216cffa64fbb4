"""
Track sequencing for termtunes.
"""
from typing import List

from .controller import PlaybackController
from .library import Track
from .logging_config import DecodeError, ExhaustedError, get_logger
from .state import PlaybackState

logger = get_logger('sequencer')


class TrackSequencer:
    """Chooses the next track on completion or manual selection."""

    def __init__(self, tracks: List[Track], controller: PlaybackController):
        self.tracks = tracks
        self.controller = controller

    def advance(self, from_index: int, repeat: bool = False) -> PlaybackState:
        """Open the track after ``from_index``, skipping ones that fail.

        Handles repeat mode:
        - off: starts at the following index, wrapping to 0 after the last
        - on: starts by reopening ``from_index`` itself

        At most one full pass over the list is attempted.

        Raises:
            ExhaustedError: If every attempted track failed to open
        """
        count = len(self.tracks)
        if count == 0:
            raise ExhaustedError("No tracks to play")

        index = from_index % count if repeat else (from_index + 1) % count
        volume = self.controller.volume
        for attempt in range(count):
            try:
                state = self.controller.open(self.tracks[index], volume=volume)
            except DecodeError as e:
                logger.warning(f"Skipping track {index} (attempt {attempt + 1}/{count}): {e}")
                index = (index + 1) % count
                continue
            logger.info(f"Advanced from {from_index} to {index}")
            return state

        self.controller.close()
        logger.error(f"All {count} tracks failed to open")
        raise ExhaustedError(f"None of the {count} tracks could be played")

    def play_selected(self, index: int) -> PlaybackState:
        """Open exactly ``index``; no skip-forward on failure.

        Raises:
            DecodeError: If the track cannot be opened
        """
        return self.controller.open(self.tracks[index], volume=self.controller.volume)
