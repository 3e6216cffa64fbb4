"""
Entry point for termtunes.
"""
import sys
from pathlib import Path
from typing import List, Optional

from . import __description__, __version__, ui
from .audio import AudioOutput
from .config import ConfigManager, load_config
from .controller import PlaybackController
from .events import KeyMap
from .library import Library, scan_paths
from .logging_config import ConfigurationError, FilesystemError, get_logger, setup_logging
from .loop import EventLoop
from .state import Session
from .terminal import Terminal

logger = get_logger('main')

USAGE = f"""termtunes {__version__}

Usage:
  termtunes [DIRECTORY ...]   # Play music found under DIRECTORY (default: configured directories)
  termtunes --debug           # Log at DEBUG level
  termtunes --version         # Show version info
  termtunes --help            # Show this help
"""


def load_settings(argv: List[str]) -> ConfigManager:
    """Load the config file, falling back to defaults if it fails validation."""
    manager = load_config()
    if not manager.validate_config():
        logger.warning("Invalid configuration, falling back to defaults")
        manager.reset_to_defaults()
    if "--debug" in argv:
        manager.set("log_level", "DEBUG")
    return manager


def main(argv: Optional[List[str]] = None) -> int:
    """Scan the library and run the player until the user quits.

    Returns:
        Process exit status
    """
    argv = sys.argv[1:] if argv is None else argv

    if "--version" in argv or "-v" in argv:
        print(f"termtunes {__version__}")
        print(__description__)
        return 0
    if "--help" in argv or "-h" in argv:
        print(USAGE)
        return 0

    setup_logging("WARNING")
    try:
        manager = load_settings(argv)
    except (ConfigurationError, FilesystemError) as e:
        logger.error(str(e))
        print(f"Error: {e}")
        return 1

    config = manager.config
    log_file = manager.get("log_file")
    setup_logging(manager.get("log_level"), Path(log_file) if log_file else None, console=False)
    logger.debug(f"Settings: {manager.as_dict()}")

    if not sys.stdin.isatty() or not sys.stdout.isatty():
        print("Error: Must run in interactive terminal")
        return 1

    directories = [arg for arg in argv if not arg.startswith("-")]
    try:
        roots = [Path(d).expanduser() for d in directories] or manager.get_directories()
        paths = scan_paths(roots)
    except FilesystemError as e:
        logger.error(str(e))
        print(f"Error: {e}")
        return 1

    print("\n  Reading track metadata...")
    with Library(paths) as library:
        logger.info(f"Library ready with {len(library)} tracks")
        controller = PlaybackController(AudioOutput(config.sample_rate), config.sample_rate)
        session = Session(tracks=library.tracks, controller=controller)
        keys = KeyMap()

        with Terminal(mouse=config.mouse) as terminal:
            session.width, session.height = terminal.size()
            loop = EventLoop(
                session,
                config,
                input_source=terminal,
                render=lambda s: terminal.draw(ui.render(s, keys)),
                keys=keys,
            )
            try:
                loop.run()
            except KeyboardInterrupt:
                logger.info("Interrupted")

    print("\n  Bye!")
    return 0
