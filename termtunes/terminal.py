"""
Raw terminal input and output for termtunes.
"""
import fcntl
import os
import re
import select
import shutil
import signal
import struct
import sys
import termios
import tty
from typing import Any, List, Optional, TextIO, Tuple

from .events import Click, KeyPress, Resize
from .logging_config import get_logger

logger = get_logger('terminal')

ALT_SCREEN_ON = "\033[?1049h"
ALT_SCREEN_OFF = "\033[?1049l"
CURSOR_HIDE = "\033[?25l"
CURSOR_SHOW = "\033[?25h"
# Button press reporting with SGR extended coordinates
MOUSE_ON = "\033[?1000h\033[?1006h"
MOUSE_OFF = "\033[?1006l\033[?1000l"
CLEAR_HOME = "\033[H"
CLEAR_LINE = "\033[K"

_ESCAPE_KEYS = {
    "[A": "up", "[B": "down", "[C": "right", "[D": "left",
    "OA": "up", "OB": "down", "OC": "right", "OD": "left",
    "[H": "home", "[F": "end", "OH": "home", "OF": "end",
    "[1~": "home", "[4~": "end", "[7~": "home", "[8~": "end",
    "[5~": "pgup", "[6~": "pgdown", "[3~": "delete",
}

_CONTROL_KEYS = {
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    "\x7f": "backspace",
    "\x03": "ctrl+c",
}

_TOKEN = re.compile(
    r"\x1b\[<(?P<button>\d+);(?P<x>\d+);(?P<y>\d+)(?P<kind>[Mm])"   # SGR mouse
    r"|\x1b(?P<seq>\[[0-9;]*[~A-Za-z]|O[A-Za-z])"                  # CSI / SS3 keys
    r"|(?P<esc>\x1b)"
    r"|(?P<char>.)",
    re.DOTALL,
)


def parse_input(data: str) -> List[Any]:
    """Translate raw terminal input into KeyPress and Click messages.

    Args:
        data: Text read from the terminal in cbreak mode

    Returns:
        Messages in input order; unknown escape sequences are dropped
    """
    messages: List[Any] = []
    for match in _TOKEN.finditer(data):
        if match.group("button") is not None:
            button = int(match.group("button"))
            # Left press only; releases, drags and wheel events are ignored
            if match.group("kind") == "M" and button == 0:
                messages.append(Click(int(match.group("x")) - 1, int(match.group("y")) - 1))
        elif match.group("seq") is not None:
            key = _ESCAPE_KEYS.get(match.group("seq"))
            if key:
                messages.append(KeyPress(key))
            else:
                logger.debug(f"Unknown escape sequence: {match.group('seq')!r}")
        elif match.group("esc") is not None:
            messages.append(KeyPress("esc"))
        else:
            ch = match.group("char")
            messages.append(KeyPress(_CONTROL_KEYS.get(ch, ch)))
    return messages


def get_terminal_size(stream: Optional[TextIO] = None) -> Tuple[int, int]:
    """Get (columns, rows) using ioctl with fallback to shutil."""
    stream = stream or sys.stdout
    try:
        if stream.isatty():
            winsize = struct.pack("HHHH", 0, 0, 0, 0)
            result = fcntl.ioctl(stream.fileno(), termios.TIOCGWINSZ, winsize)
            rows, cols, _, _ = struct.unpack("HHHH", result)
            if rows > 0 and cols > 0:
                return cols, rows
    except OSError:
        pass
    size = shutil.get_terminal_size()
    return size.columns, size.lines


class Terminal:
    """Puts the terminal in cbreak mode for the duration of a ``with`` block.

    Also switches to the alternate screen, hides the cursor, optionally turns
    on mouse reporting, and turns SIGWINCH into Resize messages. Everything is
    restored on exit, including when the body raises.
    """

    def __init__(self, stdin: TextIO = sys.stdin, stdout: TextIO = sys.stdout, mouse: bool = True):
        self.stdin = stdin
        self.stdout = stdout
        self.mouse = mouse
        self._fd = stdin.fileno()
        self._saved = None
        self._old_winch = None
        self._resized = False

    def __enter__(self) -> "Terminal":
        self._saved = termios.tcgetattr(self._fd)
        tty.setcbreak(self._fd)
        self._old_winch = signal.signal(signal.SIGWINCH, self._on_winch)
        self.stdout.write(ALT_SCREEN_ON + CURSOR_HIDE + (MOUSE_ON if self.mouse else ""))
        self.stdout.flush()
        logger.debug("Terminal switched to cbreak mode")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.stdout.write((MOUSE_OFF if self.mouse else "") + CURSOR_SHOW + ALT_SCREEN_OFF)
            self.stdout.flush()
        finally:
            if self._old_winch is not None:
                signal.signal(signal.SIGWINCH, self._old_winch)
            if self._saved is not None:
                termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved)
            logger.debug("Terminal restored")

    def _on_winch(self, signum, frame) -> None:
        self._resized = True

    def size(self) -> Tuple[int, int]:
        return get_terminal_size(self.stdout)

    def poll(self, timeout: float) -> List[Any]:
        """Wait up to ``timeout`` seconds for input and return its messages."""
        messages: List[Any] = []
        if self._resized:
            self._resized = False
            messages.append(Resize(*self.size()))
        ready, _, _ = select.select([self._fd], [], [], max(0.0, timeout))
        if ready:
            data = os.read(self._fd, 1024)
            if data:
                messages.extend(parse_input(data.decode("utf-8", errors="ignore")))
        if self._resized:
            self._resized = False
            messages.append(Resize(*self.size()))
        return messages

    def draw(self, lines: List[str]) -> None:
        """Repaint the screen with ``lines``, one per row."""
        out = [CLEAR_HOME]
        for i, line in enumerate(lines):
            out.append(line + CLEAR_LINE)
            if i < len(lines) - 1:
                out.append("\r\n")
        self.stdout.write("".join(out))
        self.stdout.flush()
