"""
Terminal handling for the radar display.
Raw mode, alternate screen, mouse capture, output and input decoding.
"""

import asyncio
import codecs
import logging
import os
import re
import sys
import termios
import tty
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from errors import TerminalIOFailure

logger = logging.getLogger(__name__)

ALT_SCREEN_ON = '\x1b[?1049h'
ALT_SCREEN_OFF = '\x1b[?1049l'
HIDE_CURSOR = '\x1b[?25l'
SHOW_CURSOR = '\x1b[?25h'
# Button reporting plus SGR extended coordinates
MOUSE_ON = '\x1b[?1000h\x1b[?1006h'
MOUSE_OFF = '\x1b[?1006l\x1b[?1000l'
CLEAR_SCREEN = '\x1b[2J\x1b[1;1H'

DEFAULT_SIZE = (80, 24)


def move_to(col: int, row: int) -> str:
    """Cursor positioning sequence for a zero-based cell"""
    return f'\x1b[{row + 1};{col + 1}H'


@dataclass(frozen=True)
class KeyEvent:
    key: str


@dataclass(frozen=True)
class ScrollEvent:
    # -1 for wheel up, 1 for wheel down
    direction: int


@dataclass(frozen=True)
class ResizeEvent:
    cols: int
    rows: int


InputEvent = Union[KeyEvent, ScrollEvent, ResizeEvent]

_TOKEN = re.compile(
    r'\x1b\[<(?P<button>\d+);\d+;\d+[Mm]'            # SGR mouse report
    r'|\x1b\[(?P<csi_num>\d*)(?:;\d+)*(?P<csi>[A-DFH~])'
    r'|\x1bO(?P<ss3>[A-DFH])'
    r'|(?P<other_csi>\x1b\[[\x30-\x3f]*[\x20-\x2f]*[\x40-\x7e])'
    r'|(?P<other_ss3>\x1bO.)'                        # F1-F4 and friends
    r'|(?P<alt>\x1b[^\x1b])'                         # Alt-modified key
    r'|(?P<esc>\x1b)'
    r'|(?P<char>.)',
    re.DOTALL,
)

# Escape sequence cut off at the end of a read
_INCOMPLETE = re.compile(r'\x1b(?:\[[\x30-\x3f]*[\x20-\x2f]*|O)?\Z')
MAX_PENDING = 32

_FINAL_KEYS = {'A': 'up', 'B': 'down', 'C': 'right', 'D': 'left', 'F': 'end', 'H': 'home'}
_TILDE_KEYS = {'1': 'home', '3': 'delete', '4': 'end', '7': 'home', '8': 'end'}

SCROLL_UP_BUTTON = 64
SCROLL_DOWN_BUTTON = 65


def split_pending(data: str) -> Tuple[str, str]:
    """
    Split data into (complete, pending) where pending is a trailing escape
    sequence that has not fully arrived yet.

    A chunk that is nothing but ESC is the Esc key and is never held back.
    Overlong tails are not held either.
    """
    if data == '\x1b':
        return data, ''
    match = _INCOMPLETE.search(data)
    if match is None or len(data) - match.start() > MAX_PENDING:
        return data, ''
    return data[:match.start()], data[match.start():]


def parse_input(data: str) -> List[InputEvent]:
    """
    Decode a chunk of raw terminal input into events; unknown sequences are dropped.

    ESC counts as the Esc key only when it is the whole chunk, otherwise it
    belongs to a sequence this decoder does not know.
    """
    events: List[InputEvent] = []
    for match in _TOKEN.finditer(data):
        if match.group('button') is not None:
            button = int(match.group('button'))
            if button == SCROLL_UP_BUTTON:
                events.append(ScrollEvent(-1))
            elif button == SCROLL_DOWN_BUTTON:
                events.append(ScrollEvent(1))
        elif match.group('csi') is not None:
            final = match.group('csi')
            if final == '~':
                key = _TILDE_KEYS.get(match.group('csi_num'))
            else:
                key = _FINAL_KEYS[final]
            if key:
                events.append(KeyEvent(key))
        elif match.group('ss3') is not None:
            events.append(KeyEvent(_FINAL_KEYS[match.group('ss3')]))
        elif match.group('esc') is not None:
            if len(data) == 1:
                events.append(KeyEvent('esc'))
        elif match.group('char') is not None:
            char = match.group('char')
            if char == '\x03':
                events.append(KeyEvent('ctrl-c'))
            elif char in ('\r', '\n'):
                events.append(KeyEvent('enter'))
            elif char.isprintable():
                events.append(KeyEvent(char))
    return events


class Terminal:
    """Owns the controlling terminal while the radar is on screen"""

    def __init__(self, stdin=None, stdout=None):
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.active = False
        self._saved_attrs = None
        self._reader_fd: Optional[int] = None
        self._decoder = codecs.getincrementaldecoder('utf-8')(errors='ignore')
        self._pending = ''

    def size(self) -> Tuple[int, int]:
        """(columns, rows) of the terminal, asked of the device on every call"""
        try:
            size = os.get_terminal_size(self.stdout.fileno())
        except (OSError, ValueError, AttributeError) as e:
            logger.debug(f"Terminal size unavailable, using {DEFAULT_SIZE}: {e}")
            return DEFAULT_SIZE
        if size.columns <= 0 or size.lines <= 0:
            return DEFAULT_SIZE
        return size.columns, size.lines

    def enter(self):
        """Switch to raw mode on the alternate screen with mouse capture"""
        fd = self.stdin.fileno()
        try:
            self._saved_attrs = termios.tcgetattr(fd)
            tty.setraw(fd)
        except termios.error as e:
            raise TerminalIOFailure(f"Cannot switch terminal to raw mode: {e}") from e
        self.active = True
        self.write(ALT_SCREEN_ON + HIDE_CURSOR + MOUSE_ON + CLEAR_SCREEN)
        self.flush()

    def restore(self):
        """Undo enter(); safe to call more than once"""
        if not self.active:
            return
        self.active = False
        try:
            self.write(MOUSE_OFF + SHOW_CURSOR + ALT_SCREEN_OFF)
            self.flush()
        except TerminalIOFailure as e:
            logger.warning(f"Could not reset terminal modes: {e}")
        finally:
            if self._saved_attrs is not None:
                try:
                    termios.tcsetattr(self.stdin.fileno(), termios.TCSADRAIN, self._saved_attrs)
                except termios.error as e:
                    logger.warning(f"Could not restore terminal attributes: {e}")
                self._saved_attrs = None

    def write(self, text: str):
        try:
            self.stdout.write(text)
        except (OSError, ValueError) as e:
            raise TerminalIOFailure(f"Terminal write failed: {e}") from e

    def flush(self):
        try:
            self.stdout.flush()
        except (OSError, ValueError) as e:
            raise TerminalIOFailure(f"Terminal flush failed: {e}") from e

    def read_events(self) -> List[InputEvent]:
        """
        Read whatever input is waiting and decode it.

        An escape sequence split across reads is held back and completed by
        the next read.
        """
        data = os.read(self.stdin.fileno(), 1024)
        text = self._pending + self._decoder.decode(data)
        complete, self._pending = split_pending(text)
        return parse_input(complete)

    def start_reader(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue):
        """Feed decoded input events into queue as stdin becomes readable"""
        def on_readable():
            try:
                events = self.read_events()
            except OSError as e:
                logger.warning(f"Reading terminal input failed: {e}")
                return
            for event in events:
                queue.put_nowait(event)

        self._reader_fd = self.stdin.fileno()
        loop.add_reader(self._reader_fd, on_readable)

    def stop_reader(self, loop: asyncio.AbstractEventLoop):
        if self._reader_fd is not None:
            loop.remove_reader(self._reader_fd)
            self._reader_fd = None
