import io
import os

import pytest

from errors import TerminalIOFailure
from terminal_handler import (DEFAULT_SIZE, KeyEvent, ScrollEvent, Terminal, move_to, parse_input,
                              split_pending)


@pytest.mark.parametrize("data, key", [
    ('\x1b[A', 'up'),
    ('\x1b[B', 'down'),
    ('\x1b[C', 'right'),
    ('\x1b[D', 'left'),
    ('\x1bOA', 'up'),
    ('\x1b[1;5C', 'right'),
    ('\x1b[3~', 'delete'),
    ('\x1b[4~', 'end'),
    ('\x1b[F', 'end'),
    ('\x1bOF', 'end'),
    ('\x1b', 'esc'),
    ('\x03', 'ctrl-c'),
    ('q', 'q'),
])
def test_keys(data, key):
    assert parse_input(data) == [KeyEvent(key)]


def test_mouse_wheel():
    assert parse_input('\x1b[<64;10;5M') == [ScrollEvent(-1)]
    assert parse_input('\x1b[<65;1;1M') == [ScrollEvent(1)]


def test_other_mouse_buttons_are_ignored():
    assert parse_input('\x1b[<0;3;4M\x1b[<0;3;4m') == []


def test_unknown_sequences_do_not_quit():
    assert parse_input('\x1b[Z') == []


@pytest.mark.parametrize("data", [
    '\x1bOP', '\x1bOQ', '\x1bOR', '\x1bOS',  # F1-F4
    '\x1b[15~',  # F5
    '\x1bw', '\x1bq', '\x1b[',  # Alt+key
])
def test_function_and_alt_keys_are_not_esc(data):
    assert KeyEvent('esc') not in parse_input(data)
    assert KeyEvent('q') not in parse_input(data)


def test_esc_inside_a_chunk_is_not_a_key_press():
    assert parse_input('w\x1b\x1bOPd') == [KeyEvent('w'), KeyEvent('d')]


def test_mixed_chunk():
    events = parse_input('wa\x1b[<64;2;2M\x1b[Bd')
    assert events == [KeyEvent('w'), KeyEvent('a'), ScrollEvent(-1), KeyEvent('down'), KeyEvent('d')]


def test_move_to_is_one_based():
    assert move_to(0, 0) == '\x1b[1;1H'
    assert move_to(39, 11) == '\x1b[12;40H'


class BrokenStream(io.StringIO):
    def write(self, text):
        raise OSError("device gone")


def test_write_failure_is_terminal_io_failure():
    terminal = Terminal(stdin=io.StringIO(), stdout=BrokenStream())
    with pytest.raises(TerminalIOFailure):
        terminal.write('x')


def test_restore_without_enter_writes_nothing():
    out = io.StringIO()
    terminal = Terminal(stdin=io.StringIO(), stdout=out)
    terminal.restore()
    assert out.getvalue() == ''


@pytest.mark.parametrize("data, complete, pending", [
    ('\x1b[<64;10;5M\x1b', '\x1b[<64;10;5M', '\x1b'),
    ('w\x1b[<64;1', 'w', '\x1b[<64;1'),
    ('\x1bO', '', '\x1bO'),
    ('\x1b', '\x1b', ''),
    ('\x1b[A', '\x1b[A', ''),
    ('abc', 'abc', ''),
])
def test_split_pending(data, complete, pending):
    assert split_pending(data) == (complete, pending)


def test_overlong_tail_is_not_held():
    data = '\x1b[' + '1' * 100
    assert split_pending(data) == (data, '')


class PipeInput:
    def __init__(self, fd):
        self.fd = fd

    def fileno(self):
        return self.fd


@pytest.fixture
def pipe_terminal():
    read_fd, write_fd = os.pipe()
    terminal = Terminal(stdin=PipeInput(read_fd), stdout=io.StringIO())
    yield terminal, write_fd
    os.close(read_fd)
    os.close(write_fd)


def test_scroll_report_split_across_reads(pipe_terminal):
    terminal, write_fd = pipe_terminal

    os.write(write_fd, b'\x1b[<64;10;5M\x1b')
    assert terminal.read_events() == [ScrollEvent(-1)]

    os.write(write_fd, b'[<64;10;5M')
    assert terminal.read_events() == [ScrollEvent(-1)]


def test_arrow_split_across_reads(pipe_terminal):
    terminal, write_fd = pipe_terminal

    os.write(write_fd, b'\x1b[')
    assert terminal.read_events() == []
    os.write(write_fd, b'A')
    assert terminal.read_events() == [KeyEvent('up')]


def test_lone_esc_read_is_a_key_press(pipe_terminal):
    terminal, write_fd = pipe_terminal
    os.write(write_fd, b'\x1b')
    assert terminal.read_events() == [KeyEvent('esc')]


def test_multibyte_character_split_across_reads(pipe_terminal):
    terminal, write_fd = pipe_terminal
    encoded = 'é'.encode('utf-8')

    os.write(write_fd, encoded[:1])
    assert terminal.read_events() == []
    os.write(write_fd, encoded[1:])
    assert terminal.read_events() == [KeyEvent('é')]


def test_size_ignores_environment(monkeypatch):
    monkeypatch.setenv('COLUMNS', '132')
    monkeypatch.setenv('LINES', '50')
    monkeypatch.setattr(os, 'get_terminal_size', lambda fd: os.terminal_size((100, 30)))

    terminal = Terminal(stdin=io.StringIO(), stdout=PipeInput(1))
    assert terminal.size() == (100, 30)


def test_size_falls_back_without_a_tty():
    terminal = Terminal(stdin=io.StringIO(), stdout=io.StringIO())
    assert terminal.size() == DEFAULT_SIZE
