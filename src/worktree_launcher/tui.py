"""Raw-terminal selectors and screen helpers for interactive prompts."""

from __future__ import annotations

import os
import re
import sys
from collections.abc import Iterator
from contextlib import contextmanager

from rich.prompt import Confirm

from .console import get_console
from .exceptions import WorktreeLauncherError

_ANSI_RE = re.compile(r"\x1b\[[^m]*m")

_SPECIAL_KEYS = {
    b"\r": "enter",
    b"\n": "enter",
    b"\x03": "ctrl-c",
    b"\x7f": "backspace",
    b"\x08": "backspace",
    b" ": "space",
    b"\t": "tab",
}

_ARROWS = {b"A": "up", b"B": "down", b"C": "right", b"D": "left"}

UNSUPPORTED_TERMINAL_MESSAGE = "Interactive mode is not supported on this terminal; try 'wt list'"


def _get_terminal_width() -> int:
    """Get terminal width, defaulting to 80."""
    try:
        return os.get_terminal_size(sys.stderr.fileno()).columns
    except (OSError, ValueError):
        return 80


def _get_terminal_height() -> int:
    try:
        return os.get_terminal_size(sys.stderr.fileno()).lines
    except (OSError, ValueError):
        return 24


def _write_stderr(s: str) -> None:
    """Write raw bytes to stderr, bypassing buffered text wrapper."""
    os.write(sys.stderr.fileno(), s.encode())


def visible_length(text: str) -> int:
    """Length of text with ANSI escapes removed."""
    return len(_ANSI_RE.sub("", text))


def truncate(text: str, width: int) -> str:
    """Truncate text to fit within terminal width."""
    if visible_length(text) <= width:
        return text
    # Walk both strings, skipping escape sequences
    vis_pos = 0
    cut_pos = 0
    i = 0
    while i < len(text) and vis_pos < width - 1:
        if text[i] == "\x1b":
            j = i + 1
            while j < len(text) and text[j] != "m":
                j += 1
            i = j + 1
        else:
            vis_pos += 1
            i += 1
        cut_pos = i
    return text[:cut_pos] + "\x1b[0m"


def read_key(fd: int) -> str:
    """
    Read a single keypress from fd.

    Returns:
        A key name ("up", "down", "left", "right", "enter", "esc", "ctrl-c",
        "backspace", "space", "tab", "unknown") or the typed character.
    """
    ch = os.read(fd, 1)
    if not ch:
        raise EOFError

    if ch == b"\x1b":
        import select

        readable, _, _ = select.select([fd], [], [], 0.05)
        if not readable:
            return "esc"
        seq1 = os.read(fd, 1)
        if seq1 == b"[":
            return _ARROWS.get(_read_csi(fd), "unknown")
        return "unknown"

    if ch in _SPECIAL_KEYS:
        return _SPECIAL_KEYS[ch]

    # Multi-byte UTF-8 characters
    if ch[0] >= 0xC0:
        extra = 1 if ch[0] < 0xE0 else 2 if ch[0] < 0xF0 else 3
        ch += os.read(fd, extra)

    try:
        text = ch.decode()
    except UnicodeDecodeError:
        return "unknown"
    return text if text.isprintable() else "unknown"


def _read_csi(fd: int) -> bytes:
    """Read the rest of a CSI sequence up to and including its final byte."""
    seq = b""
    while True:
        ch = os.read(fd, 1)
        if not ch:
            return seq
        seq += ch
        if 0x40 <= ch[0] <= 0x7E:
            return seq


@contextmanager
def raw_terminal() -> Iterator[int]:
    """
    Put stdin in raw mode and hide the cursor for the duration.

    Yields:
        The stdin file descriptor to read keys from

    Raises:
        ImportError: On platforms without termios
    """
    import termios
    import tty

    fd = sys.stdin.fileno()
    old_settings = termios.tcgetattr(fd)
    _write_stderr("\x1b[?25l")
    try:
        tty.setraw(fd)
        yield fd
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
        _write_stderr("\x1b[?25h")


class FullScreen:
    """Raw-mode alternate screen that can be suspended to run child processes.

    Use as a context manager. While suspended the terminal is back in its
    normal state, so an interactive child process owns it completely.
    """

    def __init__(self) -> None:
        self.fd = -1
        self._saved: list | None = None

    def __enter__(self) -> FullScreen:
        try:
            import termios
        except ImportError as e:
            raise WorktreeLauncherError(UNSUPPORTED_TERMINAL_MESSAGE) from e

        self.fd = sys.stdin.fileno()
        try:
            self._saved = termios.tcgetattr(self.fd)
        except termios.error as e:
            raise WorktreeLauncherError(UNSUPPORTED_TERMINAL_MESSAGE) from e
        self._activate()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._deactivate()

    def _activate(self) -> None:
        import tty

        tty.setraw(self.fd)
        _write_stderr("\x1b[?1049h\x1b[?25l\x1b[H\x1b[2J")

    def _deactivate(self) -> None:
        import termios

        termios.tcsetattr(self.fd, termios.TCSADRAIN, self._saved)
        _write_stderr("\x1b[2J\x1b[?25h\x1b[?1049l")

    @contextmanager
    def suspended(self) -> Iterator[None]:
        """Restore the normal terminal for the duration."""
        self._deactivate()
        try:
            yield
        finally:
            self._activate()

    def read_key(self) -> str:
        return read_key(self.fd)


def draw_screen(lines: list[str]) -> None:
    """Redraw the whole screen with lines, one per terminal row."""
    width = _get_terminal_width()
    height = _get_terminal_height()
    out = ["\x1b[H"]
    for row in range(height):
        line = lines[row] if row < len(lines) else ""
        out.append("\x1b[2K" + truncate(line, width))
        if row < height - 1:
            out.append("\r\n")
    _write_stderr("".join(out))


def _render(lines: list[str], *, first_render: bool = False) -> None:
    """Render lines in place below the cursor using ANSI escape codes."""
    width = _get_terminal_width()

    if not first_render:
        _write_stderr("\x1b[u")
    _write_stderr("\x1b[s")

    for line in lines:
        _write_stderr(f"\x1b[2K{truncate(line, width)}\r\n")

    # Clear leftovers from a previous longer render
    for _ in range(2):
        _write_stderr("\x1b[2K\r\n")
    _write_stderr("\x1b[2A")


def _cleanup(total_lines: int) -> None:
    """Erase the rendered selector from stderr."""
    _write_stderr("\x1b[u")
    for _ in range(total_lines + 2):
        _write_stderr("\x1b[2K\r\n")
    _write_stderr("\x1b[u")


def _select_lines(items: list[tuple[str, str]], title: str, selected: int) -> list[str]:
    lines = [f"  \x1b[1m{title}\x1b[0m", ""]
    for i, (label, hint) in enumerate(items):
        if i == selected:
            lines.append(f"  \x1b[1;7m > {label} \x1b[0m  \x1b[2m{hint}\x1b[0m")
        else:
            lines.append(f"    {label}  \x1b[2m{hint}\x1b[0m")
    return lines


def arrow_select(
    items: list[tuple[str, str]],
    title: str = "Select:",
    default_index: int = 0,
) -> int | None:
    """Arrow-key selector that renders on stderr.

    Args:
        items: List of (label, hint) tuples to display.
        title: Title shown above the list.
        default_index: Initially highlighted item index.

    Returns:
        Index of the selected item, or None if cancelled.
    """
    if not items:
        return None

    default_index = max(0, min(default_index, len(items) - 1))

    if not sys.stdin.isatty() or not sys.stderr.isatty():
        return _arrow_select_fallback(items, title, default_index)

    try:
        return _arrow_select_raw(items, title, default_index)
    except ImportError:
        return _arrow_select_fallback(items, title, default_index)


def _arrow_select_raw(
    items: list[tuple[str, str]],
    title: str,
    default_index: int,
) -> int | None:
    """Unix implementation using termios/tty."""
    selected = default_index
    total_lines = len(items) + 2

    with raw_terminal() as fd:
        _render(_select_lines(items, title, selected), first_render=True)
        try:
            while True:
                key = read_key(fd)

                if key == "enter":
                    _cleanup(total_lines)
                    return selected

                if key in ("ctrl-c", "q", "esc"):
                    _cleanup(total_lines)
                    return None

                if key in ("up", "k"):
                    selected = (selected - 1) % len(items)
                elif key in ("down", "j"):
                    selected = (selected + 1) % len(items)
                elif key.isdigit() and 0 < int(key) <= len(items):
                    _cleanup(total_lines)
                    return int(key) - 1
                _render(_select_lines(items, title, selected))
        except (KeyboardInterrupt, EOFError):
            _cleanup(total_lines)
            return None


def _arrow_select_fallback(
    items: list[tuple[str, str]],
    title: str,
    default_index: int,
) -> int | None:
    """Fallback: numbered list with text input."""
    out = sys.stderr

    out.write(f"\n  {title}\n\n")
    for i, (label, hint) in enumerate(items):
        marker = ">" if i == default_index else " "
        out.write(f"  {marker} [{i + 1}] {label}  {hint}\n")
    out.write("\n")
    out.flush()

    try:
        out.write(f"Select [1-{len(items)}]: ")
        out.flush()
        line = sys.stdin.readline()
        if not line:
            return None
        choice = line.strip()
        if not choice:
            return default_index
        idx = int(choice) - 1
        if 0 <= idx < len(items):
            return idx
    except (ValueError, KeyboardInterrupt):
        pass

    return None


def _checkbox_lines(
    items: list[tuple[str, str]], title: str, cursor: int, checked: list[bool]
) -> list[str]:
    lines = [f"  \x1b[1m{title}\x1b[0m", "  \x1b[2m[space] toggle  [a] all  [enter] confirm\x1b[0m"]
    for i, (label, hint) in enumerate(items):
        box = "[x]" if checked[i] else "[ ]"
        pointer = ">" if i == cursor else " "
        text = f"{pointer} {box} {label}"
        if i == cursor:
            text = f"\x1b[1m{text}\x1b[0m"
        lines.append(f"  {text}  \x1b[2m{hint}\x1b[0m")
    return lines


def checkbox_select(
    items: list[tuple[str, str]],
    title: str = "Select:",
    checked: list[bool] | None = None,
) -> list[int] | None:
    """Multi-select with checkboxes.

    Args:
        items: List of (label, hint) tuples to display.
        title: Title shown above the list.
        checked: Initial check state per item (default: none checked).

    Returns:
        Indices of the checked items in display order, or None if cancelled.
    """
    if not items:
        return []

    state = list(checked) if checked is not None else [False] * len(items)

    if not sys.stdin.isatty() or not sys.stderr.isatty():
        return _checkbox_select_fallback(items, title, state)

    try:
        return _checkbox_select_raw(items, title, state)
    except ImportError:
        return _checkbox_select_fallback(items, title, state)


def _checkbox_select_raw(
    items: list[tuple[str, str]], title: str, state: list[bool]
) -> list[int] | None:
    cursor = 0
    total_lines = len(items) + 2

    with raw_terminal() as fd:
        _render(_checkbox_lines(items, title, cursor, state), first_render=True)
        try:
            while True:
                key = read_key(fd)

                if key == "enter":
                    _cleanup(total_lines)
                    return [i for i, on in enumerate(state) if on]

                if key in ("ctrl-c", "q", "esc"):
                    _cleanup(total_lines)
                    return None

                if key in ("up", "k"):
                    cursor = (cursor - 1) % len(items)
                elif key in ("down", "j"):
                    cursor = (cursor + 1) % len(items)
                elif key == "space":
                    state[cursor] = not state[cursor]
                elif key == "a":
                    target = not all(state)
                    state = [target] * len(items)
                _render(_checkbox_lines(items, title, cursor, state))
        except (KeyboardInterrupt, EOFError):
            _cleanup(total_lines)
            return None


def _checkbox_select_fallback(
    items: list[tuple[str, str]], title: str, state: list[bool]
) -> list[int] | None:
    """Fallback: numbered list, selection typed as space-separated numbers."""
    out = sys.stderr

    out.write(f"\n  {title}\n\n")
    for i, (label, hint) in enumerate(items):
        box = "[x]" if state[i] else "[ ]"
        out.write(f"  {box} [{i + 1}] {label}  {hint}\n")
    out.write("\n")
    out.write("Numbers to select (space-separated), 'all', 'none', or Enter for [x]: ")
    out.flush()

    try:
        line = sys.stdin.readline()
    except KeyboardInterrupt:
        return None
    if not line:
        return None

    choice = line.strip().lower()
    if not choice:
        return [i for i, on in enumerate(state) if on]
    if choice == "all":
        return list(range(len(items)))
    if choice == "none":
        return []

    selected: list[int] = []
    for token in choice.replace(",", " ").split():
        if not token.isdigit() or not 0 < int(token) <= len(items):
            return None
        idx = int(token) - 1
        if idx not in selected:
            selected.append(idx)
    return sorted(selected)


def confirm(message: str, default: bool = True) -> bool:
    """Ask a yes/no question; end of input counts as the default answer."""
    try:
        return Confirm.ask(message, default=default, console=get_console())
    except EOFError:
        return default
