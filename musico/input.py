"""Terminal input — raw keypress reading for the player controls."""
import select as _sel
import sys
import termios
import tty


def _read_key(timeout: float = 0.5) -> str | None:
    """Read one logical keypress in raw mode; None if nothing arrived within timeout.

    Arrow keys come back as "up", "down", "left", "right"; a bare Escape as "esc".
    """
    fd = sys.stdin.fileno()
    old = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        readable, _, _ = _sel.select([sys.stdin], [], [], timeout)
        if not readable:
            return None
        ch = sys.stdin.read(1)
        if ch != "\x1b":
            return ch
        readable, _, _ = _sel.select([sys.stdin], [], [], 0.05)
        if not readable:
            return "esc"
        if sys.stdin.read(1) != "[":
            return "ignore"
        readable, _, _ = _sel.select([sys.stdin], [], [], 0.05)
        if not readable:
            return "ignore"
        return {"A": "up", "B": "down", "C": "right", "D": "left"}.get(sys.stdin.read(1), "ignore")
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old)
