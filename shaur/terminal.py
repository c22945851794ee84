"""Terminal control helpers for the menu session.

Owns cbreak-mode lifecycle, cursor visibility, and screen clearing.
External commands run inside ``suspended()`` so they see a normal tty.
"""

from __future__ import annotations

import contextlib
import os
import termios
import tty

CLEAR_SCREEN = "\x1b[H\x1b[2J\x1b[3J"
HIDE_CURSOR = b"\x1b[?25l"
SHOW_CURSOR = b"\x1b[?25h"


class TerminalController:
    """Switch stdin between cbreak (single-key menus) and its saved state."""

    def __init__(self, stdin_fd: int, stdout_fd: int) -> None:
        """Capture tty state and bind stdin/stdout file descriptors."""
        self.stdin_fd = stdin_fd
        self.stdout_fd = stdout_fd
        self._saved_tty_state = termios.tcgetattr(stdin_fd)
        self._interactive = False

    @property
    def interactive(self) -> bool:
        return self._interactive

    def enable_menu_mode(self) -> None:
        """Read keys one at a time without echo and hide the cursor."""
        tty.setcbreak(self.stdin_fd, termios.TCSAFLUSH)
        os.write(self.stdout_fd, HIDE_CURSOR)
        self._interactive = True

    def disable_menu_mode(self) -> None:
        """Show the cursor and restore the tty state captured at construction."""
        os.write(self.stdout_fd, SHOW_CURSOR)
        termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, self._saved_tty_state)
        self._interactive = False

    def write(self, text: str) -> None:
        data = text.encode("utf-8", errors="replace")
        while data:
            written = os.write(self.stdout_fd, data)
            data = data[written:]

    def clear(self) -> None:
        self.write(CLEAR_SCREEN)

    @contextlib.contextmanager
    def menu_mode(self):
        """Context manager that brackets code with menu enter/exit calls."""
        try:
            self.enable_menu_mode()
            yield
        finally:
            self.disable_menu_mode()

    @contextlib.contextmanager
    def suspended(self):
        """Temporarily hand the terminal back in its original state."""
        was_interactive = self._interactive
        if was_interactive:
            self.disable_menu_mode()
        try:
            yield
        finally:
            if was_interactive:
                self.enable_menu_mode()
