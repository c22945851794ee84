"""Low-level terminal input decoding.

Reads raw bytes from stdin and translates them into normalized key tokens.
Arrow keys arrive as ESC sequences in both normal (``ESC [``) and application
(``ESC O``) cursor modes.
"""

from __future__ import annotations

import os
import select

ESC_SEQUENCE_TIMEOUT_MS = 25
_PENDING_BYTES: list[bytes] = []

_ARROWS = {b"A": "UP", b"B": "DOWN", b"C": "RIGHT", b"D": "LEFT", b"H": "HOME", b"F": "END"}
_TILDE_KEYS = {b"5": "PAGE_UP", b"6": "PAGE_DOWN", b"1": "HOME", b"4": "END"}


def _read_ready_byte(fd: int, timeout_ms: int) -> bytes | None:
    ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
    if not ready:
        return None
    ch = os.read(fd, 1)
    if not ch:
        return None
    return ch


def read_key(fd: int, timeout_ms: int | None = None) -> str:
    """Return the next key token, or ``""`` when ``timeout_ms`` elapses first.

    ``timeout_ms=None`` blocks until a key arrives.
    """
    if _PENDING_BYTES:
        ch = _PENDING_BYTES.pop(0)
    else:
        if timeout_ms is not None:
            ready, _, _ = select.select([fd], [], [], max(0.0, timeout_ms / 1000.0))
            if not ready:
                return ""

        ch = os.read(fd, 1)
        if not ch:
            return ""

    if ch in {b"\r", b"\n"}:
        return "ENTER"
    if ch in {b"\x08", b"\x7f"}:
        return "BACKSPACE"
    if ch == b" ":
        return "SPACE"

    if ch != b"\x1b":
        return _decode_utf8(fd, ch)

    # Escape / arrow key sequences.
    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    if seq not in {b"[", b"O"}:
        _PENDING_BYTES.append(seq)
        return "ESC"
    seq = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
    if seq is None:
        return "ESC"
    if seq in _ARROWS:
        return _ARROWS[seq]
    if seq in _TILDE_KEYS:
        tail = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if tail == b"~":
            return _TILDE_KEYS[seq]
    return "ESC"


def _decode_utf8(fd: int, first: bytes) -> str:
    """Decode one possibly multi-byte UTF-8 character."""
    lead = first[0]
    if lead < 0x80:
        return first.decode("ascii")
    if lead >= 0xF0:
        expected = 3
    elif lead >= 0xE0:
        expected = 2
    elif lead >= 0xC0:
        expected = 1
    else:
        expected = 0
    data = first
    for _ in range(expected):
        nxt = _read_ready_byte(fd, ESC_SEQUENCE_TIMEOUT_MS)
        if nxt is None:
            break
        data += nxt
    return data.decode("utf-8", errors="replace")
