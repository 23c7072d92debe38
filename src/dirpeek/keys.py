"""Keyboard input parsing for legacy terminal sequences.

``split_input`` breaks a chunk read from stdin into individual key sequences;
``parse_key`` names a single sequence (``"up"``, ``"ctrl+c"``, ``"P"``); and
``matches_key`` compares raw input against a key identifier.
"""

from __future__ import annotations

import re

KeyId = str

# CSI (ESC [ params final), SS3 (ESC O x), ESC-prefixed key, or one character
_SEQUENCE_RE = re.compile(
    r"\x1b\[[0-9;?<>]*[ -/]*[@-~]"
    r"|\x1bO."
    r"|\x1b[\s\S]?"
    r"|[\s\S]",
)

LEGACY_KEY_SEQUENCES: dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[1~": "home",
    "\x1b[4~": "end",
    "\x1b[7~": "home",
    "\x1b[8~": "end",
    "\x1b[2~": "insert",
    "\x1b[3~": "delete",
    "\x1b[5~": "pageUp",
    "\x1b[6~": "pageDown",
    "\x1b[Z": "shift+tab",
}


def split_input(data: str) -> list[str]:
    """Split raw terminal input into one string per key sequence."""
    return _SEQUENCE_RE.findall(data)


def parse_key(data: str) -> KeyId | None:
    """Return the key identifier for a single raw input sequence."""
    if not data:
        return None
    if data in LEGACY_KEY_SEQUENCES:
        return LEGACY_KEY_SEQUENCES[data]
    if data == "\x1b":
        return "escape"
    if data in ("\r", "\n"):
        return "enter"
    if data == "\t":
        return "tab"
    if data == " ":
        return "space"
    if data in ("\x7f", "\x08"):
        return "backspace"
    if len(data) == 1 and 1 <= ord(data) <= 26:
        return "ctrl+" + chr(ord(data) + ord("a") - 1)
    if len(data) == 2 and data[0] == "\x1b" and data[1].isprintable():
        return "alt+" + data[1]
    if len(data) == 1 and data.isprintable():
        return data
    return None


def matches_key(data: str, key_id: KeyId) -> bool:
    """Return ``True`` if raw *data* is the key named *key_id*."""
    parsed = parse_key(data)
    if parsed is None:
        return False
    if key_id == "esc":
        key_id = "escape"
    elif key_id == "return":
        key_id = "enter"
    return parsed == key_id
