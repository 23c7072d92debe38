"""Terminal text utilities: ANSI stripping, width measurement, truncation."""

from __future__ import annotations

import re
import unicodedata

import grapheme
import wcwidth as _wcwidth

# CSI sequences, OSC 8 hyperlinks and APC payloads (kitty graphics)
_STRIP_RE = re.compile(
    r"\x1b\[[0-9;]*[A-Za-z]"
    r"|\x1b\]8;;[^\x07]*\x07"
    r"|\x1b_[^\x07\x1b]*(?:\x07|\x1b\\)"
)

_ANSI_AT_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]|\x1b\][^\x07]*\x07")

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def _grapheme_width(g: str) -> int:
    if not g:
        return 0
    first = g[0]
    cp = ord(first)
    if cp < 0x20 or 0x7F <= cp <= 0x9F:
        return 0
    if len(g) > 1:
        # VS16 or ZWJ sequences render as wide emoji
        if "\ufe0f" in g or "\u200d" in g or cp >= 0x1F000:
            return 2
        if unicodedata.category(first).startswith("M"):
            return 0
    return max(_wcwidth.wcwidth(first), 0)


def visible_width(text: str) -> int:
    """Visible terminal width of *text*, ignoring escape sequences."""
    if not text:
        return 0
    stripped = _STRIP_RE.sub("", text).replace("\t", "   ")
    if stripped.isascii() and stripped.isprintable():
        return len(stripped)

    cached = _width_cache.get(stripped)
    if cached is not None:
        return cached

    total = sum(_grapheme_width(g) for g in grapheme.graphemes(stripped))
    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[stripped] = total
    return total


def truncate_to_width(
    text: str,
    max_width: int,
    ellipsis: str = "...",
    pad: bool = False,
) -> str:
    """Truncate *text* to *max_width* visible columns.

    The ellipsis counts towards the width.  With *pad*, the result is
    right-padded with spaces to exactly *max_width*.
    """
    if max_width <= 0:
        return ""

    text_width = visible_width(text)
    if text_width <= max_width:
        return text + " " * (max_width - text_width) if pad else text

    target = max_width - visible_width(ellipsis)
    if target <= 0:
        return _take_columns(ellipsis, max_width)

    result = _take_columns(text, target) + ellipsis
    if pad:
        result += " " * (max_width - visible_width(result))
    return result


def _take_columns(text: str, max_cols: int) -> str:
    """Prefix of *text* fitting *max_cols* columns, keeping escape codes."""
    out: list[str] = []
    cols = 0
    pos = 0
    while pos < len(text):
        m = _ANSI_AT_RE.match(text, pos)
        if m is not None:
            out.append(m.group())
            pos = m.end()
            continue
        g = next(grapheme.graphemes(text[pos:]))
        w = _grapheme_width(g)
        if cols + w > max_cols:
            break
        out.append(g)
        cols += w
        pos += len(g)
    return "".join(out)
