"""Core TUI loop with differential rendering.

Provides the ``Component`` protocol, a ``Container`` that stacks child
components vertically, and the ``TUI`` class that schedules renders on the
event loop, dispatches input to the focused component and repaints only the
screen rows that changed.
"""

from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING, Protocol

from dirpeek.keys import split_input
from dirpeek.terminal_image import CellDimensions, is_image_line, set_cell_dimensions

if TYPE_CHECKING:
    from dirpeek.terminal import Terminal

_CELL_SIZE_RESPONSE_RE = re.compile(r"\x1b\[6;(\d+);(\d+)t")


class Component(Protocol):
    """A renderable terminal component.

    ``handle_input`` is optional and looked up with ``getattr``.
    """

    def render(self, width: int) -> list[str]: ...

    def invalidate(self) -> None: ...


class Container:
    """Renders its children one after another."""

    def __init__(self) -> None:
        self.children: list[object] = []

    def add_child(self, component: object) -> None:
        self.children.append(component)

    def remove_child(self, component: object) -> None:
        """Remove *component* (no-op if absent)."""
        if component in self.children:
            self.children.remove(component)

    def clear(self) -> None:
        self.children.clear()

    def invalidate(self) -> None:
        for child in self.children:
            inv = getattr(child, "invalidate", None)
            if inv is not None:
                inv()

    def render(self, width: int) -> list[str]:
        lines: list[str] = []
        for child in self.children:
            lines.extend(child.render(width))  # type: ignore[attr-defined]
        return lines


class TUI(Container):
    """Full-screen render loop over a ``Terminal``."""

    def __init__(self, terminal: Terminal) -> None:
        super().__init__()
        self.terminal: Terminal = terminal
        self._previous_lines: list[str] = []
        self._previous_width: int = 0
        self._focused_component: object | None = None
        self._render_requested: bool = False
        self._cell_size_query_pending: bool = False
        self._stopped: bool = True
        self._full_redraw_count: int = 0

    @property
    def full_redraws(self) -> int:
        """Number of full (non-differential) redraws performed."""
        return self._full_redraw_count

    def set_focus(self, component: object | None) -> None:
        self._focused_component = component

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        self._stopped = False
        self.terminal.start(self.handle_input, self._on_resize)
        self.terminal.hide_cursor()
        self.query_cell_size()
        self.request_render()

    def stop(self) -> None:
        self._stopped = True
        self.terminal.stop()

    def query_cell_size(self) -> None:
        """Ask the terminal for its cell size in pixels (``CSI 16 t``)."""
        if self._cell_size_query_pending:
            return
        self._cell_size_query_pending = True
        self.terminal.write("\x1b[16t")

    def _on_resize(self) -> None:
        self._previous_width = 0
        self.request_render()

    # ------------------------------------------------------------------
    # Render scheduling
    # ------------------------------------------------------------------

    def request_render(self) -> None:
        """Schedule a render on the next loop tick; calls coalesce."""
        if self._render_requested:
            return
        self._render_requested = True
        try:
            asyncio.get_running_loop().call_soon(self._do_render_tick)
        except RuntimeError:
            # No running event loop -- render synchronously
            self._do_render_tick()

    def _do_render_tick(self) -> None:
        self._render_requested = False
        if not self._stopped:
            self.do_render()

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def handle_input(self, data: str) -> None:
        """Split *data* into keys and forward each to the focused component."""
        for key in split_input(data):
            if self._cell_size_query_pending and self._parse_cell_size_response(key):
                continue
            handler = getattr(self._focused_component, "handle_input", None)
            if callable(handler):
                handler(key)

    def _parse_cell_size_response(self, data: str) -> bool:
        m = _CELL_SIZE_RESPONSE_RE.fullmatch(data)
        if m is None:
            return False
        self._cell_size_query_pending = False
        height_px = int(m.group(1))
        width_px = int(m.group(2))
        if height_px > 0 and width_px > 0:
            set_cell_dimensions(CellDimensions(width_px=width_px, height_px=height_px))
            self.invalidate()
            self._previous_width = 0
            self.request_render()
        return True

    # ------------------------------------------------------------------
    # Render
    # ------------------------------------------------------------------

    def do_render(self) -> None:
        """Repaint changed rows, or the whole screen after a width change.

        Rows holding an image escape sequence are always rewritten because
        the terminal does not keep them across scrolls of surrounding text.
        """
        width = self.terminal.columns
        height = self.terminal.rows
        if width <= 0 or height <= 0:
            return

        lines = self.render(width)[:height]
        full = width != self._previous_width
        out: list[str] = []

        if full:
            self._full_redraw_count += 1
            out.append("\x1b[2J")

        for row, line in enumerate(lines):
            old = self._previous_lines[row] if row < len(self._previous_lines) else None
            if not full and line == old and not is_image_line(line):
                continue
            out.append(f"\x1b[{row + 1};1H")
            if is_image_line(line):
                out.append(line)
            else:
                out.append(line + "\x1b[0m\x1b[K")

        if not full:
            for row in range(len(lines), len(self._previous_lines)):
                out.append(f"\x1b[{row + 1};1H\x1b[2K")

        self._previous_lines = lines
        self._previous_width = width
        if out:
            self.terminal.write("".join(out))
