"""Directory listing buffer.

A ``DirectoryListing`` shows one directory in ``ls -l`` style.  The listing
text has character offsets like an editor buffer: the cursor sits on the
file name of its line, and overlays are anchored to the offset where a line
ends.  Overlay lines are drawn right below the line they are anchored to,
in creation order.
"""

from __future__ import annotations

import logging
import os
import stat
import time
from dataclasses import dataclass, field
from typing import Callable

from dirpeek.terminal_image import is_image_line
from dirpeek.utils import truncate_to_width

logger = logging.getLogger(__name__)

_CURSOR_ON = "\x1b[7m"
_CURSOR_OFF = "\x1b[0m"


@dataclass
class ListingEntry:
    name: str
    path: str
    is_dir: bool
    size: int = 0
    mode: int = 0
    mtime: float = 0.0


@dataclass
class ListingOverlay:
    position: int
    lines: list[str] = field(default_factory=list)
    image_id: int | None = None
    # Index in ``lines`` of the image's top row
    image_top: int = 0


class CursorSubscription:
    """Handle returned by :meth:`DirectoryListing.on_cursor_moved`."""

    def __init__(self, callback: Callable[[], None]) -> None:
        self.callback = callback


def format_entry(entry: ListingEntry) -> tuple[str, int]:
    """Return the listing line for *entry* and the column of its name."""
    mtime = time.strftime("%Y-%m-%d %H:%M", time.localtime(entry.mtime))
    prefix = f"  {stat.filemode(entry.mode)} {entry.size:>9} {mtime} "
    return prefix + entry.name, len(prefix)


def read_entries(directory: str, show_hidden: bool = False) -> list[ListingEntry]:
    """Entries of *directory*, directories first, then by name."""
    entries: list[ListingEntry] = []
    with os.scandir(directory) as it:
        for item in it:
            if not show_hidden and item.name.startswith("."):
                continue
            try:
                st = item.stat(follow_symlinks=False)
                is_dir = item.is_dir()
            except OSError as e:
                logger.debug("Cannot stat %s: %s", item.path, e)
                continue
            entries.append(
                ListingEntry(
                    name=item.name,
                    path=item.path,
                    is_dir=is_dir,
                    size=st.st_size,
                    mode=st.st_mode,
                    mtime=st.st_mtime,
                )
            )
    entries.sort(key=lambda e: (not e.is_dir, e.name))
    return entries


class DirectoryListing:
    """Listing buffer for a single directory."""

    def __init__(self, directory: str, show_hidden: bool = False) -> None:
        self.directory = os.path.abspath(directory)
        self.show_hidden = show_hidden
        self.viewport_height: int = 24
        self.on_change: Callable[[], None] | None = None

        self._lines: list[str] = []
        self._entries: list[ListingEntry | None] = []
        self._name_columns: list[int] = []
        self._line_starts: list[int] = []
        self._cursor_line: int = 0
        self._scroll_top: int = 0
        self._overlays: list[ListingOverlay] = []
        self._subscriptions: list[CursorSubscription] = []

        self.load()

    # ------------------------------------------------------------------
    # Contents
    # ------------------------------------------------------------------

    def load(self) -> None:
        """(Re)read the directory; drops all overlays.

        Raises ``OSError`` if the directory cannot be listed.
        """
        entries = read_entries(self.directory, self.show_hidden)
        current = self.entry_at_cursor() if self._lines else None

        self._lines = [f"  {self.directory}:"]
        self._entries = [None]
        self._name_columns = [2]

        parent = os.path.dirname(self.directory)
        listed: list[ListingEntry] = []
        if parent != self.directory:
            listed.append(ListingEntry(name="..", path=parent, is_dir=True, mode=stat.S_IFDIR | 0o755))
        listed.extend(entries)

        for entry in listed:
            line, column = format_entry(entry)
            self._lines.append(line)
            self._entries.append(entry)
            self._name_columns.append(column)

        self._line_starts = []
        offset = 0
        for line in self._lines:
            self._line_starts.append(offset)
            offset += len(line) + 1

        self._overlays = []
        self._scroll_top = 0
        self._cursor_line = 1 if len(self._lines) > 1 else 0
        if current is not None:
            self.goto_file(current.path)
        self._changed()

    def chdir(self, directory: str) -> None:
        previous = self.directory
        self.directory = os.path.abspath(directory)
        self._lines = []
        try:
            self.load()
        except OSError:
            self.directory = previous
            self.load()
            raise
        self.goto_file(previous)

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    @property
    def cursor_line(self) -> int:
        return self._cursor_line

    def entry_at_cursor(self) -> ListingEntry | None:
        return self._entries[self._cursor_line] if self._entries else None

    def file_at_cursor(self) -> str | None:
        entry = self.entry_at_cursor()
        return entry.path if entry is not None else None

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    def line_start_position(self, line: int | None = None) -> int:
        return self._line_starts[self._cursor_line if line is None else line]

    def line_end_position(self, line: int | None = None) -> int:
        index = self._cursor_line if line is None else line
        return self._line_starts[index] + len(self._lines[index])

    def cursor_position(self) -> int:
        return self.line_start_position() + self._name_columns[self._cursor_line]

    def line_at_position(self, position: int) -> int | None:
        """Index of the line containing *position*, if any."""
        for index, start in enumerate(self._line_starts):
            if start <= position <= start + len(self._lines[index]):
                return index
        return None

    # ------------------------------------------------------------------
    # Cursor movement
    # ------------------------------------------------------------------

    def goto_line(self, line: int) -> None:
        line = max(0, min(line, len(self._lines) - 1))
        if line != self._cursor_line:
            self._cursor_line = line
            self._changed()

    def move_cursor(self, delta: int) -> None:
        self.goto_line(self._cursor_line + delta)

    def goto_file(self, path: str) -> bool:
        for index, entry in enumerate(self._entries):
            if entry is not None and entry.path == path and entry.name != "..":
                self.goto_line(index)
                return True
        return False

    def on_cursor_moved(self, callback: Callable[[], None]) -> CursorSubscription:
        """Register *callback* to run after every command on this buffer."""
        subscription = CursorSubscription(callback)
        self._subscriptions.append(subscription)
        return subscription

    def remove_cursor_moved_handler(self, subscription: CursorSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def run_cursor_moved_handlers(self) -> None:
        """Notify subscribers; called once per handled command."""
        for subscription in list(self._subscriptions):
            subscription.callback()

    # ------------------------------------------------------------------
    # Overlays
    # ------------------------------------------------------------------

    def add_overlay(
        self,
        position: int,
        lines: list[str],
        image_id: int | None = None,
        image_top: int = 0,
    ) -> ListingOverlay:
        overlay = ListingOverlay(
            position=position, lines=list(lines), image_id=image_id, image_top=image_top
        )
        self._overlays.append(overlay)
        self._changed()
        return overlay

    def remove_overlay(self, overlay: ListingOverlay) -> None:
        if overlay in self._overlays:
            self._overlays.remove(overlay)
            self._changed()

    @property
    def overlays(self) -> list[ListingOverlay]:
        return list(self._overlays)

    # ------------------------------------------------------------------
    # Component protocol
    # ------------------------------------------------------------------

    def invalidate(self) -> None:
        pass

    def render(self, width: int) -> list[str]:
        below: dict[int, list[ListingOverlay]] = {}
        for overlay in self._overlays:
            index = self.line_at_position(overlay.position)
            if index is not None:
                below.setdefault(index, []).append(overlay)

        rows: list[str] = []
        # (image top row, first row, end row) of every overlay block
        blocks: list[tuple[int, int, int]] = []
        cursor_row = 0
        block_end = 0
        for index, line in enumerate(self._lines):
            if index == self._cursor_line:
                cursor_row = len(rows)
                rows.append(_CURSOR_ON + truncate_to_width(line, width, pad=True) + _CURSOR_OFF)
            else:
                rows.append(truncate_to_width(line, width))
            for overlay in below.get(index, []):
                start = len(rows)
                rows.extend(overlay.lines)
                blocks.append((start + overlay.image_top, start, len(rows)))
            if index == self._cursor_line:
                block_end = len(rows)

        self._scroll_into_view(cursor_row, block_end)

        # An image is drawn upwards from its last row; one whose top row is
        # scrolled off would land over the listing, so it is left out.
        for top, start, end in blocks:
            if top < self._scroll_top:
                for row in range(start, end):
                    if is_image_line(rows[row]):
                        rows[row] = ""
        return rows[self._scroll_top : self._scroll_top + self.viewport_height]

    def _scroll_into_view(self, cursor_row: int, block_end: int) -> None:
        height = max(1, self.viewport_height)
        if cursor_row < self._scroll_top:
            self._scroll_top = cursor_row
        elif block_end - self._scroll_top > height:
            # Show the cursor line's preview too, when it fits
            if block_end - cursor_row <= height:
                self._scroll_top = block_end - height
            else:
                self._scroll_top = cursor_row

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()
