"""Interactive directory browser with inline image previews."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Callable

from dirpeek import preview
from dirpeek.config import PreviewConfig
from dirpeek.host import ListingHost
from dirpeek.keybindings import BrowserAction, BrowserKeybindingsManager, get_browser_keybindings
from dirpeek.listing import DirectoryListing
from dirpeek.preview import PreviewSession
from dirpeek.terminal import ProcessTerminal
from dirpeek.terminal_image import ImageRenderError
from dirpeek.tui import TUI
from dirpeek.utils import truncate_to_width

logger = logging.getLogger(__name__)


class Browser:
    """Focused component routing keys to listing and preview commands.

    Each visited directory gets a fresh :class:`PreviewSession`; the old one
    is disabled first so no preview outlives its listing.
    """

    def __init__(
        self,
        tui: TUI,
        directory: str,
        config: PreviewConfig | None = None,
        show_hidden: bool = False,
        keybindings: BrowserKeybindingsManager | None = None,
    ) -> None:
        self.tui = tui
        self.listing = DirectoryListing(directory, show_hidden=show_hidden)
        self.listing.on_change = tui.request_render
        self.host = ListingHost(self.listing, terminal=tui.terminal)
        self.status: str = ""
        self.on_quit: Callable[[], None] | None = None
        self._config = config
        self._keybindings = keybindings or get_browser_keybindings()
        self.session = self._new_session()

    def _new_session(self) -> PreviewSession:
        session = PreviewSession(self.host, config=self._config)
        preview.enable_mode(session)
        return session

    def close(self) -> None:
        preview.disable_mode(self.session)

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def handle_input(self, data: str) -> None:
        action = self._keybindings.action_for(data)
        if action is not None:
            self.status = ""
            try:
                self._dispatch(action)
            except ImageRenderError as e:
                logger.warning("%s", e)
                self.status = str(e)
            except OSError as e:
                logger.warning("Cannot list %s: %s", e.filename, e)
                self.status = f"{e.filename}: {e.strerror}"
        self.listing.run_cursor_moved_handlers()
        self.tui.request_render()

    def _dispatch(self, action: BrowserAction) -> None:  # noqa: C901
        listing = self.listing
        page = max(1, listing.viewport_height - 1)

        if action == "cursorUp":
            listing.move_cursor(-1)
        elif action == "cursorDown":
            listing.move_cursor(1)
        elif action == "pageUp":
            listing.move_cursor(-page)
        elif action == "pageDown":
            listing.move_cursor(page)
        elif action == "cursorFirst":
            listing.goto_line(0)
        elif action == "cursorLast":
            listing.goto_line(len(listing.lines) - 1)
        elif action == "visit":
            entry = listing.entry_at_cursor()
            if entry is not None and entry.is_dir:
                self._visit(entry.path)
        elif action == "parent":
            self._visit(os.path.dirname(listing.directory))
        elif action == "toggleHidden":
            listing.show_hidden = not listing.show_hidden
            self._reload()
        elif action == "refresh":
            self._reload()
        elif action == "previewToggle":
            preview.toggle(self.session)
        elif action == "previewShow":
            preview.show(self.session)
        elif action == "previewHide":
            preview.hide_at_point(self.session)
        elif action == "previewHideAll":
            preview.hide_all(self.session)
        elif action == "previewAutoMode":
            self._toggle_auto_mode()
        elif action == "quit":
            if self.on_quit is not None:
                self.on_quit()

    def _visit(self, directory: str) -> None:
        preview.disable_mode(self.session)
        try:
            self.listing.chdir(directory)
        finally:
            self.session = self._new_session()

    def _reload(self) -> None:
        preview.disable_mode(self.session)
        try:
            self.listing.load()
        finally:
            self.session = self._new_session()

    def _toggle_auto_mode(self) -> None:
        current = self.session.settings
        self._config = current.with_overrides(auto_preview_mode=not current.auto_preview_mode)
        preview.disable_mode(self.session)
        self.session = self._new_session()
        self.status = "Auto preview " + ("on" if self.session.auto_mode_enabled else "off")

    def report_loop_error(
        self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
    ) -> None:
        """Event-loop exception handler: log and show in the status line."""
        exc = context.get("exception")
        logger.error("%s", context.get("message"), exc_info=exc)
        self.status = str(exc) if exc is not None else str(context.get("message"))
        self.tui.request_render()

    # ------------------------------------------------------------------
    # Component protocol
    # ------------------------------------------------------------------

    def invalidate(self) -> None:
        self.listing.invalidate()

    def render(self, width: int) -> list[str]:
        viewport = max(1, self.tui.terminal.rows - 1)
        self.listing.viewport_height = viewport
        rows = self.listing.render(width)
        rows.extend([""] * (viewport - len(rows)))

        flags = " [auto]" if self.session.auto_mode_enabled else ""
        status = f" {self.listing.directory}{flags}"
        if self.status:
            status += f"  {self.status}"
        rows.append("\x1b[2m" + truncate_to_width(status, width) + "\x1b[0m")
        return rows


async def run_browser(
    directory: str,
    config: PreviewConfig | None = None,
    show_hidden: bool = False,
    keybindings: BrowserKeybindingsManager | None = None,
) -> None:
    """Browse *directory* in the terminal until the user quits."""
    loop = asyncio.get_running_loop()
    tui = TUI(ProcessTerminal())
    browser = Browser(tui, directory, config=config, show_hidden=show_hidden, keybindings=keybindings)
    tui.add_child(browser)
    tui.set_focus(browser)

    done = asyncio.Event()
    browser.on_quit = done.set
    loop.set_exception_handler(browser.report_loop_error)

    tui.start()
    try:
        await done.wait()
    finally:
        browser.close()
        tui.stop()
