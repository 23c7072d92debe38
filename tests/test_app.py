"""Tests for the interactive Browser component."""

from __future__ import annotations

import asyncio
import re
import shutil

import pytest
from PIL import Image

from dirpeek import cli
from dirpeek.app import Browser
from dirpeek.config import PreviewConfig
from dirpeek.terminal_image import ImageRenderError, is_image_line
from dirpeek.tui import TUI

from .virtual_terminal import VirtualTerminal


@pytest.fixture
def pictures(tmp_path):
    (tmp_path / "album").mkdir()
    Image.new("RGB", (40, 40), "red").save(tmp_path / "album" / "inner.png")
    Image.new("RGB", (40, 40), "red").save(tmp_path / "cat.png")
    Image.new("RGB", (40, 40), "blue").save(tmp_path / "dog.png")
    (tmp_path / "broken.png").write_bytes(b"not an image")
    (tmp_path / "notes.txt").write_text("hi")
    (tmp_path / ".secret.png").write_bytes(b"")
    return tmp_path


def _browser(directory, **config) -> tuple[Browser, VirtualTerminal]:
    terminal = VirtualTerminal(rows=30, columns=100)
    browser = Browser(TUI(terminal), str(directory), config=PreviewConfig(**config))
    return browser, terminal


def _select(browser: Browser, path) -> None:
    assert browser.listing.goto_file(str(path))


class TestNavigation:
    def test_cursor_keys(self, pictures) -> None:
        browser, _ = _browser(pictures)
        start = browser.listing.cursor_line
        browser.handle_input("j")
        browser.handle_input("\x1b[B")
        assert browser.listing.cursor_line == start + 2
        browser.handle_input("k")
        assert browser.listing.cursor_line == start + 1

    def test_first_and_last(self, pictures) -> None:
        browser, _ = _browser(pictures)
        browser.handle_input(">")
        assert browser.listing.cursor_line == len(browser.listing.lines) - 1
        browser.handle_input("<")
        assert browser.listing.cursor_line == 0

    def test_visit_directory(self, pictures) -> None:
        browser, _ = _browser(pictures)
        _select(browser, pictures / "album")
        browser.handle_input("\r")
        assert browser.listing.directory == str(pictures / "album")

    def test_visit_file_does_nothing(self, pictures) -> None:
        browser, _ = _browser(pictures)
        _select(browser, pictures / "notes.txt")
        browser.handle_input("\r")
        assert browser.listing.directory == str(pictures)

    def test_parent_selects_previous(self, pictures) -> None:
        browser, _ = _browser(pictures / "album")
        browser.handle_input("\x7f")
        assert browser.listing.directory == str(pictures)
        assert browser.listing.file_at_cursor() == str(pictures / "album")

    def test_toggle_hidden(self, pictures) -> None:
        browser, _ = _browser(pictures)
        assert not any(".secret.png" in line for line in browser.listing.lines)
        browser.handle_input(".")
        assert any(".secret.png" in line for line in browser.listing.lines)

    def test_failed_visit_reports_status(self, pictures) -> None:
        browser, _ = _browser(pictures)
        _select(browser, pictures / "album")
        shutil.rmtree(pictures / "album")
        browser.handle_input("\r")
        assert browser.listing.directory == str(pictures)
        assert "album" in browser.status
        assert browser.session.enabled

    def test_quit(self, pictures) -> None:
        browser, _ = _browser(pictures)
        calls: list[int] = []
        browser.on_quit = lambda: calls.append(1)
        browser.handle_input("q")
        assert calls == [1]

    def test_unbound_key_ignored(self, pictures) -> None:
        browser, _ = _browser(pictures)
        line = browser.listing.cursor_line
        browser.handle_input("z")
        assert browser.listing.cursor_line == line


class TestPreviewCommands:
    def test_toggle(self, pictures) -> None:
        browser, _ = _browser(pictures)
        _select(browser, pictures / "cat.png")
        browser.handle_input("p")
        assert len(browser.listing.overlays) == 1
        browser.handle_input("p")
        assert browser.listing.overlays == []

    def test_show_replaces_previous(self, pictures) -> None:
        browser, _ = _browser(pictures)
        _select(browser, pictures / "cat.png")
        browser.handle_input("s")
        _select(browser, pictures / "dog.png")
        browser.handle_input("s")
        overlays = browser.listing.overlays
        assert len(overlays) == 1
        assert overlays[0].position == browser.listing.line_end_position()

    def test_hide_and_hide_all(self, pictures) -> None:
        browser, terminal = _browser(pictures, auto_remove=False)
        _select(browser, pictures / "cat.png")
        browser.handle_input("s")
        _select(browser, pictures / "dog.png")
        browser.handle_input("s")
        browser.handle_input("h")
        assert len(browser.listing.overlays) == 1
        browser.handle_input("H")
        assert browser.listing.overlays == []
        assert "a=d,d=I" in terminal.output

    def test_render_error_goes_to_status(self, pictures) -> None:
        browser, _ = _browser(pictures)
        _select(browser, pictures / "broken.png")
        browser.handle_input("p")
        assert "broken.png" in browser.status
        assert browser.listing.overlays == []

    def test_status_cleared_by_next_command(self, pictures) -> None:
        browser, _ = _browser(pictures)
        _select(browser, pictures / "broken.png")
        browser.handle_input("p")
        browser.handle_input("j")
        assert browser.status == ""

    def test_visit_drops_previews(self, pictures) -> None:
        browser, _ = _browser(pictures)
        _select(browser, pictures / "cat.png")
        browser.handle_input("p")
        browser.handle_input("g")
        assert browser.listing.overlays == []
        assert browser.session.overlays == []

    def test_preview_rendered_below_line(self, pictures) -> None:
        browser, _ = _browser(pictures)
        _select(browser, pictures / "cat.png")
        browser.handle_input("p")
        rows = browser.render(100)
        cursor_row = next(i for i, row in enumerate(rows) if "cat.png" in row)
        assert rows[cursor_row + 1] == ""
        assert "\x1b_G" in rows[cursor_row + 3]

    def test_kept_preview_scrolled_partly_off(self, tmp_path) -> None:
        for i in range(30):
            Image.new("RGB", (40, 60)).save(tmp_path / f"img{i:02}.png")
        terminal = VirtualTerminal(rows=10, columns=100)
        browser = Browser(TUI(terminal), str(tmp_path), config=PreviewConfig(auto_remove=False))
        _select(browser, tmp_path / "img00.png")
        browser.handle_input("p")
        for _ in range(10):
            browser.handle_input("j")
            rows = browser.render(100)
            for index, row in enumerate(rows):
                if is_image_line(row):
                    m = re.search(r"\x1b\[(\d+)A", row)
                    # The image must fit between the top of the screen and this row
                    assert m is None or int(m.group(1)) <= index
        assert "img10.png" in next(row for row in rows if row.startswith("\x1b[7m"))


class TestAutoMode:
    @pytest.mark.asyncio
    async def test_toggle_auto_mode(self, pictures) -> None:
        browser, _ = _browser(pictures, delay=0.01)
        browser.handle_input("a")
        assert browser.session.auto_mode_enabled
        assert browser.status == "Auto preview on"
        assert "[auto]" in browser.render(100)[-1]
        browser.handle_input("a")
        assert not browser.session.auto_mode_enabled
        assert browser.status == "Auto preview off"

    @pytest.mark.asyncio
    async def test_cursor_movement_previews(self, pictures) -> None:
        browser, _ = _browser(pictures, auto_preview_mode=True, delay=0.01)
        _select(browser, pictures / "broken.png")
        browser.handle_input("j")
        assert browser.listing.file_at_cursor() == str(pictures / "cat.png")
        await asyncio.sleep(0.1)
        overlays = browser.listing.overlays
        assert len(overlays) == 1
        assert overlays[0].position == browser.listing.line_end_position()

    @pytest.mark.asyncio
    async def test_auto_mode_survives_directory_change(self, pictures) -> None:
        browser, _ = _browser(pictures, auto_preview_mode=True, delay=0.01)
        _select(browser, pictures / "album")
        browser.handle_input("\r")
        assert browser.session.auto_mode_enabled
        browser.handle_input("j")
        await asyncio.sleep(0.1)
        assert len(browser.listing.overlays) == 1

    @pytest.mark.asyncio
    async def test_close_cancels_pending(self, pictures) -> None:
        browser, _ = _browser(pictures, auto_preview_mode=True, delay=0.01)
        _select(browser, pictures / "cat.png")
        browser.handle_input("j")
        browser.close()
        await asyncio.sleep(0.1)
        assert browser.listing.overlays == []


class TestStatusLine:
    def test_shows_directory(self, pictures) -> None:
        browser, terminal = _browser(pictures)
        rows = browser.render(100)
        assert len(rows) == terminal.rows
        assert str(pictures) in rows[-1]
        assert "[auto]" not in rows[-1]

    def test_loop_errors_reported(self, pictures) -> None:
        browser, _ = _browser(pictures)
        loop = asyncio.new_event_loop()
        try:
            browser.report_loop_error(
                loop, {"message": "callback failed", "exception": ImageRenderError("boom")}
            )
        finally:
            loop.close()
        assert browser.status == "boom"

    def test_errors_stay_off_the_terminal(self, pictures, capfd) -> None:
        cli._setup_logging("info", None)
        browser, _ = _browser(pictures)
        _select(browser, pictures / "broken.png")
        browser.handle_input("p")
        assert "broken.png" in browser.status
        loop = asyncio.new_event_loop()
        try:
            browser.report_loop_error(
                loop, {"message": "callback failed", "exception": ImageRenderError("boom")}
            )
        finally:
            loop.close()
        assert browser.status == "boom"
        assert capfd.readouterr().err == ""
