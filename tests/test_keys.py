"""Tests for dirpeek.keys and dirpeek.keybindings."""

from __future__ import annotations

import pytest

from dirpeek.keybindings import (
    DEFAULT_BROWSER_KEYBINDINGS,
    BrowserKeybindingsManager,
    get_browser_keybindings,
    set_browser_keybindings,
)
from dirpeek.keys import matches_key, parse_key, split_input


class TestSplitInput:
    def test_plain_characters(self) -> None:
        assert split_input("jjk") == ["j", "j", "k"]

    def test_escape_sequences(self) -> None:
        assert split_input("\x1b[Aa\x1bOB") == ["\x1b[A", "a", "\x1bOB"]

    def test_tilde_sequences(self) -> None:
        assert split_input("\x1b[5~\x1b[6~") == ["\x1b[5~", "\x1b[6~"]

    def test_cell_size_response_kept_whole(self) -> None:
        assert split_input("\x1b[6;20;10tq") == ["\x1b[6;20;10t", "q"]

    def test_lone_escape(self) -> None:
        assert split_input("\x1b") == ["\x1b"]

    def test_empty(self) -> None:
        assert split_input("") == []


class TestParseKey:
    @pytest.mark.parametrize(
        ("data", "expected"),
        [
            ("\x1b[A", "up"),
            ("\x1bOB", "down"),
            ("\x1b[C", "right"),
            ("\x1b[D", "left"),
            ("\x1b[H", "home"),
            ("\x1b[4~", "end"),
            ("\x1b[5~", "pageUp"),
            ("\x1b[6~", "pageDown"),
            ("\x1b", "escape"),
            ("\r", "enter"),
            ("\t", "tab"),
            (" ", "space"),
            ("\x7f", "backspace"),
            ("\x08", "backspace"),
            ("\x03", "ctrl+c"),
            ("\x10", "ctrl+p"),
            ("\x1bx", "alt+x"),
            ("H", "H"),
            ("^", "^"),
        ],
    )
    def test_names(self, data, expected) -> None:
        assert parse_key(data) == expected

    def test_unknown(self) -> None:
        assert parse_key("") is None
        assert parse_key("\x1b[99z") is None


class TestMatchesKey:
    def test_aliases(self) -> None:
        assert matches_key("\x1b", "esc")
        assert matches_key("\r", "return")

    def test_case_sensitive(self) -> None:
        assert matches_key("h", "h")
        assert not matches_key("H", "h")


class TestBrowserKeybindings:
    def test_defaults(self) -> None:
        kb = BrowserKeybindingsManager()
        assert kb.action_for("p") == "previewToggle"
        assert kb.action_for("s") == "previewShow"
        assert kb.action_for("h") == "previewHide"
        assert kb.action_for("H") == "previewHideAll"
        assert kb.action_for("a") == "previewAutoMode"
        assert kb.action_for("\x1b[B") == "cursorDown"
        assert kb.action_for("\r") == "visit"
        assert kb.action_for("\x7f") == "parent"
        assert kb.action_for("\x03") == "quit"
        assert kb.action_for("z") is None

    def test_every_action_has_keys(self) -> None:
        kb = BrowserKeybindingsManager()
        for action in DEFAULT_BROWSER_KEYBINDINGS:
            assert kb.get_keys(action)

    def test_override(self) -> None:
        kb = BrowserKeybindingsManager({"previewToggle": ["v", "ctrl+v"]})
        assert kb.action_for("v") == "previewToggle"
        assert kb.action_for("\x16") == "previewToggle"
        assert kb.action_for("p") is None
        assert kb.get_keys("quit") == ["q", "ctrl+c"]

    def test_set_config_rebuilds(self) -> None:
        kb = BrowserKeybindingsManager({"quit": "x"})
        kb.set_config({})
        assert kb.action_for("q") == "quit"
        assert kb.action_for("x") is None

    def test_global_manager(self) -> None:
        original = get_browser_keybindings()
        try:
            custom = BrowserKeybindingsManager({"quit": "x"})
            set_browser_keybindings(custom)
            assert get_browser_keybindings() is custom
        finally:
            set_browser_keybindings(original)
