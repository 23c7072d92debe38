"""Browser keybindings manager."""

from __future__ import annotations

from typing import Literal

from dirpeek.keys import KeyId, matches_key

BrowserAction = Literal[
    # Cursor movement
    "cursorUp",
    "cursorDown",
    "pageUp",
    "pageDown",
    "cursorFirst",
    "cursorLast",
    # Navigation
    "visit",
    "parent",
    "toggleHidden",
    "refresh",
    # Preview
    "previewToggle",
    "previewShow",
    "previewHide",
    "previewHideAll",
    "previewAutoMode",
    # Application
    "quit",
]

BrowserKeybindingsConfig = dict[BrowserAction, KeyId | list[KeyId]]

DEFAULT_BROWSER_KEYBINDINGS: dict[BrowserAction, KeyId | list[KeyId]] = {
    "cursorUp": ["up", "k", "ctrl+p"],
    "cursorDown": ["down", "j", "ctrl+n"],
    "pageUp": "pageUp",
    "pageDown": "pageDown",
    "cursorFirst": ["home", "<"],
    "cursorLast": ["end", ">"],
    "visit": ["enter", "right"],
    "parent": ["backspace", "left", "^"],
    "toggleHidden": ".",
    "refresh": "g",
    "previewToggle": "p",
    "previewShow": "s",
    "previewHide": "h",
    "previewHideAll": "H",
    "previewAutoMode": "a",
    "quit": ["q", "ctrl+c"],
}


class BrowserKeybindingsManager:
    """Maps raw input to browser actions."""

    def __init__(self, config: BrowserKeybindingsConfig | None = None) -> None:
        self._action_to_keys: dict[BrowserAction, list[KeyId]] = {}
        self._build_maps(config or {})

    def _build_maps(self, config: BrowserKeybindingsConfig) -> None:
        self._action_to_keys.clear()

        for action, keys in DEFAULT_BROWSER_KEYBINDINGS.items():
            key_array = keys if isinstance(keys, list) else [keys]
            self._action_to_keys[action] = list(key_array)

        # Override with user config
        for action, keys in config.items():
            key_array = keys if isinstance(keys, list) else [keys]
            self._action_to_keys[action] = list(key_array)

    def matches(self, data: str, action: BrowserAction) -> bool:
        """Check if input matches a specific action."""
        return any(matches_key(data, key) for key in self._action_to_keys.get(action, []))

    def action_for(self, data: str) -> BrowserAction | None:
        """Return the first action bound to *data*, if any."""
        for action in self._action_to_keys:
            if self.matches(data, action):
                return action
        return None

    def get_keys(self, action: BrowserAction) -> list[KeyId]:
        return self._action_to_keys.get(action, [])

    def set_config(self, config: BrowserKeybindingsConfig) -> None:
        self._build_maps(config)


_global_browser_keybindings: BrowserKeybindingsManager | None = None


def get_browser_keybindings() -> BrowserKeybindingsManager:
    global _global_browser_keybindings
    if _global_browser_keybindings is None:
        _global_browser_keybindings = BrowserKeybindingsManager()
    return _global_browser_keybindings


def set_browser_keybindings(manager: BrowserKeybindingsManager) -> None:
    global _global_browser_keybindings
    _global_browser_keybindings = manager
