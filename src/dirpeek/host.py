"""Host environment consumed by the preview component.

``PreviewHost`` lists everything :mod:`dirpeek.preview` needs from its
surroundings.  ``ListingHost`` provides it for a :class:`DirectoryListing`
running on an asyncio loop.
"""

from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING, Callable, Protocol

from dirpeek import terminal_image
from dirpeek.terminal_image import (
    IMAGE_FILENAME_RE,
    RenderConstraints,
    RenderedImage,
    delete_kitty_image,
)

if TYPE_CHECKING:
    from dirpeek.listing import CursorSubscription, DirectoryListing, ListingOverlay
    from dirpeek.preview import OverlayContent
    from dirpeek.terminal import Terminal


class PreviewHost(Protocol):
    def resolve_file_at_cursor(self) -> str | None: ...

    def cursor_position(self) -> int: ...

    def line_end_position(self) -> int: ...

    def is_image_display_supported(self) -> bool: ...

    def image_filename_pattern(self) -> re.Pattern[str]: ...

    def render_image(
        self, path: str, format_hint: str, constraints: RenderConstraints
    ) -> RenderedImage: ...

    def create_overlay(self, position: int, content: OverlayContent) -> object: ...

    def destroy_overlay(self, handle: object) -> None: ...

    def schedule_delayed(self, seconds: float, callback: Callable[[], None]) -> object: ...

    def cancel_timer(self, handle: object) -> None: ...

    def on_cursor_moved(self, callback: Callable[[], None]) -> object: ...

    def remove_cursor_moved_handler(self, subscription: object) -> None: ...


class ListingHost:
    """``PreviewHost`` backed by a listing buffer and the asyncio loop.

    When a *terminal* is given, kitty images are deleted from the screen as
    their overlays are destroyed.
    """

    def __init__(
        self,
        listing: DirectoryListing,
        terminal: Terminal | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.listing = listing
        self._terminal = terminal
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def resolve_file_at_cursor(self) -> str | None:
        return self.listing.file_at_cursor()

    def cursor_position(self) -> int:
        return self.listing.cursor_position()

    def line_end_position(self) -> int:
        return self.listing.line_end_position()

    def is_image_display_supported(self) -> bool:
        return terminal_image.is_image_display_supported()

    def image_filename_pattern(self) -> re.Pattern[str]:
        return IMAGE_FILENAME_RE

    def render_image(
        self, path: str, format_hint: str, constraints: RenderConstraints
    ) -> RenderedImage:
        return terminal_image.render_image(path, format_hint, constraints)

    def create_overlay(self, position: int, content: OverlayContent) -> ListingOverlay:
        return self.listing.add_overlay(
            position,
            content.lines(),
            image_id=content.image.image_id,
            image_top=content.spacing,
        )

    def destroy_overlay(self, handle: ListingOverlay) -> None:
        self.listing.remove_overlay(handle)
        if handle.image_id is not None and self._terminal is not None:
            self._terminal.write(delete_kitty_image(handle.image_id))

    def schedule_delayed(
        self, seconds: float, callback: Callable[[], None]
    ) -> asyncio.TimerHandle:
        return self._get_loop().call_later(seconds, callback)

    def cancel_timer(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()

    def on_cursor_moved(self, callback: Callable[[], None]) -> CursorSubscription:
        return self.listing.on_cursor_moved(callback)

    def remove_cursor_moved_handler(self, subscription: CursorSubscription) -> None:
        self.listing.remove_cursor_moved_handler(subscription)
