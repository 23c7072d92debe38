"""Inline image previews for the listing line at the cursor.

A :class:`PreviewSession` holds the previews of one listing buffer.  Every
operation takes the session explicitly and talks to the listing, the image
renderer and the timer facility through the session's
:class:`~dirpeek.host.PreviewHost`.

With ``auto_preview_mode`` on, cursor movement schedules a debounced
:func:`show`.  The debounce callback resolves the file at the cursor when it
fires, not when it was scheduled, so a cursor that moved away and came back
inside the delay window previews whatever line it ends up on.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dirpeek.config import PreviewConfig, get_config
from dirpeek.terminal_image import RenderConstraints, RenderedImage, format_hint

if TYPE_CHECKING:
    from dirpeek.host import PreviewHost

logger = logging.getLogger(__name__)


@dataclass
class OverlayContent:
    """Spacing around a single-space placeholder that displays the image."""

    image: RenderedImage
    spacing: int = 1

    def lines(self) -> list[str]:
        blank = [""] * self.spacing
        return blank + self.image.placeholder_lines() + blank


@dataclass
class OverlayRecord:
    anchor_position: int
    rendered_content: OverlayContent
    handle: object


@dataclass
class PreviewSession:
    host: PreviewHost
    config: PreviewConfig | None = None
    overlays: list[OverlayRecord] = field(default_factory=list)
    debounce_handle: object | None = None
    last_cursor_position: int | None = None
    auto_mode_enabled: bool = False
    subscription: object | None = None
    enabled: bool = False

    @property
    def settings(self) -> PreviewConfig:
        """The session's own config, or the process-wide one."""
        if self.config is not None:
            return self.config
        return get_config().preview


def _extension(file: str) -> str:
    return os.path.splitext(file)[1][1:]


def is_previewable(session: PreviewSession, file: str | None) -> bool:
    """Whether *file* can be shown as an inline preview."""
    if not file:
        return False
    host = session.host
    if not host.is_image_display_supported():
        return False
    if _extension(file) in session.settings.excluded_extensions:
        return False
    return host.image_filename_pattern().search(file) is not None


def show(session: PreviewSession) -> None:
    """Preview the file on the cursor line.

    Rendering errors propagate to the caller; in that case no overlay is
    added.
    """
    host = session.host
    file = host.resolve_file_at_cursor()
    if not is_previewable(session, file):
        logger.debug("Not previewable: %r", file)
        return
    assert file is not None

    config = session.settings
    if config.auto_remove:
        hide_all(session)

    anchor = host.line_end_position()
    rendered = host.render_image(
        file,
        format_hint(file),
        RenderConstraints(
            scale=config.scale,
            max_width=config.max_width,
            max_height=config.max_height,
        ),
    )
    content = OverlayContent(image=rendered, spacing=config.spacing)
    handle = host.create_overlay(anchor, content)
    session.overlays.insert(0, OverlayRecord(anchor, content, handle))
    logger.debug("Showing %s at %d", file, anchor)


def hide_at_point(session: PreviewSession) -> None:
    """Remove every preview anchored at the cursor line."""
    anchor = session.host.line_end_position()
    remaining: list[OverlayRecord] = []
    for record in session.overlays:
        if record.anchor_position == anchor:
            session.host.destroy_overlay(record.handle)
        else:
            remaining.append(record)
    session.overlays = remaining


def hide_all(session: PreviewSession) -> None:
    for record in session.overlays:
        session.host.destroy_overlay(record.handle)
    session.overlays = []


def has_preview_at_point(session: PreviewSession) -> bool:
    anchor = session.host.line_end_position()
    return any(r.anchor_position == anchor for r in session.overlays)


def toggle(session: PreviewSession) -> None:
    if has_preview_at_point(session):
        hide_at_point(session)
    else:
        show(session)


def _cancel_debounce(session: PreviewSession) -> None:
    if session.debounce_handle is not None:
        session.host.cancel_timer(session.debounce_handle)
        session.debounce_handle = None


def _on_debounce_fired(session: PreviewSession) -> None:
    session.debounce_handle = None
    if session.host.resolve_file_at_cursor():
        show(session)


def auto_show(session: PreviewSession) -> None:
    """Cursor-moved handler: schedule a preview once movement settles."""
    position = session.host.cursor_position()
    if position == session.last_cursor_position:
        return
    _cancel_debounce(session)
    session.debounce_handle = session.host.schedule_delayed(
        session.settings.delay, lambda: _on_debounce_fired(session)
    )
    session.last_cursor_position = position
    logger.debug("Preview scheduled for cursor at %d", position)


def enable_mode(session: PreviewSession) -> None:
    session.enabled = True
    session.auto_mode_enabled = session.settings.auto_preview_mode
    if session.auto_mode_enabled and session.subscription is None:
        session.subscription = session.host.on_cursor_moved(
            lambda: auto_show(session)
        )


def disable_mode(session: PreviewSession) -> None:
    if session.subscription is not None:
        session.host.remove_cursor_moved_handler(session.subscription)
        session.subscription = None
    _cancel_debounce(session)
    hide_all(session)
    session.auto_mode_enabled = False
    session.enabled = False
