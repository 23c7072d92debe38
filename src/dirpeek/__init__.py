"""dirpeek: terminal directory browser with inline image previews."""

from dirpeek.config import (
    Config,
    ConfigError,
    PreviewConfig,
    get_config,
    load_config,
    reset_config,
    save_config,
    set_config,
)
from dirpeek.host import ListingHost, PreviewHost
from dirpeek.listing import DirectoryListing, ListingEntry, ListingOverlay
from dirpeek.preview import (
    OverlayContent,
    OverlayRecord,
    PreviewSession,
    auto_show,
    disable_mode,
    enable_mode,
    hide_all,
    hide_at_point,
    is_previewable,
    show,
    toggle,
)
from dirpeek.terminal_image import (
    IMAGE_FILENAME_RE,
    ImageRenderError,
    RenderConstraints,
    RenderedImage,
    format_hint,
    render_image,
)

__all__ = [
    # Config
    "Config",
    "ConfigError",
    "PreviewConfig",
    "get_config",
    "load_config",
    "reset_config",
    "save_config",
    "set_config",
    # Host
    "ListingHost",
    "PreviewHost",
    # Listing
    "DirectoryListing",
    "ListingEntry",
    "ListingOverlay",
    # Preview
    "OverlayContent",
    "OverlayRecord",
    "PreviewSession",
    "auto_show",
    "disable_mode",
    "enable_mode",
    "hide_all",
    "hide_at_point",
    "is_previewable",
    "show",
    "toggle",
    # Image rendering
    "IMAGE_FILENAME_RE",
    "ImageRenderError",
    "RenderConstraints",
    "RenderedImage",
    "format_hint",
    "render_image",
]
