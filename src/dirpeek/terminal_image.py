"""Image rendering and terminal capability detection.

Decoding and scaling are delegated to Pillow; this module only turns the
scaled image into a kitty or iTerm2 escape sequence and works out how many
terminal cells it covers.
"""

from __future__ import annotations

import base64
import io
import math
import os
import random
import re
from dataclasses import dataclass
from typing import Literal

from PIL import Image, UnidentifiedImageError

ImageProtocol = Literal["kitty", "iterm2"] | None


@dataclass
class TerminalCapabilities:
    images: ImageProtocol


@dataclass
class CellDimensions:
    width_px: int
    height_px: int


@dataclass
class RenderConstraints:
    scale: float = 1.0
    max_width: int | None = None
    max_height: int | None = None


@dataclass
class RenderedImage:
    """A decoded, scaled image ready to be written to the terminal."""

    sequence: str
    columns: int
    rows: int
    width_px: int
    height_px: int
    image_id: int | None = None

    def placeholder_lines(self) -> list[str]:
        """Lines occupying the image's footprint.

        The image replaces a single-space placeholder on its last row; the
        cursor is moved up so the picture is drawn over the blank rows above.
        """
        move_up = f"\x1b[{self.rows - 1}A" if self.rows > 1 else ""
        return [""] * (self.rows - 1) + [" \r" + move_up + self.sequence]


class ImageRenderError(Exception):
    """Raised when a file cannot be decoded or displayed."""


# Extension -> Pillow decoder
_PILLOW_FORMATS: dict[str, str] = {
    "png": "PNG",
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "gif": "GIF",
    "webp": "WEBP",
    "bmp": "BMP",
    "tif": "TIFF",
    "tiff": "TIFF",
    "xpm": "XPM",
    "xbm": "XBM",
    "pbm": "PPM",
    "pgm": "PPM",
    "ppm": "PPM",
    "tga": "TGA",
    "ico": "ICO",
    "cur": "CUR",
}

# Filenames the listing recognizes as images: only those Pillow can decode.
IMAGE_FILENAME_RE = re.compile(
    r"\.(" + "|".join(_PILLOW_FORMATS) + r")\Z",
    re.IGNORECASE,
)

_cached_capabilities: TerminalCapabilities | None = None
_cell_dimensions = CellDimensions(width_px=9, height_px=18)


def get_cell_dimensions() -> CellDimensions:
    return _cell_dimensions


def set_cell_dimensions(dims: CellDimensions) -> None:
    global _cell_dimensions
    _cell_dimensions = dims


def detect_capabilities() -> TerminalCapabilities:
    term_program = os.environ.get("TERM_PROGRAM", "").lower()
    term = os.environ.get("TERM", "").lower()

    forced = os.environ.get("DIRPEEK_IMAGE_PROTOCOL", "").lower()
    if forced in ("kitty", "iterm2"):
        return TerminalCapabilities(images=forced)  # type: ignore[arg-type]
    if forced == "none":
        return TerminalCapabilities(images=None)

    if os.environ.get("KITTY_WINDOW_ID") or term_program == "kitty":
        return TerminalCapabilities(images="kitty")

    if (
        term_program == "ghostty"
        or "ghostty" in term
        or os.environ.get("GHOSTTY_RESOURCES_DIR")
    ):
        return TerminalCapabilities(images="kitty")

    if os.environ.get("WEZTERM_PANE") or term_program == "wezterm":
        return TerminalCapabilities(images="kitty")

    if os.environ.get("ITERM_SESSION_ID") or term_program == "iterm.app":
        return TerminalCapabilities(images="iterm2")

    return TerminalCapabilities(images=None)


def get_capabilities() -> TerminalCapabilities:
    global _cached_capabilities
    if _cached_capabilities is None:
        _cached_capabilities = detect_capabilities()
    return _cached_capabilities


def reset_capabilities_cache() -> None:
    global _cached_capabilities
    _cached_capabilities = None


def is_image_display_supported() -> bool:
    return get_capabilities().images is not None


_KITTY_PREFIX = "\x1b_G"
_ITERM2_PREFIX = "\x1b]1337;File="


def is_image_line(line: str) -> bool:
    return _KITTY_PREFIX in line or _ITERM2_PREFIX in line


def allocate_image_id() -> int:
    return random.randint(1, 0xFFFFFFFE)


def encode_kitty(
    base64_data: str,
    *,
    columns: int | None = None,
    rows: int | None = None,
    image_id: int | None = None,
) -> str:
    chunk_size = 4096

    params: list[str] = ["a=T", "f=100", "q=2"]
    if columns:
        params.append(f"c={columns}")
    if rows:
        params.append(f"r={rows}")
    if image_id:
        params.append(f"i={image_id}")

    if len(base64_data) <= chunk_size:
        return f"\x1b_G{','.join(params)};{base64_data}\x1b\\"

    chunks: list[str] = []
    for offset in range(0, len(base64_data), chunk_size):
        chunk = base64_data[offset : offset + chunk_size]
        more = 1 if offset + chunk_size < len(base64_data) else 0
        if offset == 0:
            chunks.append(f"\x1b_G{','.join(params)},m=1;{chunk}\x1b\\")
        else:
            chunks.append(f"\x1b_Gm={more};{chunk}\x1b\\")
    return "".join(chunks)


def delete_kitty_image(image_id: int) -> str:
    return f"\x1b_Ga=d,d=I,i={image_id}\x1b\\"


def encode_iterm2(
    base64_data: str,
    *,
    width: int | str | None = None,
    height: int | str | None = None,
    name: str | None = None,
) -> str:
    params: list[str] = ["inline=1"]
    if width is not None:
        params.append(f"width={width}")
    if height is not None:
        params.append(f"height={height}")
    if name:
        name_b64 = base64.b64encode(name.encode()).decode()
        params.append(f"name={name_b64}")
    return f"\x1b]1337;File={';'.join(params)}:{base64_data}\x07"


def cell_footprint(
    width_px: int, height_px: int, cell_dims: CellDimensions | None = None
) -> tuple[int, int]:
    """Return ``(columns, rows)`` needed to show an image of the given size."""
    if cell_dims is None:
        cell_dims = get_cell_dimensions()
    columns = max(1, math.ceil(width_px / cell_dims.width_px))
    rows = max(1, math.ceil(height_px / cell_dims.height_px))
    return columns, rows


def format_hint(path: str) -> str:
    """Lowercased extension of *path*, used to pick a decoder."""
    return os.path.splitext(path)[1][1:].lower()


def scaled_size(
    width: int, height: int, constraints: RenderConstraints
) -> tuple[int, int]:
    """Apply the scale factor, then shrink to fit the pixel caps."""
    w = width * constraints.scale
    h = height * constraints.scale
    if constraints.max_width and w > constraints.max_width:
        h = h * constraints.max_width / w
        w = constraints.max_width
    if constraints.max_height and h > constraints.max_height:
        w = w * constraints.max_height / h
        h = constraints.max_height
    return max(1, round(w)), max(1, round(h))


def render_image(
    path: str,
    hint: str,
    constraints: RenderConstraints | None = None,
) -> RenderedImage:
    """Decode *path* with Pillow and encode it for the current terminal.

    Raises :class:`ImageRenderError` when the terminal cannot show images or
    the file cannot be decoded.
    """
    if constraints is None:
        constraints = RenderConstraints()

    caps = get_capabilities()
    if not caps.images:
        raise ImageRenderError("terminal does not support inline images")

    pillow_format = _PILLOW_FORMATS.get(hint)
    formats = [pillow_format] if pillow_format else None

    try:
        with Image.open(path, formats=formats) as img:
            img.load()
            width, height = scaled_size(img.width, img.height, constraints)
            frame = img.convert("RGBA") if img.mode not in ("RGB", "RGBA") else img
            frame = frame.resize((width, height))
            buf = io.BytesIO()
            frame.save(buf, format="PNG")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageRenderError(f"cannot render {path}: {e}") from e

    data = base64.b64encode(buf.getvalue()).decode("ascii")
    columns, rows = cell_footprint(width, height)

    if caps.images == "kitty":
        image_id = allocate_image_id()
        sequence = encode_kitty(data, columns=columns, rows=rows, image_id=image_id)
        return RenderedImage(sequence, columns, rows, width, height, image_id)

    sequence = encode_iterm2(
        data, width=columns, height=rows, name=os.path.basename(path)
    )
    return RenderedImage(sequence, columns, rows, width, height)
