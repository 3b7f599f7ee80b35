"""Geometry resolution for plano layers.

All functions here are pure: the same position, canvas and natural size
always resolve to the same rectangle.
"""

import re
from dataclasses import dataclass
from typing import Optional

from autoshorts_core.models.plano import Crop, FitMode, Position


_PERCENT_RE = re.compile(r"^(\d+(?:\.\d+)?)%$")


@dataclass(frozen=True)
class Size:
    width: int
    height: int

    @property
    def aspect(self) -> float:
        return self.width / self.height if self.height > 0 else 0.0


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in pixels."""

    x: int
    y: int
    width: int
    height: int

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height


@dataclass(frozen=True)
class FitTransform:
    """
    Scaled source size and its offset inside the destination box.

    For ``cover`` the offset is negative (overflow is clipped); for
    ``contain`` it is positive (letterbox padding).
    """

    mode: FitMode
    scaled_width: int
    scaled_height: int
    offset_x: int
    offset_y: int


def _percent(value: str) -> Optional[float]:
    match = _PERCENT_RE.match(value)
    return float(match.group(1)) if match else None


def _resolve_size(value, canvas_dim: int) -> Optional[int]:
    """Resolve a width/height value, or None when it depends on the companion axis."""
    if value is None or value == "auto":
        return None
    if isinstance(value, int):
        return value
    if value == "full":
        return canvas_dim
    pct = _percent(value)
    if pct is not None:
        return int(canvas_dim * pct / 100)
    raise ValueError(f"Invalid size value: {value!r}")


def _resolve_offset(value, canvas_dim: int, element_dim: int) -> int:
    if value is None or value == "auto":
        return 0
    if isinstance(value, int):
        return value
    if value == "center":
        return int((canvas_dim - element_dim) / 2)
    pct = _percent(value)
    if pct is not None:
        return int(canvas_dim * pct / 100)
    raise ValueError(f"Invalid position value: {value!r}")


def resolve_position(
    position: Position,
    canvas: Size,
    natural: Optional[Size] = None,
) -> Rect:
    """
    Resolve a position spec to an absolute destination rectangle.

    Sizes resolve before offsets so that ``center`` can use them. An omitted
    or ``auto`` size follows the natural aspect of the media, scaled to the
    resolved companion size; without a companion it falls back to ``full``.
    When both sizes are ``auto`` the width fills the canvas and the height
    follows the natural aspect.

    Args:
        position: Layer position spec
        canvas: Canvas size
        natural: Natural size of the layer's media, if known

    Returns:
        Destination rectangle in canvas pixels
    """
    width = _resolve_size(position.width, canvas.width)
    height = _resolve_size(position.height, canvas.height)
    aspect = natural.aspect if natural and natural.width > 0 and natural.height > 0 else 0.0

    if width is None and height is None:
        width = canvas.width
        height = int(width / aspect) if aspect else canvas.height
    elif width is None:
        width = int(height * aspect) if aspect else canvas.width
    elif height is None:
        height = int(width / aspect) if aspect else canvas.height

    x = _resolve_offset(position.x, canvas.width, width)
    y = _resolve_offset(position.y, canvas.height, height)
    return Rect(x, y, width, height)


def resolve_crop(crop: Optional[Crop], source: Size) -> Rect:
    """
    Resolve a crop window in source pixels.

    An axis is cropped only when ``to > from``; otherwise it spans the full
    source. The window is clamped to the source frame.
    """
    x0, x1 = 0, source.width
    y0, y1 = 0, source.height

    if crop is not None:
        if crop.crops_x:
            x0 = min(crop.x_from, source.width)
            x1 = min(crop.x_to, source.width)
        if crop.crops_y:
            y0 = min(crop.y_from, source.height)
            y1 = min(crop.y_to, source.height)

    # Clamping can collapse a window that starts past the frame edge
    if x1 <= x0:
        x0, x1 = 0, source.width
    if y1 <= y0:
        y0, y1 = 0, source.height

    return Rect(x0, y0, x1 - x0, y1 - y0)


def resolve_fit(source: Size, dest: Size, fit: FitMode) -> FitTransform:
    """
    Map a (cropped) source size into a destination box.

    - stretch: scale each axis independently to exactly fill the box
    - cover: scale uniformly to fill the box, overflow clipped and centered
    - contain: scale uniformly to fit inside the box, letterboxed and centered
    """
    if fit == FitMode.STRETCH or source.width <= 0 or source.height <= 0:
        return FitTransform(fit, dest.width, dest.height, 0, 0)

    scale_x = dest.width / source.width
    scale_y = dest.height / source.height
    scale = max(scale_x, scale_y) if fit == FitMode.COVER else min(scale_x, scale_y)

    scaled_w = max(1, round(source.width * scale))
    scaled_h = max(1, round(source.height * scale))

    # Uniform scaling can leave one axis a pixel short or over after rounding
    if fit == FitMode.COVER:
        scaled_w = max(scaled_w, dest.width)
        scaled_h = max(scaled_h, dest.height)
    else:
        scaled_w = min(scaled_w, dest.width)
        scaled_h = min(scaled_h, dest.height)

    offset_x = (dest.width - scaled_w) // 2 if scaled_w <= dest.width else -((scaled_w - dest.width) // 2)
    offset_y = (dest.height - scaled_h) // 2 if scaled_h <= dest.height else -((scaled_h - dest.height) // 2)
    return FitTransform(fit, scaled_w, scaled_h, offset_x, offset_y)
