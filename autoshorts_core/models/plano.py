"""Plano template models.

A plano is a JSON array of layers composited onto the vertical canvas.
Index 0 is the bottommost layer. Layers are tagged by ``"type"``:

- ``clip``: the moment itself, optionally cropped
- ``image``: a still overlay (frame, watermark)
- ``video``: a secondary video (gameplay, loop animation)
- ``shader``: an effect applied to the region beneath it

Plano files may carry ``//`` line comments; they are stripped before parsing.
"""

import json
import re
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)

from autoshorts_core.errors import UnsupportedTemplate
from autoshorts_core.utils.files import atomic_write_text


_PERCENT_RE = re.compile(r"^(\d+(?:\.\d+)?)%$")

AxisValue = Optional[Union[StrictInt, StrictStr]]


def _check_axis(value: AxisValue, keywords: tuple[str, ...], field_name: str, allow_negative: bool) -> AxisValue:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field_name}: booleans are not positions")
    if isinstance(value, int):
        if not allow_negative and value <= 0:
            raise ValueError(f"{field_name}: size must be positive, got {value}")
        return value
    text = value.strip().lower()
    if text in keywords:
        return text
    match = _PERCENT_RE.match(text)
    if match:
        if float(match.group(1)) > 1000:
            raise ValueError(f"{field_name}: percentage out of range: {value!r}")
        return text
    raise ValueError(f"{field_name}: expected pixels, {', '.join(repr(k) for k in keywords)} or 'N%', got {value!r}")


class Position(BaseModel):
    """Destination box of a layer on the canvas."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    x: AxisValue = None
    y: AxisValue = None
    width: AxisValue = None
    height: AxisValue = None

    @field_validator("x", "y")
    @classmethod
    def _validate_offset(cls, v: AxisValue, info) -> AxisValue:
        return _check_axis(v, ("center", "auto"), info.field_name, allow_negative=True)

    @field_validator("width", "height")
    @classmethod
    def _validate_size(cls, v: AxisValue, info) -> AxisValue:
        return _check_axis(v, ("full", "auto"), info.field_name, allow_negative=False)


class Crop(BaseModel):
    """Source window in source pixels. An axis is cropped only when ``to > from``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    x_from: Optional[int] = Field(None, ge=0)
    x_to: Optional[int] = Field(None, ge=0)
    y_from: Optional[int] = Field(None, ge=0)
    y_to: Optional[int] = Field(None, ge=0)

    @property
    def crops_x(self) -> bool:
        return self.x_from is not None and self.x_to is not None and self.x_to > self.x_from

    @property
    def crops_y(self) -> bool:
        return self.y_from is not None and self.y_to is not None and self.y_to > self.y_from

    @model_validator(mode="after")
    def _validate_window(self) -> "Crop":
        """Reject crops where both axes are given and neither yields a window."""
        inverted = [
            axis
            for axis, lo, hi in (("x", self.x_from, self.x_to), ("y", self.y_from, self.y_to))
            if lo is not None and hi is not None and hi <= lo
        ]
        if len(inverted) == 2:
            raise ValueError(f"crop window is empty on axis {', '.join(inverted)} (to must exceed from)")
        return self


class FitMode(str, Enum):
    """How a source is fitted into its destination box."""

    STRETCH = "stretch"
    COVER = "cover"
    CONTAIN = "contain"


class BlurEffect(BaseModel):
    """Gaussian-style blur of the region beneath the shader layer."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["blur"] = "blur"
    intensity: int = Field(20, ge=0)


ShaderEffect = Annotated[Union[BlurEffect], Field(discriminator="type")]


class ClipLayer(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["clip"] = "clip"
    position: Position = Field(default_factory=Position)
    crop: Optional[Crop] = None
    fit: FitMode = FitMode.STRETCH
    comment: Optional[str] = None


class ImageLayer(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["image"] = "image"
    path: str = Field(..., min_length=1)
    position: Position = Field(default_factory=Position)
    opacity: float = Field(1.0, ge=0.0, le=1.0)
    comment: Optional[str] = None


class VideoLayer(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["video"] = "video"
    path: str = Field(..., min_length=1)
    position: Position = Field(default_factory=Position)
    loop_video: bool = True
    keep_last_frame: bool = False  # Only meaningful when loop_video is false
    opacity: float = Field(1.0, ge=0.0, le=1.0)
    fit: FitMode = FitMode.STRETCH
    comment: Optional[str] = None


class ShaderLayer(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["shader"] = "shader"
    effect: ShaderEffect
    position: Position = Field(default_factory=Position)
    comment: Optional[str] = None


Layer = Annotated[
    Union[ClipLayer, ImageLayer, VideoLayer, ShaderLayer],
    Field(discriminator="type"),
]


class Plano(RootModel[list[Layer]]):
    """Ordered layer stack, bottom to top."""

    model_config = ConfigDict(frozen=True)

    @property
    def layers(self) -> list[Layer]:
        return self.root

    @property
    def clip_layers(self) -> list[ClipLayer]:
        return [layer for layer in self.root if isinstance(layer, ClipLayer)]

    def __len__(self) -> int:
        return len(self.root)

    def __iter__(self):
        return iter(self.root)


def strip_json_comments(text: str) -> str:
    """Remove ``//`` line comments that sit outside JSON strings."""
    out = []
    in_string = False
    escaped = False
    i = 0
    while i < len(text):
        ch = text[i]
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
            continue
        if ch == "/" and text.startswith("//", i):
            newline = text.find("\n", i)
            if newline == -1:
                break
            i = newline
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _format_validation_error(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts)


def parse_plano(text: str, source: str = "<plano>") -> Plano:
    """
    Parse and validate plano JSON text.

    Raises:
        UnsupportedTemplate: If the text is not a valid plano
    """
    try:
        data = json.loads(strip_json_comments(text))
    except json.JSONDecodeError as e:
        raise UnsupportedTemplate(f"{source}: invalid JSON at line {e.lineno}: {e.msg}") from e

    if not isinstance(data, list):
        raise UnsupportedTemplate(f"{source}: plano must be a JSON array of layers")

    try:
        plano = Plano.model_validate(data)
    except ValidationError as e:
        raise UnsupportedTemplate(f"{source}: {_format_validation_error(e)}") from e

    if not plano.clip_layers:
        raise UnsupportedTemplate(f"{source}: plano needs at least one clip layer")
    return plano


def load_plano(path: Path) -> Plano:
    """
    Load a plano from a JSON file.

    Raises:
        UnsupportedTemplate: If the file is missing or invalid
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise UnsupportedTemplate(f"cannot read plano {path}: {e.strerror or e}") from e
    return parse_plano(text, source=path.name)


def save_plano(plano: Plano, path: Path) -> None:
    """Write a plano as pretty-printed JSON."""
    data = plano.model_dump(mode="json", exclude_none=True)
    atomic_write_text(Path(path), json.dumps(data, indent=2) + "\n")


def default_plano() -> Plano:
    """Blurred full-screen background with the clip centered on top."""
    return Plano.model_validate([
        {
            "type": "clip",
            "position": {"x": 0, "y": 0, "width": "full", "height": "full"},
            "fit": "cover",
            "comment": "Background: clip scaled to fill the screen",
        },
        {
            "type": "shader",
            "effect": {"type": "blur", "intensity": 20},
            "position": {"x": 0, "y": 0, "width": "full", "height": "full"},
            "comment": "Blur the background",
        },
        {
            "type": "clip",
            "position": {"x": 0, "y": "center", "width": "full", "height": 1200},
            "fit": "cover",
            "comment": "Main clip in the middle",
        },
    ])
