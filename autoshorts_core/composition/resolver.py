"""Composition resolver: plano + source metadata -> render plan."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from autoshorts_core.composition.geometry import (
    FitTransform,
    Rect,
    Size,
    resolve_crop,
    resolve_fit,
    resolve_position,
)
from autoshorts_core.errors import UnsupportedTemplate
from autoshorts_core.models.config import CANVAS_HEIGHT, CANVAS_WIDTH
from autoshorts_core.models.plano import (
    BlurEffect,
    ClipLayer,
    FitMode,
    ImageLayer,
    Plano,
    ShaderLayer,
    VideoLayer,
)


logger = logging.getLogger(__name__)

DEFAULT_CANVAS = Size(CANVAS_WIDTH, CANVAS_HEIGHT)


@dataclass(frozen=True)
class RenderOperation:
    """One resolved layer, ready for the encoder."""

    index: int
    kind: str  # clip, image, video, shader
    dest: Rect
    source_path: Optional[Path] = None  # None means the moment's own clip
    source_rect: Optional[Rect] = None  # Crop window in source pixels
    fit: FitMode = FitMode.STRETCH
    transform: Optional[FitTransform] = None
    opacity: float = 1.0
    effect: Optional[BlurEffect] = None
    loop_video: bool = False
    keep_last_frame: bool = False

    @property
    def is_clip(self) -> bool:
        return self.kind == "clip"


@dataclass(frozen=True)
class RenderPlan:
    """Ordered operations, bottom layer first."""

    canvas: Size
    operations: tuple[RenderOperation, ...]

    def __len__(self) -> int:
        return len(self.operations)

    def __iter__(self):
        return iter(self.operations)

    @property
    def overlay_inputs(self) -> list[RenderOperation]:
        """Operations that read an extra media file."""
        return [op for op in self.operations if op.kind in ("image", "video")]


def _resolve_media_path(path: str, base_dir: Optional[Path]) -> Path:
    p = Path(path).expanduser()
    if not p.is_absolute() and base_dir is not None:
        p = base_dir / p
    return p


def build_render_plan(
    plano: Plano,
    source_size: tuple[int, int],
    canvas: Size = DEFAULT_CANVAS,
    media_sizes: Optional[dict[str, tuple[int, int]]] = None,
    base_dir: Optional[Path] = None,
) -> RenderPlan:
    """
    Resolve every layer of a plano into a render plan.

    Layers are resolved independently and emitted in plano order, so
    z-order is preserved exactly.

    Args:
        plano: Validated plano
        source_size: (width, height) of the source video
        canvas: Output canvas
        media_sizes: Natural sizes of overlay files keyed by their plano path
        base_dir: Directory relative overlay paths are resolved against

    Returns:
        RenderPlan with one operation per layer

    Raises:
        UnsupportedTemplate: If the plano has no clip layer
    """
    if not plano.clip_layers:
        raise UnsupportedTemplate("plano needs at least one clip layer")

    media_sizes = media_sizes or {}
    source = Size(*source_size)
    operations = []

    for index, layer in enumerate(plano):
        match layer:
            case ClipLayer():
                window = resolve_crop(layer.crop, source)
                dest = resolve_position(layer.position, canvas, window.size)
                op = RenderOperation(
                    index=index,
                    kind="clip",
                    dest=dest,
                    source_rect=window,
                    fit=layer.fit,
                    transform=resolve_fit(window.size, dest.size, layer.fit),
                )

            case ImageLayer():
                natural = media_sizes.get(layer.path)
                dest = resolve_position(layer.position, canvas, Size(*natural) if natural else None)
                op = RenderOperation(
                    index=index,
                    kind="image",
                    dest=dest,
                    source_path=_resolve_media_path(layer.path, base_dir),
                    transform=FitTransform(FitMode.STRETCH, dest.width, dest.height, 0, 0),
                    opacity=layer.opacity,
                )

            case VideoLayer():
                natural = media_sizes.get(layer.path)
                natural_size = Size(*natural) if natural else None
                dest = resolve_position(layer.position, canvas, natural_size)
                if natural_size:
                    transform = resolve_fit(natural_size, dest.size, layer.fit)
                else:
                    # Unknown natural size: the encoder scales to the box
                    transform = FitTransform(FitMode.STRETCH, dest.width, dest.height, 0, 0)
                op = RenderOperation(
                    index=index,
                    kind="video",
                    dest=dest,
                    source_path=_resolve_media_path(layer.path, base_dir),
                    source_rect=Rect(0, 0, *natural) if natural else None,
                    fit=layer.fit,
                    transform=transform,
                    opacity=layer.opacity,
                    loop_video=layer.loop_video,
                    keep_last_frame=layer.keep_last_frame,
                )

            case ShaderLayer():
                op = RenderOperation(
                    index=index,
                    kind="shader",
                    dest=resolve_position(layer.position, canvas, None),
                    effect=layer.effect,
                )

            case _:
                raise UnsupportedTemplate(f"unknown layer type at index {index}")

        logger.debug("Layer %d (%s) -> %s", index, op.kind, op.dest)
        operations.append(op)

    return RenderPlan(canvas=canvas, operations=tuple(operations))


def probe_overlay_sizes(
    plano: Plano,
    base_dir: Path,
    probe: Callable[[Path], Optional[tuple[int, int]]],
) -> dict[str, tuple[int, int]]:
    """
    Natural sizes of the plano's image and video files, keyed by plano path.

    Files the probe cannot read are left out; their layers fall back to
    canvas-relative sizing.
    """
    sizes = {}
    for layer in plano:
        if isinstance(layer, (ImageLayer, VideoLayer)) and layer.path not in sizes:
            size = probe(_resolve_media_path(layer.path, base_dir))
            if size is not None:
                sizes[layer.path] = size
            else:
                logger.warning("Cannot read size of %s", layer.path)
    return sizes
