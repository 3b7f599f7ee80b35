"""Plano geometry and render plan resolution."""

from autoshorts_core.composition.geometry import FitTransform, Rect, Size, resolve_crop, resolve_fit, resolve_position
from autoshorts_core.composition.resolver import RenderOperation, RenderPlan, build_render_plan, probe_overlay_sizes

__all__ = [
    "FitTransform",
    "Rect",
    "Size",
    "resolve_crop",
    "resolve_fit",
    "resolve_position",
    "RenderOperation",
    "RenderPlan",
    "build_render_plan",
    "probe_overlay_sizes",
]
