"""Render shorts from a render plan using FFmpeg."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from autoshorts_core.composition.geometry import Rect
from autoshorts_core.composition.resolver import RenderOperation, RenderPlan
from autoshorts_core.models.config import RenderConfig
from autoshorts_core.models.job import Moment
from autoshorts_core.models.plano import FitMode
from autoshorts_core.utils.video import check_nvenc_availability


logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    """Result of video rendering."""

    output_path: Path
    duration: float
    success: bool
    error: Optional[str] = None
    attempts: int = 1


def output_filename(number: int, moment: Moment) -> str:
    """``short_<NN>_<category>.mp4``, numbered from 1."""
    return f"short_{number:02d}_{moment.category.slug}.mp4"


def _fmt(value: float) -> str:
    return f"{value:.3f}".rstrip("0").rstrip(".")


def _clamp_to_canvas(rect: Rect, width: int, height: int) -> Optional[Rect]:
    x0, y0 = max(rect.x, 0), max(rect.y, 0)
    x1, y1 = min(rect.right, width), min(rect.bottom, height)
    if x1 <= x0 or y1 <= y0:
        return None
    return Rect(x0, y0, x1 - x0, y1 - y0)


def _fit_filter(op: RenderOperation) -> str:
    """Scale filters that turn the layer input into a dest-sized frame."""
    w, h = op.dest.width, op.dest.height
    t = op.transform

    if op.fit == FitMode.STRETCH or t is None:
        return f"scale={w}:{h},setsar=1"

    if op.source_rect is None:
        # Natural size unknown at plan time: let the encoder keep the aspect
        if op.fit == FitMode.COVER:
            return f"scale={w}:{h}:force_original_aspect_ratio=increase,crop={w}:{h},setsar=1"
        return (
            f"scale={w}:{h}:force_original_aspect_ratio=decrease,"
            f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2:color=black@0,setsar=1"
        )

    if op.fit == FitMode.COVER:
        return f"scale={t.scaled_width}:{t.scaled_height},crop={w}:{h}:{-t.offset_x}:{-t.offset_y},setsar=1"
    return f"scale={t.scaled_width}:{t.scaled_height},pad={w}:{h}:{t.offset_x}:{t.offset_y}:color=black@0,setsar=1"


def _opacity_filter(opacity: float) -> str:
    if opacity >= 1.0:
        return ""
    return f",colorchannelmixer=aa={_fmt(opacity)}"


def build_filter_graph(plan: RenderPlan, duration: float, fps: int = 30) -> tuple[list[str], str]:
    """
    Build ffmpeg input arguments and a filter graph for a render plan.

    Input 0 is always the main source. Every image or video layer adds one
    input, in plan order. The graph ends in ``[out]``.

    Returns:
        (extra input arguments, filter_complex string)
    """
    canvas = plan.canvas
    dur = _fmt(duration)
    inputs: list[str] = []
    parts = [f"color=c=black:s={canvas.width}x{canvas.height}:r={fps}:d={dur}[base]"]
    current = "base"

    clip_ops = [op for op in plan if op.is_clip]
    if len(clip_ops) > 1:
        labels = "".join(f"[src{op.index}]" for op in clip_ops)
        parts.append(f"[0:v]split={len(clip_ops)}{labels}")
        clip_label = {op.index: f"src{op.index}" for op in clip_ops}
    else:
        clip_label = {op.index: "0:v" for op in clip_ops}

    input_index = 1
    for op in plan:
        layer = f"l{op.index}"
        merged = f"v{op.index}"
        d = op.dest

        match op.kind:
            case "clip":
                r = op.source_rect
                parts.append(
                    f"[{clip_label[op.index]}]crop={r.width}:{r.height}:{r.x}:{r.y},"
                    f"format=rgba,{_fit_filter(op)}[{layer}]"
                )
                parts.append(f"[{current}][{layer}]overlay={d.x}:{d.y}:eof_action=pass[{merged}]")

            case "image":
                inputs.extend(["-loop", "1", "-t", dur, "-i", str(op.source_path)])
                parts.append(
                    f"[{input_index}:v]format=rgba,{_fit_filter(op)}{_opacity_filter(op.opacity)}[{layer}]"
                )
                parts.append(f"[{current}][{layer}]overlay={d.x}:{d.y}:eof_action=pass[{merged}]")
                input_index += 1

            case "video":
                if op.loop_video:
                    inputs.extend(["-stream_loop", "-1", "-t", dur, "-i", str(op.source_path)])
                    eof = "pass"
                else:
                    inputs.extend(["-i", str(op.source_path)])
                    eof = "repeat" if op.keep_last_frame else "pass"
                parts.append(
                    f"[{input_index}:v]setpts=PTS-STARTPTS,format=rgba,"
                    f"{_fit_filter(op)}{_opacity_filter(op.opacity)}[{layer}]"
                )
                parts.append(f"[{current}][{layer}]overlay={d.x}:{d.y}:eof_action={eof}[{merged}]")
                input_index += 1

            case "shader":
                region = _clamp_to_canvas(d, canvas.width, canvas.height)
                radius = 0
                if region is not None and op.effect is not None:
                    # boxblur needs the radius to fit the subsampled chroma planes
                    radius = min(op.effect.intensity, max(0, min(region.width, region.height) // 4 - 1))
                if region is None or radius == 0:
                    logger.debug("Skipping shader layer %d (empty region or zero radius)", op.index)
                    continue
                parts.append(f"[{current}]split=2[{merged}a][{merged}b]")
                parts.append(
                    f"[{merged}b]crop={region.width}:{region.height}:{region.x}:{region.y},"
                    f"boxblur={radius}:1[{layer}]"
                )
                parts.append(f"[{merged}a][{layer}]overlay={region.x}:{region.y}[{merged}]")

        current = merged

    parts.append(f"[{current}]format=yuv420p[out]")
    return inputs, ";".join(parts)


class VideoRenderer:
    """
    Render shorts using FFmpeg.

    Every render composes the plano layers onto a black vertical canvas.
    """

    def __init__(self, config: Optional[RenderConfig] = None):
        self.config = config or RenderConfig()
        self._gpu: Optional[bool] = None

    @property
    def uses_gpu(self) -> bool:
        if self._gpu is None:
            self._gpu = self.config.use_gpu and check_nvenc_availability()
            if self.config.use_gpu and not self._gpu:
                logger.warning("h264_nvenc unavailable, falling back to libx264")
        return self._gpu

    def _encoder_args(self) -> list[str]:
        if self.uses_gpu:
            return ["-c:v", "h264_nvenc", "-preset", "p4", "-rc", "vbr", "-cq", str(self.config.crf)]
        return ["-c:v", "libx264", "-preset", self.config.preset, "-crf", str(self.config.crf)]

    def build_command(
        self,
        plan: RenderPlan,
        source_path: Path,
        start: float,
        duration: float,
        output_path: Path,
    ) -> list[str]:
        """Full ffmpeg command for one short."""
        inputs, graph = build_filter_graph(plan, duration, self.config.fps)
        return [
            "ffmpeg",
            "-y",
            "-v", "error",
            "-ss", _fmt(start),
            "-t", _fmt(duration),
            "-i", str(source_path),
            *inputs,
            "-filter_complex", graph,
            "-map", "[out]",
            "-map", "0:a?",
            "-t", _fmt(duration),
            *self._encoder_args(),
            "-c:a", "aac",
            "-b:a", self.config.audio_bitrate,
            "-movflags", "+faststart",
            str(output_path),
        ]

    def render(self, plan: RenderPlan, source_path: Path, moment: Moment, output_path: Path) -> RenderResult:
        """
        Render one moment.

        A timeout is retried ``config.retries`` times; an encoder error is
        reported immediately.
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        cmd = self.build_command(plan, source_path, moment.start, moment.duration, output_path)
        logger.debug("Render %s: %s", moment.id, " ".join(cmd))

        attempts = 1 + max(0, self.config.retries)
        error = None
        for attempt in range(1, attempts + 1):
            try:
                subprocess.run(cmd, capture_output=True, text=True, check=True, timeout=self.config.timeout)
            except FileNotFoundError:
                error = "ffmpeg is not installed"
                break
            except subprocess.TimeoutExpired:
                error = f"render timed out after {self.config.timeout}s"
                logger.warning("Moment %s: %s (attempt %d/%d)", moment.id, error, attempt, attempts)
                output_path.unlink(missing_ok=True)
                continue
            except subprocess.CalledProcessError as e:
                lines = (e.stderr or "").strip().splitlines()
                error = lines[-1] if lines else f"ffmpeg exited with {e.returncode}"
                output_path.unlink(missing_ok=True)
                break

            if output_path.exists():
                return RenderResult(output_path, moment.duration, success=True, attempts=attempt)
            error = "Output file not created"
            break

        return RenderResult(output_path, moment.duration, success=False, error=error, attempts=attempt)

    def render_preview(
        self,
        plan: RenderPlan,
        source_path: Path,
        timestamp: float,
        output_path: Path,
    ) -> RenderResult:
        """Render a single composed frame as an image."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        frame = 1.0
        inputs, graph = build_filter_graph(plan, frame, self.config.fps)
        cmd = [
            "ffmpeg",
            "-y",
            "-v", "error",
            "-ss", _fmt(timestamp),
            "-t", _fmt(frame),
            "-i", str(source_path),
            *inputs,
            "-filter_complex", graph,
            "-map", "[out]",
            "-frames:v", "1",
            str(output_path),
        ]
        try:
            subprocess.run(cmd, capture_output=True, text=True, check=True, timeout=120)
        except FileNotFoundError:
            return RenderResult(output_path, 0, success=False, error="ffmpeg is not installed")
        except subprocess.TimeoutExpired:
            return RenderResult(output_path, 0, success=False, error="preview timed out")
        except subprocess.CalledProcessError as e:
            return RenderResult(output_path, 0, success=False, error=(e.stderr or "").strip())
        return RenderResult(output_path, 0, success=output_path.exists())

    def is_available(self) -> bool:
        """Check if FFmpeg is available."""
        try:
            subprocess.run(["ffmpeg", "-version"], capture_output=True, check=True, timeout=30)
            return True
        except (subprocess.CalledProcessError, FileNotFoundError, subprocess.TimeoutExpired):
            return False
