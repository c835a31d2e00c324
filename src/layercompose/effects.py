"""Per-layer effects — time-varying operations on frames and audio.

The effect set is closed: every effect is a frozen dataclass and the two
dispatch functions (apply_video_effect, apply_audio_effect) handle each
variant explicitly. Effects never mutate themselves; applying one is a
pure function of (frame or stream, local progress, transform).

Time-varying effects interpolate linearly between their endpoints using
the layer-local progress `elapsed / duration`. Progress is not clamped,
so values outside [0, 1] extrapolate. A zero-length layer has progress
0.0 (start values).

Angles are radians, rotating clockwise about the frame centre.
"""

import math
from dataclasses import dataclass

from PIL import Image

from .transform import Transform


# Uncropped rotation pads the frame to the bounding box it would have at
# this fixed angle, so one padded size fits every rotation of the layer.
UNCROPPED_REFERENCE_ANGLE = math.pi / 4

TRANSPARENT = (0, 0, 0, 0)


# ── Effect variants ──────────────────────────────────────────────


@dataclass(frozen=True)
class ScaleToBase:
    """Fit to the canvas. force=True stretches to exactly canvas size."""

    force: bool = False


@dataclass(frozen=True)
class Scale:
    x: float
    y: float


@dataclass(frozen=True)
class ScaleOverTime:
    x0: float
    y0: float
    x1: float
    y1: float


@dataclass(frozen=True)
class Rotate:
    """Rotate by a fixed angle. uncropped=True avoids clipping (slower)."""

    angle: float
    uncropped: bool = False


@dataclass(frozen=True)
class RotateOverTime:
    a0: float
    a1: float
    uncropped: bool = False


@dataclass(frozen=True)
class MovePx:
    """Move from the current position by (x, y) pixels over the layer."""

    x: int
    y: int


@dataclass(frozen=True)
class AudioGain:
    gain: float


VIDEO_EFFECTS = (ScaleToBase, Scale, ScaleOverTime, Rotate, RotateOverTime, MovePx)
AUDIO_EFFECTS = (AudioGain,)
EFFECT_TYPES = VIDEO_EFFECTS + AUDIO_EFFECTS


# ── Interpolation ────────────────────────────────────────────────


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def progress(elapsed: float, duration: float) -> float:
    """Layer-local progress. Unclamped; 0.0 for a zero-length layer."""
    if duration <= 0:
        return 0.0
    return elapsed / duration


def scale_at(effect, t: float) -> tuple[float, float]:
    """Scale factors of a Scale or ScaleOverTime effect at progress t."""
    if isinstance(effect, ScaleOverTime):
        return lerp(effect.x0, effect.x1, t), lerp(effect.y0, effect.y1, t)
    if isinstance(effect, Scale):
        return effect.x, effect.y
    raise TypeError(f"Not a scale effect: {effect!r}")


def angle_at(effect, t: float) -> float:
    """Rotation angle of a Rotate or RotateOverTime effect at progress t."""
    if isinstance(effect, RotateOverTime):
        return lerp(effect.a0, effect.a1, t)
    if isinstance(effect, Rotate):
        return effect.angle
    raise TypeError(f"Not a rotate effect: {effect!r}")


# ── Frame operations ─────────────────────────────────────────────


def _resize(frame: Image.Image, width: float, height: float) -> Image.Image:
    # Pillow cannot hold a 0-px image; shrinking to nothing keeps 1 px.
    size = (max(1, int(width)), max(1, int(height)))
    if size == frame.size:
        return frame
    return frame.resize(size, Image.NEAREST)


def _scale_to_base(frame: Image.Image, force: bool, canvas) -> Image.Image:
    if force:
        return _resize(frame, canvas.width, canvas.height)
    w, h = frame.size
    if w > canvas.width or h > canvas.height:
        ratio = min(canvas.width / w, canvas.height / h)
        return _resize(frame, round(w * ratio), round(h * ratio))
    return frame


def rotate_frame(frame: Image.Image, angle: float) -> Image.Image:
    """Rotate clockwise about the centre, keeping the frame size.

    Corners that leave the frame are clipped; uncovered pixels are
    transparent.
    """
    return frame.rotate(
        -math.degrees(angle),
        resample=Image.NEAREST,
        expand=False,
        fillcolor=TRANSPARENT,
    )


def rotate_uncropped(frame: Image.Image, angle: float) -> Image.Image:
    """Pad into a larger transparent frame, then rotate without clipping."""
    w, h = frame.size
    ref = UNCROPPED_REFERENCE_ANGLE
    padded_w = int(w * abs(math.cos(ref)) + h * abs(math.sin(ref)))
    padded_h = int(h * abs(math.cos(ref)) + w * abs(math.sin(ref)))
    padded_w, padded_h = max(padded_w, w), max(padded_h, h)

    padded = Image.new("RGBA", (padded_w, padded_h), TRANSPARENT)
    padded.paste(frame, ((padded_w - w) // 2, (padded_h - h) // 2))
    return rotate_frame(padded, angle)


def _rotate(frame: Image.Image, angle: float, uncropped: bool) -> Image.Image:
    if uncropped:
        return rotate_uncropped(frame, angle)
    return rotate_frame(frame, angle)


# ── Dispatch ─────────────────────────────────────────────────────


def apply_video_effect(
    effect,
    frame: Image.Image,
    elapsed: float,
    duration: float,
    transform: Transform,
    canvas,
) -> tuple[Image.Image, Transform]:
    """Apply one effect to an RGBA frame.

    Args:
        effect: One of EFFECT_TYPES.
        frame: RGBA frame produced by the layer data (or a prior effect).
        elapsed: Layer-local time since the layer's effective start.
        duration: The layer's effective duration.
        transform: The running transform for this frame.
        canvas: CanvasMeta of the timeline.

    Returns:
        (frame, transform) — either may be the input unchanged.
    """
    t = progress(elapsed, duration)

    if isinstance(effect, ScaleToBase):
        return _scale_to_base(frame, effect.force, canvas), transform

    if isinstance(effect, (Scale, ScaleOverTime)):
        fx, fy = scale_at(effect, t)
        w, h = frame.size
        return _resize(frame, w * fx, h * fy), transform

    if isinstance(effect, (Rotate, RotateOverTime)):
        return _rotate(frame, angle_at(effect, t), effect.uncropped), transform

    if isinstance(effect, MovePx):
        x, y = transform.resolve(canvas.width, canvas.height)
        moved = Transform.px(
            int(lerp(x, x + effect.x, t)),
            int(lerp(y, y + effect.y, t)),
        )
        return frame, moved

    if isinstance(effect, AudioGain):
        return frame, transform

    raise TypeError(f"Unknown effect: {effect!r}")


def apply_audio_effect(effect, stream):
    """Apply one effect to an AudioStream. Only AudioGain changes audio."""
    if isinstance(effect, AudioGain):
        return stream.amplified(effect.gain)
    if isinstance(effect, VIDEO_EFFECTS):
        return stream
    raise TypeError(f"Unknown effect: {effect!r}")
