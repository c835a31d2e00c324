"""Frame compositor — resolves every layer at a timeline time and overlays it.

The canvas is an opaque RGB numpy array. Each active layer produces an
RGBA frame, runs it through its effect chain, and is alpha-blended onto
the canvas at its resolved position. Anything that falls outside the
canvas is clipped.
"""

import numpy as np
from PIL import Image

from .effects import apply_video_effect
from .layers import CanvasMeta, Layer, Timeline


def new_canvas(meta: CanvasMeta) -> np.ndarray:
    """Opaque black canvas, shape (height, width, 3), dtype uint8."""
    return np.zeros((meta.height, meta.width, 3), dtype=np.uint8)


def overlay(canvas: np.ndarray, frame: Image.Image, x: int, y: int) -> None:
    """Alpha-blend an RGBA frame onto the canvas in place, top-left at (x, y).

    Source-over using the frame's alpha channel. Negative or oversized
    offsets are fine; only the overlapping rectangle is touched.
    """
    canvas_h, canvas_w = canvas.shape[:2]
    patch = np.asarray(frame.convert("RGBA"))
    patch_h, patch_w = patch.shape[:2]

    # Overlapping rectangle in canvas coordinates.
    x0, y0 = max(x, 0), max(y, 0)
    x1, y1 = min(x + patch_w, canvas_w), min(y + patch_h, canvas_h)
    if x0 >= x1 or y0 >= y1:
        return

    src = patch[y0 - y:y1 - y, x0 - x:x1 - x]
    alpha = src[:, :, 3:4].astype(np.float32) / 255.0
    rgb = src[:, :, :3].astype(np.float32)
    dest = canvas[y0:y1, x0:x1].astype(np.float32)
    blended = dest * (1 - alpha) + rgb * alpha
    canvas[y0:y1, x0:x1] = np.rint(blended).astype(np.uint8)


def composite_layer(layer: Layer, t: float, canvas: np.ndarray, meta: CanvasMeta) -> bool:
    """Draw one layer's contribution at timeline time t.

    Returns True if the layer drew anything. A layer that is off the
    timeline at t, or whose data has no frame for the position, draws
    nothing.
    """
    if not layer.is_active(t):
        return False

    duration = layer.effective_duration
    pos = layer.source_position(t)
    frame = layer.data.frame(pos)
    if frame is None:
        return False
    if frame.mode != "RGBA":
        frame = frame.convert("RGBA")

    # The transform only lives for this frame; the layer keeps its own.
    transform = layer.transform
    for effect in layer.effects:
        frame, transform = apply_video_effect(
            effect, frame, pos, duration, transform, meta,
        )

    x, y = transform.resolve(meta.width, meta.height)
    overlay(canvas, frame, x, y)
    return True


def composite_frame(timeline: Timeline, t: float) -> Image.Image:
    """Composite all layers, bottom to top, at timeline time t."""
    meta = timeline.meta
    canvas = new_canvas(meta)
    for layer in timeline.layers:
        composite_layer(layer, t, canvas, meta)
    return Image.fromarray(canvas)
