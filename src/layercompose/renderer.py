"""Renderer — parallel frame pass and sequential audio mix over a Timeline.

Frame pass: every frame index is composited independently against the
shared, read-only timeline and written as a numbered PNG. Work runs on a
bounded thread pool; results are drained as they complete so one failed
frame fails the whole pass without cancelling the others (frames already
on disk stay there).

Audio pass: a single running mix advancing through sample ticks. A
layer's audio is only materialized (speed change, resample, effects)
once the mix reaches its offset. Overlapping sources are summed, not
averaged, so the output can exceed [-1, 1].
"""

import math
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

import numpy as np

from .audio import write_wav
from .compositor import composite_frame
from .effects import apply_audio_effect
from .errors import FrameRenderError, MissingFrameError, RenderIOError
from .layers import Timeline


FRAME_NAME_WIDTH = 6
PROGRESS_EVERY = 50

# Float slack when mapping seconds to sample ticks (0.3 * 10 != 3.0).
TICK_EPSILON = 1e-9


def frame_filename(index: int) -> str:
    """File name for 0-based frame index: 1-based, zero-padded (000001.png)."""
    return f"{index + 1:0{FRAME_NAME_WIDTH}d}.png"


class Renderer:
    """Renders a Timeline to frame images and a mixed audio track."""

    def __init__(self, timeline: Timeline):
        self.timeline = timeline

    def frame_count(self) -> int:
        return self.timeline.meta.frame_count

    # ── Frames ───────────────────────────────────────────────────

    def render_frame(self, index: int):
        """Composite frame `index`. Returns None past the last frame."""
        if index < 0 or index >= self.frame_count():
            return None
        return composite_frame(self.timeline, index / self.timeline.meta.fps)

    def _render_and_save(self, index: int, path: Path) -> Path:
        frame = self.render_frame(index)
        if frame is None:
            raise MissingFrameError(index)
        try:
            frame.save(path)
        except OSError as e:
            raise RenderIOError(path, str(e)) from e
        return path

    def render_all(
        self,
        output_dir: str | Path,
        workers: int = 1,
        progress_every: int = PROGRESS_EVERY,
    ) -> list[Path]:
        """Render every frame into output_dir using `workers` threads.

        Args:
            output_dir: Directory for the numbered PNGs (created if needed).
            workers: Thread pool size.
            progress_every: Print a progress line every N finished frames.

        Returns:
            Written frame paths in frame order.

        Raises:
            RenderIOError: If output_dir cannot be created.
            FrameRenderError: If any frame failed. Chains the failure of
                the lowest failing index.
        """
        out_dir = Path(output_dir)
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RenderIOError(out_dir, str(e)) from e

        total = self.frame_count()
        paths = [out_dir / frame_filename(i) for i in range(total)]
        print(f"  START  {total} frames -> {out_dir}/ ({workers} workers)", flush=True)

        t0 = time.monotonic()
        failures = []
        with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
            futures = {
                pool.submit(self._render_and_save, i, path): i
                for i, path in enumerate(paths)
            }
            for done, future in enumerate(as_completed(futures), start=1):
                exc = future.exception()
                if exc is not None:
                    failures.append((futures[future], exc))
                if progress_every and done % progress_every == 0:
                    print(f"  FRAMES {done} / {total}", flush=True)

        if failures:
            index, exc = min(failures, key=lambda f: f[0])
            raise FrameRenderError(index, len(failures), total) from exc

        elapsed = time.monotonic() - t0
        print(f"  DONE   {total} frames, {elapsed:.1f}s wall", flush=True)
        return paths

    # ── Audio ────────────────────────────────────────────────────

    def render_audio(self, sample_rate: int, channels: int) -> np.ndarray:
        """Mix every layer's audio into one interleaved float32 array.

        Sample ticks run while tick / sample_rate <= timeline duration.
        A source joins the mix at the first tick at or after its layer
        offset and leaves it when exhausted. Each output value is the sum
        of the active sources for that channel, 0.0 when none are active.

        Mixing proceeds in blocks between activation ticks, which gives
        the same result as pulling one frame per source per tick.
        """
        meta = self.timeline.meta
        total = int(meta.duration * sample_rate + TICK_EPSILON) + 1

        # (start tick, stacking order, layer, lazy stream). Nothing decoded yet.
        pending = []
        for order, layer in enumerate(self.timeline.layers):
            stream = layer.data.audio()
            if stream is None:
                continue
            start = math.ceil(layer.offset * sample_rate - TICK_EPSILON)
            pending.append((start, order, layer, stream))
        pending.sort(key=lambda p: (p[0], p[1]))

        out = np.zeros((total, channels), dtype=np.float32)
        active = []
        pos = 0
        while pos < total and (pending or active):
            while pending and pending[0][0] <= pos:
                _, _, layer, stream = pending.pop(0)
                active.append(_prepare_stream(layer, stream, sample_rate, channels))

            stop = min(pending[0][0], total) if pending else total
            n = stop - pos
            still_active = []
            for stream in active:
                chunk = stream.read(n)
                out[pos:pos + len(chunk)] += chunk
                if len(chunk) == n:
                    still_active.append(stream)
            active = still_active
            pos = stop

        return out.reshape(-1)

    def render_audio_wav(self, path: str | Path, sample_rate: int, channels: int) -> None:
        """Mix the audio and write it as a 32-bit float WAV."""
        samples = self.render_audio(sample_rate, channels)
        write_wav(path, samples, sample_rate, channels)


def _prepare_stream(layer, stream, sample_rate, channels):
    """Speed-adjust, convert to the mix format, then run audio effects."""
    stream = stream.with_speed(layer.speed).uniform(sample_rate, channels)
    for effect in layer.effects:
        stream = apply_audio_effect(effect, stream)
    return stream
