"""Timeline data model — canvas metadata, layers, and the layer data interface.

A Timeline is an ordered stack of Layers on a fixed-size canvas. Each
Layer owns one LayerData source and places it on the timeline with an
offset, a playback speed, a base transform, and an ordered effect chain.
Later layers are drawn on top of earlier ones.

The timeline is built once and then only read. Rendering threads share
it; nothing in here is mutated while frames are being produced.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace

from .effects import EFFECT_TYPES
from .transform import Transform


class LayerData(ABC):
    """A decoded media source as seen by the compositor.

    Implementations must tolerate concurrent frame() calls from several
    render threads.
    """

    @abstractmethod
    def duration(self) -> float:
        """Intrinsic duration in seconds."""

    @abstractmethod
    def frame(self, offset: float):
        """RGBA PIL image at `offset` seconds into the source, or None."""

    @abstractmethod
    def audio(self):
        """A fresh AudioStream for this source, or None if it has no audio."""


@dataclass(frozen=True)
class CanvasMeta:
    width: int
    height: int
    fps: float
    duration: float

    @property
    def frame_count(self) -> int:
        return int(self.fps * self.duration)


@dataclass(frozen=True)
class Layer:
    """One media source placed on the timeline.

    The transform is the layer's resting position; effects may move the
    frame for a single render without changing it here.
    """

    data: LayerData
    offset: float = 0.0
    transform: Transform = Transform.ZERO
    speed: float = 1.0
    effects: tuple = field(default_factory=tuple)
    duration: float | None = None

    def __post_init__(self):
        if self.speed <= 0:
            raise ValueError(f"Layer speed must be > 0, got {self.speed}")
        effects = tuple(self.effects)
        for effect in effects:
            if not isinstance(effect, EFFECT_TYPES):
                raise TypeError(f"Not an effect: {effect!r}")
        object.__setattr__(self, "effects", effects)

    @property
    def base_duration(self) -> float:
        """Layer length before speed: the override, else the data's own."""
        if self.duration is not None:
            return self.duration
        return self.data.duration()

    @property
    def effective_duration(self) -> float:
        return self.base_duration * self.speed

    def is_active(self, t: float) -> bool:
        """Whether the layer is on screen at timeline time t.

        The window is half-open: a 2s layer at offset 0 covers [0, 2).
        """
        return self.offset <= t < self.offset + self.effective_duration

    def source_position(self, t: float) -> float:
        """Offset into the layer data for timeline time t."""
        return (t - self.offset) * self.speed

    # Builder helpers. Layers are immutable; each returns a new Layer.

    def with_effect(self, effect) -> "Layer":
        return replace(self, effects=self.effects + (effect,))

    def with_speed(self, speed: float) -> "Layer":
        return replace(self, speed=speed)

    def with_duration(self, duration: float) -> "Layer":
        return replace(self, duration=duration)


class Timeline:
    """Layers stacked on a canvas of fixed size, frame rate and length."""

    def __init__(self, width: int, height: int, fps: float, duration: float):
        if width <= 0 or height <= 0:
            raise ValueError(f"Canvas size must be positive, got {width}x{height}")
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        if duration < 0:
            raise ValueError(f"duration must be >= 0, got {duration}")
        self.meta = CanvasMeta(int(width), int(height), float(fps), float(duration))
        self._layers = []

    @property
    def layers(self) -> tuple[Layer, ...]:
        return tuple(self._layers)

    def add_layer(self, layer: Layer) -> "Timeline":
        """Append a layer on top of the stack. Returns self for chaining."""
        if not isinstance(layer, Layer):
            raise TypeError(f"Not a Layer: {layer!r}")
        self._layers.append(layer)
        return self
