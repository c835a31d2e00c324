"""Layer placement on the canvas.

A Transform is either an absolute pixel offset or a canvas-relative
percentage. Percentages stay symbolic until render time, when they are
resolved against the canvas size. Values outside the canvas are allowed;
the overlay step clips them.
"""

from dataclasses import dataclass


PX = "px"
PERCENT = "percent"


@dataclass(frozen=True)
class Transform:
    """Top-left position of a layer frame on the canvas."""

    kind: str
    x: float
    y: float

    @classmethod
    def px(cls, x: int, y: int) -> "Transform":
        return cls(PX, int(x), int(y))

    @classmethod
    def percent(cls, x: float, y: float) -> "Transform":
        """Position relative to the canvas, 0.0 -> 1.0 (not range-checked)."""
        return cls(PERCENT, float(x), float(y))

    def resolve(self, width: int, height: int) -> tuple[int, int]:
        """Resolve to a pixel offset for a width x height canvas.

        Percentages are truncated toward zero.
        """
        if self.kind == PX:
            return int(self.x), int(self.y)
        return int(width * self.x), int(height * self.y)


Transform.ZERO = Transform.px(0, 0)
