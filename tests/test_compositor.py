"""Tests for per-frame layer compositing."""

import numpy as np
from PIL import Image

from layercompose.compositor import composite_frame, composite_layer, new_canvas, overlay
from layercompose.effects import MovePx, ScaleToBase
from layercompose.layers import CanvasMeta, Layer, LayerData, Timeline
from layercompose.transform import Transform


class _SolidData(LayerData):
    """Solid RGBA rectangle; records every offset it is asked for."""

    def __init__(self, color, size, seconds):
        self.color = color
        self.size = size
        self.seconds = seconds
        self.requested = []

    def duration(self):
        return self.seconds

    def frame(self, offset):
        self.requested.append(offset)
        return Image.new("RGBA", self.size, self.color)

    def audio(self):
        return None


class _EmptyData(_SolidData):
    def frame(self, offset):
        return None


META = CanvasMeta(width=4, height=4, fps=10.0, duration=1.0)


class TestOverlay:
    def test_opaque_overlay_replaces_pixels(self):
        canvas = new_canvas(META)
        overlay(canvas, Image.new("RGBA", (2, 2), (255, 0, 0, 255)), 1, 1)
        assert tuple(canvas[1, 1]) == (255, 0, 0)
        assert tuple(canvas[2, 2]) == (255, 0, 0)
        assert tuple(canvas[0, 0]) == (0, 0, 0)
        assert tuple(canvas[3, 3]) == (0, 0, 0)

    def test_negative_offset_clips(self):
        canvas = new_canvas(META)
        overlay(canvas, Image.new("RGBA", (2, 2), (255, 0, 0, 255)), -1, -1)
        assert tuple(canvas[0, 0]) == (255, 0, 0)
        assert canvas[1:, :].sum() == 0
        assert canvas[:, 1:].sum() == 0

    def test_oversized_frame_clips(self):
        canvas = new_canvas(META)
        overlay(canvas, Image.new("RGBA", (10, 10), (0, 0, 255, 255)), 2, 2)
        assert tuple(canvas[3, 3]) == (0, 0, 255)
        assert tuple(canvas[1, 1]) == (0, 0, 0)

    def test_fully_outside_is_noop(self):
        canvas = new_canvas(META)
        overlay(canvas, Image.new("RGBA", (2, 2), (255, 0, 0, 255)), 10, -10)
        assert canvas.sum() == 0

    def test_half_alpha_blends(self):
        canvas = new_canvas(META)
        overlay(canvas, Image.new("RGBA", (4, 4), (255, 255, 255, 128)), 0, 0)
        assert tuple(canvas[0, 0]) == (128, 128, 128)

    def test_transparent_leaves_canvas(self):
        canvas = np.full((4, 4, 3), 77, dtype=np.uint8)
        overlay(canvas, Image.new("RGBA", (4, 4), (255, 0, 0, 0)), 0, 0)
        assert (canvas == 77).all()

    def test_rgb_frame_treated_as_opaque(self):
        canvas = new_canvas(META)
        overlay(canvas, Image.new("RGB", (1, 1), (9, 8, 7)), 0, 0)
        assert tuple(canvas[0, 0]) == (9, 8, 7)


class TestCompositeLayer:
    def test_inactive_layer_draws_nothing(self):
        data = _SolidData((255, 0, 0, 255), (4, 4), 1.0)
        layer = Layer(data, offset=0.5)
        canvas = new_canvas(META)
        assert not composite_layer(layer, 0.2, canvas, META)
        assert data.requested == []
        assert canvas.sum() == 0

    def test_source_position_passed_to_data(self):
        data = _SolidData((255, 0, 0, 255), (4, 4), 10.0)
        layer = Layer(data, offset=1.0, speed=2.0)
        composite_layer(layer, 1.5, new_canvas(META), META)
        assert data.requested == [1.0]

    def test_missing_frame_draws_nothing(self):
        layer = Layer(_EmptyData((255, 0, 0, 255), (4, 4), 1.0))
        canvas = new_canvas(META)
        assert not composite_layer(layer, 0.0, canvas, META)
        assert canvas.sum() == 0

    def test_effects_scale_and_place(self):
        data = _SolidData((0, 255, 0, 255), (1, 1), 1.0)
        layer = Layer(data, transform=Transform.px(2, 2), effects=(ScaleToBase(force=True),))
        canvas = new_canvas(META)
        assert composite_layer(layer, 0.0, canvas, META)
        # Stretched to 4x4 but placed at (2, 2): only the bottom-right quarter.
        assert tuple(canvas[3, 3]) == (0, 255, 0)
        assert tuple(canvas[1, 1]) == (0, 0, 0)

    def test_move_does_not_persist_on_layer(self):
        data = _SolidData((255, 255, 255, 255), (1, 1), 1.0)
        layer = Layer(data, effects=(MovePx(2, 0),))
        canvas = new_canvas(META)
        composite_layer(layer, 0.5, canvas, META)
        assert tuple(canvas[0, 1]) == (255, 255, 255)
        assert layer.transform == Transform.ZERO


class TestCompositeFrame:
    def test_base_is_opaque_black(self):
        frame = composite_frame(Timeline(4, 4, 10, 1), 0.0)
        assert frame.mode == "RGB"
        assert frame.size == (4, 4)
        assert frame.getpixel((0, 0)) == (0, 0, 0)

    def test_later_layers_on_top(self):
        timeline = Timeline(4, 4, 10, 1)
        timeline.add_layer(Layer(_SolidData((255, 0, 0, 255), (4, 4), 1.0)))
        timeline.add_layer(Layer(_SolidData((0, 0, 255, 255), (2, 2), 1.0)))
        frame = composite_frame(timeline, 0.0)
        assert frame.getpixel((0, 0)) == (0, 0, 255)
        assert frame.getpixel((3, 3)) == (255, 0, 0)

    def test_layer_window_by_time(self):
        timeline = Timeline(4, 4, 10, 2)
        timeline.add_layer(Layer(_SolidData((255, 0, 0, 255), (4, 4), 1.0), offset=0.5))
        assert composite_frame(timeline, 0.4).getpixel((0, 0)) == (0, 0, 0)
        assert composite_frame(timeline, 0.5).getpixel((0, 0)) == (255, 0, 0)
        assert composite_frame(timeline, 1.5).getpixel((0, 0)) == (0, 0, 0)
