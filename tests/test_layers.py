"""Tests for the timeline data model."""

import pytest
from PIL import Image

from layercompose.effects import AudioGain, Scale
from layercompose.layers import CanvasMeta, Layer, LayerData, Timeline
from layercompose.transform import Transform


class _StillData(LayerData):
    def __init__(self, seconds):
        self.seconds = seconds

    def duration(self):
        return self.seconds

    def frame(self, offset):
        return Image.new("RGBA", (2, 2))

    def audio(self):
        return None


class TestCanvasMeta:
    @pytest.mark.parametrize("fps, duration, expected", [
        (25.0, 2.0, 50),
        (30.0, 1.5, 45),
        (24.0, 0.99, 23),
        (10.0, 0.05, 0),
    ])
    def test_frame_count_is_floor(self, fps, duration, expected):
        assert CanvasMeta(640, 360, fps, duration).frame_count == expected


class TestLayer:
    def test_defaults(self):
        layer = Layer(_StillData(3.0))
        assert layer.offset == 0.0
        assert layer.speed == 1.0
        assert layer.transform == Transform.ZERO
        assert layer.effects == ()
        assert layer.base_duration == 3.0

    def test_duration_override(self):
        layer = Layer(_StillData(3.0)).with_duration(1.0)
        assert layer.base_duration == 1.0

    def test_effective_duration_multiplies_speed(self):
        layer = Layer(_StillData(4.0), speed=0.5)
        assert layer.effective_duration == 2.0

    def test_active_window_half_open(self):
        layer = Layer(_StillData(2.0), offset=1.0)
        assert not layer.is_active(0.99)
        assert layer.is_active(1.0)
        assert layer.is_active(2.99)
        assert not layer.is_active(3.0)

    def test_source_position_scales_with_speed(self):
        layer = Layer(_StillData(10.0), offset=2.0, speed=2.0)
        assert layer.source_position(3.0) == 2.0

    @pytest.mark.parametrize("speed", [0.0, -1.0])
    def test_nonpositive_speed_rejected(self, speed):
        with pytest.raises(ValueError, match="speed must be > 0"):
            Layer(_StillData(2.0), speed=speed)

    def test_with_speed_validates(self):
        with pytest.raises(ValueError, match="speed must be > 0"):
            Layer(_StillData(2.0)).with_speed(0.0)

    def test_builders_return_new_layers(self):
        base = Layer(_StillData(1.0))
        chained = base.with_effect(Scale(2, 2)).with_effect(AudioGain(0.5)).with_speed(2.0)
        assert base.effects == ()
        assert chained.effects == (Scale(2, 2), AudioGain(0.5))
        assert chained.speed == 2.0

    def test_effect_order_preserved(self):
        effects = [AudioGain(1.0), Scale(1, 1), AudioGain(2.0)]
        assert Layer(_StillData(1.0), effects=effects).effects == tuple(effects)

    def test_rejects_non_effect(self):
        with pytest.raises(TypeError, match="Not an effect"):
            Layer(_StillData(1.0), effects=["blur"])


class TestTimeline:
    def test_layers_append_in_order(self):
        a, b = Layer(_StillData(1.0)), Layer(_StillData(2.0))
        timeline = Timeline(640, 360, 25, 2).add_layer(a).add_layer(b)
        assert timeline.layers == (a, b)

    def test_meta(self):
        meta = Timeline(640, 360, 25, 2).meta
        assert (meta.width, meta.height, meta.fps, meta.duration) == (640, 360, 25.0, 2.0)
        assert meta.frame_count == 50

    def test_layers_view_is_read_only(self):
        timeline = Timeline(64, 36, 10, 1)
        assert isinstance(timeline.layers, tuple)

    @pytest.mark.parametrize("args", [(0, 360, 25, 2), (640, 360, 0, 2), (640, 360, 25, -1)])
    def test_invalid_canvas_raises(self, args):
        with pytest.raises(ValueError):
            Timeline(*args)

    def test_add_non_layer_raises(self):
        with pytest.raises(TypeError):
            Timeline(64, 36, 10, 1).add_layer(_StillData(1.0))

    def test_layer_data_is_abstract(self):
        with pytest.raises(TypeError):
            LayerData()
