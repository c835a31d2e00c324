"""Tests for the render CLI."""

import pytest
import soundfile as sf
import yaml
from PIL import Image

from layercompose.cli import main, render


def _manifest(tmp_path, **extra):
    data = {
        "canvas": {"width": 64, "height": 36, "fps": 5, "duration": 1},
        "audio": {"sample_rate": 8000, "channels": 1},
        "layers": [
            {"color": "#102030"},
            {"color": "#FFFFFF", "size": [8, 8], "offset": 0.4,
             "position": {"px": [4, 4]}},
        ],
    }
    data.update(extra)
    path = tmp_path / "timeline.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestRender:
    def test_frames_and_audio(self, tmp_path):
        out = tmp_path / "render"
        main(["--manifest", str(_manifest(tmp_path)), "--output", str(out), "--workers", "2"])

        frames = sorted(p.name for p in (out / "frames").iterdir())
        assert frames == [f"{i:06d}.png" for i in range(1, 6)]
        with Image.open(out / "frames" / "000001.png") as img:
            assert img.size == (64, 36)
            assert img.getpixel((5, 5)) == (16, 32, 48)
        # White square appears from t=0.4 (frame index 2).
        with Image.open(out / "frames" / "000003.png") as img:
            assert img.getpixel((5, 5)) == (255, 255, 255)

        data, rate = sf.read(str(out / "audio.wav"))
        assert rate == 8000
        assert data.shape == (8001,)
        assert not data.any()

    def test_no_audio(self, tmp_path):
        out = tmp_path / "render"
        main(["--manifest", str(_manifest(tmp_path)), "--output", str(out), "--no-audio"])
        assert (out / "frames").is_dir()
        assert not (out / "audio.wav").exists()

    def test_mux_drops_frames(self, tmp_path):
        out = tmp_path / "render"
        mp4 = tmp_path / "final.mp4"
        render(str(_manifest(tmp_path)), str(out), workers=2, mux_path=str(mp4))
        assert mp4.stat().st_size > 0
        assert not (out / "frames").exists()
        assert (out / "audio.wav").exists()

    def test_mux_keep_frames(self, tmp_path):
        out = tmp_path / "render"
        mp4 = tmp_path / "final.mp4"
        render(str(_manifest(tmp_path)), str(out), mux_path=str(mp4), keep_frames=True)
        assert len(list((out / "frames").glob("*.png"))) == 5

    def test_missing_media_fails_before_render(self, tmp_path):
        manifest = _manifest(tmp_path, layers=[{"source": str(tmp_path / "gone.mp4")}])
        out = tmp_path / "render"
        with pytest.raises(FileNotFoundError, match="Missing 1 media file"):
            main(["--manifest", str(manifest), "--output", str(out)])
        assert not out.exists()

    def test_output_required(self, tmp_path):
        with pytest.raises(SystemExit):
            main(["--manifest", str(_manifest(tmp_path))])

    def test_workers_must_be_positive(self, tmp_path):
        with pytest.raises(SystemExit):
            main(["--manifest", str(_manifest(tmp_path)), "--output", str(tmp_path), "--workers", "0"])


class TestValidate:
    def test_prints_summary(self, tmp_path, capsys):
        manifest = _manifest(tmp_path, layers=[
            {"color": "#102030", "effects": [{"type": "scale", "x": 2, "y": 2}]},
        ])
        main(["--manifest", str(manifest), "--validate"])
        out = capsys.readouterr().out
        assert "Manifest valid: 1 layers, 64x36 @ 5fps, 1s" in out
        assert "#102030" in out
        assert "[Scale]" in out
        assert "All paths verified." in out

    def test_validate_does_not_render(self, tmp_path):
        main(["--manifest", str(_manifest(tmp_path)), "--validate"])
        assert not (tmp_path / "frames").exists()
