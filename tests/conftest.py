"""Shared test fixtures for layercompose tests."""

import subprocess

import numpy as np
import pytest
import imageio_ffmpeg
import soundfile as sf
from PIL import Image

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()


@pytest.fixture
def source_video(tmp_path):
    """Create a 2-second test video (160x120, 10fps) with a sine tone.

    Shared across test_sources.py and test_cli.py.
    """
    out = tmp_path / "source.mp4"
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", "color=c=blue:s=160x120:d=2:r=10",
            "-f", "lavfi", "-i", "sine=frequency=440:sample_rate=44100:duration=2",
            "-shortest",
            "-c:v", "libx264", "-crf", "28", "-pix_fmt", "yuv420p",
            "-c:a", "aac", "-b:a", "64k",
            str(out),
        ],
        check=True,
        capture_output=True,
    )
    return out


@pytest.fixture
def silent_video(tmp_path):
    """A 1-second video with no audio track."""
    out = tmp_path / "silent.mp4"
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", "color=c=red:s=160x120:d=1:r=10",
            "-c:v", "libx264", "-crf", "28", "-pix_fmt", "yuv420p",
            str(out),
        ],
        check=True,
        capture_output=True,
    )
    return out


@pytest.fixture
def source_wav(tmp_path):
    """A 1-second stereo 44.1kHz WAV holding a constant 0.25."""
    out = tmp_path / "tone.wav"
    sf.write(str(out), np.full((44100, 2), 0.25, dtype=np.float32), 44100)
    return out


@pytest.fixture
def source_png(tmp_path):
    """A 40x20 opaque green PNG."""
    out = tmp_path / "still.png"
    Image.new("RGBA", (40, 20), (0, 200, 0, 255)).save(out)
    return out
