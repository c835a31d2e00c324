#!/usr/bin/env python3
"""Build and render a three-layer demo timeline in code.

Generates its own sample assets in examples/demo-assets/ (a color video,
a gradient PNG and a sine-tone mp3), then stacks them:

  - the video, stretched to the 640x360 canvas
  - from 5s, the PNG at the canvas center, growing 2x while turning half a turn
  - from 5s, the tone at half speed and half gain

and writes frames, a float WAV mix and a muxed mp4 to /tmp/layercompose-demo/.

Usage:
    python examples/render_demo.py
"""

import math
import os
import shutil
from pathlib import Path

import numpy as np
import soundfile as sf
from moviepy import ColorClip
from PIL import Image

from layercompose import ffmpeg
from layercompose.effects import AudioGain, RotateOverTime, ScaleOverTime, ScaleToBase
from layercompose.layers import Layer, Timeline
from layercompose.renderer import Renderer
from layercompose.sources import FileLoader
from layercompose.transform import Transform

ASSETS_DIR = Path(__file__).resolve().parent / "demo-assets"
OUTPUT_DIR = Path("/tmp/layercompose-demo")
CACHE_DIR = Path("/tmp/layercompose-cache")


def make_assets() -> dict[str, Path]:
    ASSETS_DIR.mkdir(parents=True, exist_ok=True)
    paths = {
        "video": ASSETS_DIR / "sample.mp4",
        "image": ASSETS_DIR / "sample.png",
        "audio": ASSETS_DIR / "sample.mp3",
    }

    if not paths["video"].exists():
        clip = ColorClip(size=(320, 180), color=(40, 90, 160), duration=10)
        clip.write_videofile(str(paths["video"]), fps=25, logger=None)
        print(f"  wrote {paths['video'].name}")

    if not paths["image"].exists():
        ramp = np.linspace(0, 255, 120, dtype=np.uint8)
        arr = np.zeros((60, 120, 4), dtype=np.uint8)
        arr[:, :, 0] = ramp
        arr[:, :, 1] = ramp[::-1]
        arr[:, :, 3] = 255
        Image.fromarray(arr).save(paths["image"])
        print(f"  wrote {paths['image'].name}")

    if not paths["audio"].exists():
        t = np.arange(44100 * 4) / 44100
        tone = 0.4 * np.sin(2 * math.pi * 330 * t).astype(np.float32)
        wav = ASSETS_DIR / "sample.wav"
        sf.write(str(wav), np.stack([tone, tone], axis=1), 44100)
        ffmpeg.convert(wav, paths["audio"])
        wav.unlink()
        print(f"  wrote {paths['audio'].name}")

    return paths


def main():
    assets = make_assets()
    loader = FileLoader(CACHE_DIR, image_duration=3.0)

    timeline = (
        Timeline(640, 360, 25, 10)
        .add_layer(
            Layer(loader.load_file(assets["video"]))
            .with_effect(ScaleToBase(force=True))
        )
        .add_layer(
            Layer(loader.load_file(assets["image"]), offset=5.0,
                  transform=Transform.percent(0.5, 0.5))
            .with_effect(ScaleOverTime(1.0, 1.0, 2.0, 2.0))
            .with_effect(RotateOverTime(0.0, math.pi, uncropped=True))
        )
        .add_layer(
            Layer(loader.load_file(assets["audio"]), offset=5.0)
            .with_speed(0.5)
            .with_effect(AudioGain(0.5))
        )
    )

    renderer = Renderer(timeline)
    frames_dir = OUTPUT_DIR / "frames"
    audio_path = OUTPUT_DIR / "audio.wav"
    renderer.render_all(frames_dir, workers=os.cpu_count() or 1)
    renderer.render_audio_wav(audio_path, 44100, 2)

    output = OUTPUT_DIR / "output.mp4"
    ffmpeg.mux(frames_dir, audio_path, output, timeline.meta.fps)
    shutil.rmtree(frames_dir)
    audio_path.unlink()
    print(f"\nSaved in: {output}")


if __name__ == "__main__":
    main()
