"""CLI for timeline rendering.

Reads a YAML timeline manifest, validates all media paths, renders every
frame to numbered PNGs, mixes the audio to a float WAV, and optionally
muxes both into an mp4.

Usage:
    # Frames + audio into a work directory (4 render threads)
    python -m layercompose.cli \
        --manifest timeline.yaml --output /tmp/render/ --workers 4

    # Render and mux, dropping the intermediate frames afterwards
    python -m layercompose.cli \
        --manifest timeline.yaml --output /tmp/render/ --mux /tmp/out.mp4

    # Validate only (no rendering)
    python -m layercompose.cli --manifest timeline.yaml --validate
"""

import argparse
import os
import shutil
import time
from pathlib import Path

from . import ffmpeg
from .manifest import build_timeline, load_manifest, validate_paths
from .renderer import Renderer


def render(
    manifest_path: str,
    output_dir: str,
    workers: int = 1,
    audio: bool = True,
    mux_path: str | None = None,
    keep_frames: bool = False,
) -> None:
    """Load manifest, validate, render frames and audio, optionally mux.

    Output layout:
      output_dir/frames/000001.png ...
      output_dir/audio.wav            (unless audio=False)

    Args:
        manifest_path: Path to YAML manifest.
        output_dir: Work directory for frames and audio.
        workers: Frame render threads.
        audio: Mix and write audio.wav.
        mux_path: If set, encode frames (+ audio) into this mp4.
        keep_frames: Keep output_dir/frames after muxing.
    """
    config = load_manifest(manifest_path)
    validate_paths(config)

    canvas = config["canvas"]
    out_dir = Path(output_dir)
    frames_dir = out_dir / "frames"
    audio_path = out_dir / "audio.wav"

    print(f"Loading {len(config['layers'])} layers (cache: {config['cache']})")
    timeline = build_timeline(config)
    renderer = Renderer(timeline)

    print(
        f"\nResolution: {canvas['width']}x{canvas['height']}, {canvas['fps']:g}fps, "
        f"{canvas['duration']:g}s ({renderer.frame_count()} frames)"
    )
    t_start = time.monotonic()
    renderer.render_all(frames_dir, workers=workers)

    if audio:
        fmt = config["audio"]
        print(f"Mixing audio: {fmt['sample_rate']} Hz, {fmt['channels']} ch")
        renderer.render_audio_wav(audio_path, fmt["sample_rate"], fmt["channels"])

    if mux_path:
        print(f"Muxing to: {mux_path}")
        ffmpeg.mux(frames_dir, audio_path if audio else None, mux_path, canvas["fps"])
        if not keep_frames:
            shutil.rmtree(frames_dir)

    total_wall = time.monotonic() - t_start
    print(f"\nDone: {mux_path or out_dir} ({total_wall:.1f}s total)")


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render a YAML timeline manifest to frames, audio and mp4.",
    )
    parser.add_argument(
        "--manifest", required=True,
        help="Path to YAML timeline manifest",
    )
    parser.add_argument(
        "--output",
        help="Work directory for frames/ and audio.wav",
    )
    parser.add_argument(
        "--workers", type=int, default=os.cpu_count() or 1,
        help="Frame render threads (default: CPU count)",
    )
    parser.add_argument(
        "--no-audio", action="store_true",
        help="Skip the audio mix",
    )
    parser.add_argument(
        "--mux", default=None,
        help="Encode the rendered frames and audio into this mp4",
    )
    parser.add_argument(
        "--keep-frames", action="store_true",
        help="Keep the frames directory after --mux",
    )
    parser.add_argument(
        "--validate", action="store_true",
        help="Validate manifest only: check paths, don't render",
    )
    args = parser.parse_args(args)

    if args.validate:
        validate(args.manifest)
        return

    if not args.output:
        parser.error("--output is required (unless using --validate)")
    if args.workers < 1:
        parser.error("--workers must be >= 1")

    render(
        args.manifest, args.output,
        workers=args.workers,
        audio=not args.no_audio,
        mux_path=args.mux,
        keep_frames=args.keep_frames,
    )


def validate(manifest_path: str) -> None:
    """Print a summary of a manifest after checking all its paths."""
    config = load_manifest(manifest_path)
    validate_paths(config)
    canvas = config["canvas"]
    print(
        f"Manifest valid: {len(config['layers'])} layers, "
        f"{canvas['width']}x{canvas['height']} @ {canvas['fps']:g}fps, "
        f"{canvas['duration']:g}s"
    )
    for i, layer in enumerate(config["layers"]):
        what = layer.get("source") or "#%02X%02X%02X" % layer["color"]
        names = ", ".join(type(e).__name__ for e in layer["effects"])
        tag = f" [{names}]" if names else ""
        print(f"  {i}: {what} @ {layer['offset']:g}s x{layer['speed']:g}{tag}")
    print("All paths verified.")


if __name__ == "__main__":
    main()
