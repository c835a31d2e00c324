"""Subcommand dispatcher for layercompose.

Usage:
    layercompose render    --manifest timeline.yaml --output /tmp/render/
    layercompose validate  --manifest timeline.yaml
    layercompose mux       frames/ --audio audio.wav --fps 25 --output out.mp4
"""

import argparse
import sys


def _mux_main(args):
    from . import ffmpeg

    parser = argparse.ArgumentParser(
        prog="layercompose mux",
        description="Encode numbered frames (and optional audio) into an mp4.",
    )
    parser.add_argument("frames", help="Directory of 000001.png-style frames")
    parser.add_argument("--audio", default=None, help="Audio file to mux in")
    parser.add_argument("--fps", type=float, required=True, help="Frame rate")
    parser.add_argument("--output", required=True, help="Output mp4 path")
    parsed = parser.parse_args(args)

    ffmpeg.mux(parsed.frames, parsed.audio, parsed.output, parsed.fps)
    print(f"Done: {parsed.output}")


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="layercompose",
        description="Layered timeline compositing: render frames, mix audio, mux.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own parser.
    subparsers.add_parser("render", help="Render a YAML timeline manifest")
    subparsers.add_parser("validate", help="Validate a YAML timeline manifest")
    subparsers.add_parser("mux", help="Encode rendered frames + audio to mp4")

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None:
        parser.print_help()
        sys.exit(1)

    if parsed.command == "render":
        from .cli import main as render_main
        render_main(remaining)
    elif parsed.command == "validate":
        from .cli import main as render_main
        render_main(remaining + ["--validate"])
    elif parsed.command == "mux":
        _mux_main(remaining)


if __name__ == "__main__":
    main()
