"""ffmpeg wrappers — frame splitting, audio extraction, and final muxing.

Uses the ffmpeg binary bundled with imageio-ffmpeg, so no system install
is needed. Every call is quiet (-loglevel error) and overwrites outputs.
"""

import subprocess
from pathlib import Path

import imageio_ffmpeg

from .errors import DecodeError

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()

FRAME_PATTERN = "%06d.png"


def _run(source: str | Path, cmd: list[str]) -> None:
    result = subprocess.run(cmd, capture_output=True, text=True)
    stderr = result.stderr.strip()
    if result.returncode != 0:
        raise DecodeError(source, f"ffmpeg failed: {stderr}")


def convert(source: str | Path, output: str | Path, args=()) -> None:
    """Basic `ffmpeg -i source [args] output`.

    Raises:
        DecodeError: If ffmpeg exits non-zero (stderr in the message).
    """
    cmd = [
        _FFMPEG, "-y", "-hide_banner", "-loglevel", "error",
        "-i", str(source),
        *[str(a) for a in args],
        str(output),
    ]
    _run(source, cmd)


def split_frames(source: str | Path, frames_dir: str | Path) -> int:
    """Decode every video frame to frames_dir/000001.png, 000002.png, ...

    Returns:
        Number of frames written.
    """
    frames_dir = Path(frames_dir)
    frames_dir.mkdir(parents=True, exist_ok=True)
    convert(source, frames_dir / FRAME_PATTERN)
    return len(list(frames_dir.glob("*.png")))


def extract_audio(source: str | Path, output: str | Path) -> bool:
    """Extract the audio track to output. False if there is none."""
    try:
        convert(source, output, ["-vn"])
    except DecodeError:
        return False
    return Path(output).exists()


def mux(
    frames_dir: str | Path,
    audio_path: str | Path | None,
    output: str | Path,
    fps: float,
) -> None:
    """Encode numbered frames (plus optional audio) into an mp4."""
    Path(output).parent.mkdir(parents=True, exist_ok=True)
    cmd = [
        _FFMPEG, "-y", "-hide_banner", "-loglevel", "error",
        "-framerate", f"{fps:g}",
        "-i", str(Path(frames_dir) / FRAME_PATTERN),
    ]
    if audio_path is not None:
        cmd += ["-i", str(audio_path), "-c:a", "aac", "-b:a", "128k"]
    cmd += [
        "-c:v", "libx264", "-crf", "20", "-pix_fmt", "yuv420p",
        "-movflags", "+faststart",
        str(output),
    ]
    _run(frames_dir, cmd)
