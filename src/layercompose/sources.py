"""Media sources — LayerData implementations for images, video, and audio.

  - ImageLayer / ColorLayer: one still frame at every offset, no audio.
  - VideoLayer: frames pre-split to numbered PNGs in a cache directory,
    plus an optional extracted audio track.
  - AudioLayer: audio only, no frames.

Videos are transcoded once per cache directory. The cache holds
frames/000001.png..., audio.mp3 (if the source has audio) and a
meta.json with width, height, duration and frame count; a later load
with meta.json present skips ffmpeg entirely.

FileLoader picks the layer type from the file extension.
"""

import json
import shutil
from dataclasses import asdict, dataclass
from pathlib import Path

import numpy as np
from moviepy import AudioFileClip, VideoFileClip
from PIL import Image

from . import ffmpeg
from .audio import AudioStream
from .errors import DecodeError
from .layers import LayerData


DEFAULT_IMAGE_DURATION = 5.0

# Sample times handed to the audio reader per call; stays inside its buffer.
DECODE_CHUNK = 50000

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".tiff", ".bmp", ".webp"}
AUDIO_EXTENSIONS = {".mp3", ".wav", ".ogg", ".flac"}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".wmv", ".avi", ".webm", ".gif", ".mkv", ".m4v"}


# ── Decoding helpers ─────────────────────────────────────────────


def load_image(path: str | Path) -> Image.Image:
    """Open an image file fully decoded as RGBA."""
    try:
        with Image.open(path) as img:
            return img.convert("RGBA")
    except OSError as e:
        raise DecodeError(path, str(e)) from e


def decode_audio(path: str | Path):
    """Decode a whole audio file at its native rate.

    The clip is opened and closed inside this call. Samples are taken at
    explicit times in [0, duration) so the reader is never asked for the
    instant at the very end of the clip.

    Returns:
        (samples, sample_rate) with samples shaped (frames, channels).
    """
    try:
        with AudioFileClip(str(path)) as clip:
            rate = clip.fps
            n = int(clip.duration * rate)
            tt = np.arange(n) / rate
            chunks = [
                clip.to_soundarray(tt=tt[i:i + DECODE_CHUNK])
                for i in range(0, n, DECODE_CHUNK)
            ]
            channels = clip.nchannels
    except OSError as e:
        raise DecodeError(path, str(e)) from e
    if not chunks:
        return np.zeros((0, channels), dtype=np.float32), rate
    return np.concatenate(chunks), rate


# ── Still images ─────────────────────────────────────────────────


class ImageLayer(LayerData):
    """A still image shown for `duration` seconds.

    The image is decoded once; each frame() call hands out a copy so
    render threads never share a mutable image.
    """

    def __init__(self, image: str | Path | Image.Image, duration: float = DEFAULT_IMAGE_DURATION):
        if isinstance(image, Image.Image):
            self._image = image.convert("RGBA")
        else:
            self._image = load_image(image)
        self._duration = float(duration)

    def duration(self) -> float:
        return self._duration

    def frame(self, offset: float):
        return self._image.copy()

    def audio(self):
        return None


class ColorLayer(ImageLayer):
    """A solid color rectangle, e.g. a background plate."""

    def __init__(
        self,
        color: tuple[int, ...],
        size: tuple[int, int],
        duration: float = DEFAULT_IMAGE_DURATION,
    ):
        rgba = tuple(color) + (255,) * (4 - len(color))
        super().__init__(Image.new("RGBA", tuple(size), rgba), duration)


# ── Video ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class VideoMeta:
    width: int
    height: int
    duration: float
    frames: int


@dataclass(frozen=True)
class Video:
    """A transcoded video living in a cache directory."""

    path: Path
    audio: bool
    meta: VideoMeta

    @property
    def meta_path(self) -> Path:
        return self.path / "meta.json"

    @property
    def audio_path(self) -> Path:
        return self.path / "audio.mp3"

    def frame_path(self, index: int) -> Path:
        """Path of 0-based frame `index` (files are 1-based)."""
        return self.path / "frames" / f"{index + 1:06d}.png"

    def to_dict(self) -> dict:
        return {"path": str(self.path), "audio": self.audio, "meta": asdict(self.meta)}

    @classmethod
    def from_dict(cls, data: dict) -> "Video":
        return cls(Path(data["path"]), bool(data["audio"]), VideoMeta(**data["meta"]))

    @classmethod
    def load_or_cache(cls, source: str | Path, cache_dir: str | Path) -> "Video":
        """Load cached metadata, or transcode `source` into cache_dir.

        Raises:
            DecodeError: If probing or frame splitting fails, or the cached
                meta.json is unreadable.
        """
        cache_dir = Path(cache_dir)
        meta_path = cache_dir / "meta.json"
        if meta_path.exists():
            try:
                return cls.from_dict(json.loads(meta_path.read_text()))
            except (ValueError, KeyError, TypeError) as e:
                raise DecodeError(meta_path, f"bad cache metadata: {e}") from e

        print(f"  CACHE  {source} -> {cache_dir}", flush=True)
        try:
            with VideoFileClip(str(source), audio=False) as clip:
                width, height = clip.size
                duration = float(clip.duration)
        except OSError as e:
            raise DecodeError(source, str(e)) from e

        cache_dir.mkdir(parents=True, exist_ok=True)
        frames = ffmpeg.split_frames(source, cache_dir / "frames")
        has_audio = ffmpeg.extract_audio(source, cache_dir / "audio.mp3")

        video = cls(cache_dir, has_audio, VideoMeta(width, height, duration, frames))
        meta_path.write_text(json.dumps(video.to_dict(), indent=2))
        return video

    def uncache(self) -> None:
        """Delete this video's cache directory (frames, audio, meta.json)."""
        print(f"  UNCACHE {self.path}", flush=True)
        shutil.rmtree(self.path)


class VideoLayer(LayerData):
    """Frames of a cached video, looked up by offset -> frame index."""

    def __init__(self, video: Video):
        self.video = video

    def duration(self) -> float:
        return self.video.meta.duration

    def frame(self, offset: float):
        meta = self.video.meta
        if meta.duration <= 0:
            return None
        index = int(offset / meta.duration * meta.frames)
        if index < 0 or index >= meta.frames:
            return None
        path = self.video.frame_path(index)
        if not path.exists():
            return None
        return load_image(path)

    def audio(self):
        if not self.video.audio:
            return None
        path = self.video.audio_path
        return AudioStream(lambda: decode_audio(path))


# ── Audio ────────────────────────────────────────────────────────


class AudioFile:
    """An audio file on disk with its probed duration."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        try:
            with AudioFileClip(str(self.path)) as clip:
                self.duration = float(clip.duration)
        except OSError as e:
            raise DecodeError(self.path, str(e)) from e


class AudioLayer(LayerData):
    """Audio-only layer. Decodes on first read of its stream."""

    def __init__(self, audio: AudioFile):
        self.audio_file = audio

    def duration(self) -> float:
        return self.audio_file.duration

    def frame(self, offset: float):
        return None

    def audio(self):
        path = self.audio_file.path
        return AudioStream(lambda: decode_audio(path))


# ── Extension dispatch ───────────────────────────────────────────


class FileLoader:
    """Builds LayerData from media files, caching transcoded videos."""

    def __init__(self, cache_dir: str | Path, image_duration: float = DEFAULT_IMAGE_DURATION):
        self.cache_dir = Path(cache_dir)
        self.image_duration = image_duration

    def cache_path(self, path: str | Path) -> Path:
        """Cache directory for a video: its file name up to the first dot."""
        return self.cache_dir / Path(path).name.split(".")[0]

    def load_file(self, path: str | Path, image_duration: float | None = None) -> LayerData:
        """Load a media file as LayerData, choosing the type by extension.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the extension is missing or unsupported.
            DecodeError: If decoding or transcoding fails.
        """
        path = Path(path)
        ext = path.suffix.lower()
        if not ext:
            raise ValueError(f"Missing extension: {path}")
        if ext not in IMAGE_EXTENSIONS | AUDIO_EXTENSIONS | VIDEO_EXTENSIONS:
            raise ValueError(f"Unsupported extension '{ext}': {path}")
        if not path.exists():
            raise FileNotFoundError(f"Media file not found: {path}")

        if ext in IMAGE_EXTENSIONS:
            if image_duration is None:
                image_duration = self.image_duration
            return ImageLayer(path, image_duration)
        if ext in AUDIO_EXTENSIONS:
            return AudioLayer(AudioFile(path))
        return VideoLayer(Video.load_or_cache(path, self.cache_path(path)))
