"""Pull-based audio streams and WAV output.

An AudioStream hands out interleaved float32 frames (one value per
channel) through read(). Decoding is deferred: a stream is built from a
loader callable that only runs on first access, so a layer's audio is
materialized when the mixer reaches it rather than when it is queued.

Derived streams (speed change, resample/rechannel, gain) wrap their
upstream lazily in the same way. Speed must be applied before uniform():
it relabels the sample rate, and the resample then stretches or squeezes
the content to the target rate.
"""

from pathlib import Path

import numpy as np
import soundfile as sf

from .errors import RenderIOError


class AudioStream:
    """Float32 samples of shape (frames, channels) read front to back."""

    def __init__(self, loader):
        """
        Args:
            loader: Zero-arg callable returning (samples, sample_rate).
                samples may be 1-D (mono) or (frames, channels).
        """
        self._loader = loader
        self._samples = None
        self._rate = None
        self._pos = 0

    @classmethod
    def from_array(cls, samples, sample_rate: float) -> "AudioStream":
        return cls(lambda: (samples, sample_rate))

    def _materialize(self) -> None:
        if self._samples is not None:
            return
        samples, rate = self._loader()
        samples = np.asarray(samples, dtype=np.float32)
        if samples.ndim == 1:
            samples = samples[:, np.newaxis]
        self._samples = samples
        self._rate = float(rate)

    @property
    def sample_rate(self) -> float:
        self._materialize()
        return self._rate

    @property
    def channels(self) -> int:
        self._materialize()
        return self._samples.shape[1]

    def remaining(self) -> np.ndarray:
        """All frames not yet read, without consuming them."""
        self._materialize()
        return self._samples[self._pos:]

    def read(self, n_frames: int) -> np.ndarray:
        """Pull up to n_frames frames.

        Returns fewer than n_frames only when the stream is exhausted;
        an empty array means there is nothing left.
        """
        self._materialize()
        chunk = self._samples[self._pos:self._pos + n_frames]
        self._pos += len(chunk)
        return chunk

    def with_speed(self, speed: float) -> "AudioStream":
        """Play back `speed` times faster (pitch shifts with it)."""
        if speed == 1.0:
            return self
        return AudioStream(lambda: (self.remaining(), self.sample_rate * speed))

    def uniform(self, sample_rate: int, channels: int) -> "AudioStream":
        """Convert to the given sample rate and channel count."""
        def _load():
            samples = convert_channels(self.remaining(), channels)
            return resample(samples, self.sample_rate, sample_rate), sample_rate
        return AudioStream(_load)

    def amplified(self, gain: float) -> "AudioStream":
        return AudioStream(lambda: (self.remaining() * gain, self.sample_rate))


# ── Format conversion ────────────────────────────────────────────


def convert_channels(samples: np.ndarray, channels: int) -> np.ndarray:
    """Match a channel count.

    Surplus source channels are dropped; missing ones repeat the last
    source channel (mono -> stereo duplicates).
    """
    have = samples.shape[1]
    if have == channels:
        return samples
    if have > channels:
        return samples[:, :channels]
    extra = np.repeat(samples[:, -1:], channels - have, axis=1)
    return np.concatenate([samples, extra], axis=1)


def resample(samples: np.ndarray, from_rate: float, to_rate: float) -> np.ndarray:
    """Linear-interpolation resample of (frames, channels) samples."""
    if from_rate == to_rate or len(samples) == 0:
        return samples
    n_in = len(samples)
    n_out = int(n_in * to_rate / from_rate)
    src_pos = np.arange(n_out) * (from_rate / to_rate)
    src_idx = np.arange(n_in)
    out = np.empty((n_out, samples.shape[1]), dtype=np.float32)
    for ch in range(samples.shape[1]):
        out[:, ch] = np.interp(src_pos, src_idx, samples[:, ch])
    return out


# ── WAV output ───────────────────────────────────────────────────


def write_wav(
    path: str | Path,
    samples: np.ndarray,
    sample_rate: int,
    channels: int,
) -> None:
    """Write interleaved samples as a 32-bit float WAV.

    A file that fails mid-write is removed rather than left truncated.

    Raises:
        RenderIOError: If the file cannot be created or written.
    """
    path = Path(path)
    frames = np.asarray(samples, dtype=np.float32).reshape(-1, channels)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        sf.write(str(path), frames, sample_rate, subtype="FLOAT", format="WAV")
    except (OSError, RuntimeError) as e:
        if path.is_file():
            path.unlink()
        raise RenderIOError(path, str(e)) from e
