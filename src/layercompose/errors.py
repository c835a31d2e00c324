"""Error types raised by the compositor.

Every failure surfaced to callers derives from CompositionError and names
the offending path or frame index in its message. Manifest problems keep
raising ValueError / FileNotFoundError like the rest of the config layer.
"""

from pathlib import Path


class CompositionError(Exception):
    """Base class for rendering and decoding failures."""


class MissingFrameError(CompositionError):
    """A render that requires a frame did not receive one."""

    def __init__(self, index: int):
        super().__init__(f"Missing frame {index}")
        self.index = index


class DecodeError(CompositionError):
    """A media source could not be decoded or transcoded."""

    def __init__(self, path: str | Path, reason: str):
        super().__init__(f"Cannot decode {path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class RenderIOError(CompositionError, OSError):
    """An output directory or file could not be created or written."""

    def __init__(self, path: str | Path, reason: str):
        super().__init__(f"Cannot write {path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class FrameRenderError(CompositionError):
    """A frame failed during a parallel render pass.

    The original exception is chained as __cause__.
    """

    def __init__(self, index: int, failed: int, total: int):
        super().__init__(
            f"Frame {index} failed ({failed} of {total} frames failed)"
        )
        self.index = index
        self.failed = failed
        self.total = total
