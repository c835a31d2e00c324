"""Timeline manifest loader.

Parses a YAML manifest describing the canvas, the audio mix format and
the layer stack, resolves ${name} path variables, validates every layer
and effect, and builds a Timeline from it.

Manifest schema:
  paths:
    assets: "/data/assets"
  cache: "/tmp/layercompose-cache"   # video transcode cache (optional)
  canvas: {width: 640, height: 360, fps: 25, duration: 10}
  audio: {sample_rate: 44100, channels: 2}   # optional
  layers:
    - source: "${assets}/sample.m4v"   # media file ...
    - color: "#1A1A1A"                  # ... or a solid color plate
      size: [640, 360]                  # optional, defaults to canvas size
      offset: 0
      speed: 1.0
      duration: 3                       # optional override
      position: {px: [0, 0]}            # or {percent: [0.5, 0.5]}
      effects:
        - {type: scale_to_base, force: true}
        - {type: rotate_over_time, a0: 0, a1: 3.14159, uncropped: true}
"""

import re
from pathlib import Path

import yaml

from .effects import (
    AudioGain, MovePx, Rotate, RotateOverTime, Scale, ScaleOverTime, ScaleToBase,
)
from .layers import Layer, Timeline
from .sources import ColorLayer, FileLoader
from .transform import Transform


DEFAULT_CACHE_DIR = "/tmp/layercompose-cache"
DEFAULT_AUDIO = {"sample_rate": 44100, "channels": 2}

# Effect type -> (class, required params, optional params with defaults).
EFFECT_SPECS = {
    "scale_to_base": (ScaleToBase, (), {"force": False}),
    "scale": (Scale, ("x", "y"), {}),
    "scale_over_time": (ScaleOverTime, ("x0", "y0", "x1", "y1"), {}),
    "rotate": (Rotate, ("angle",), {"uncropped": False}),
    "rotate_over_time": (RotateOverTime, ("a0", "a1"), {"uncropped": False}),
    "move_px": (MovePx, ("x", "y"), {}),
    "audio_gain": (AudioGain, ("gain",), {}),
}

INT_PARAMS = {"move_px"}
BOOL_PARAMS = {"force", "uncropped"}

VALID_POSITION_KINDS = {"px", "percent"}


# ── Value helpers ────────────────────────────────────────────────


def parse_hex_color(hex_str: str) -> tuple[int, int, int]:
    """'#RRGGBB' or 'RRGGBB' -> (R, G, B)."""
    digits = hex_str.lstrip("#")
    if not re.fullmatch(r"[0-9a-fA-F]{6}", digits):
        raise ValueError(f"Invalid hex color: '{hex_str}'")
    return tuple(int(digits[i:i + 2], 16) for i in (0, 2, 4))


def resolve_path_vars(text: str, paths: dict[str, str]) -> str:
    """Substitute ${name} references from the paths table."""
    def _sub(match):
        name = match.group(1)
        if name not in paths:
            raise ValueError(f"Unknown path variable: ${{{name}}}")
        return str(paths[name])
    return re.sub(r"\$\{(\w+)\}", _sub, text)


def _positive(value, what: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{what} must be a number, got {value!r}")
    if number <= 0:
        raise ValueError(f"{what} must be > 0, got {value}")
    return number


# ── Effects and positions ────────────────────────────────────────


def build_effect(spec: dict, where: str = "effect"):
    """Build an Effect from a manifest dict like {type: scale, x: 2, y: 2}."""
    if not isinstance(spec, dict) or "type" not in spec:
        raise ValueError(f"{where}: missing required field 'type'")
    kind = spec["type"]
    if kind not in EFFECT_SPECS:
        raise ValueError(
            f"{where}: Unknown effect type '{kind}'. Valid: {sorted(EFFECT_SPECS)}"
        )
    cls, required, optional = EFFECT_SPECS[kind]

    unknown = set(spec) - {"type"} - set(required) - set(optional)
    if unknown:
        raise ValueError(f"{where} ({kind}): unknown fields {sorted(unknown)}")

    params = {}
    for name in required:
        if name not in spec:
            raise ValueError(f"{where} ({kind}): missing required field '{name}'")
        params[name] = spec[name]
    for name, default in optional.items():
        params[name] = spec.get(name, default)

    for name, value in params.items():
        if name in BOOL_PARAMS:
            if not isinstance(value, bool):
                raise ValueError(f"{where} ({kind}): '{name}' must be true/false")
        elif kind in INT_PARAMS:
            params[name] = int(value)
        else:
            params[name] = float(value)
    return cls(**params)


def build_transform(position: dict | None, where: str = "layer") -> Transform:
    """{px: [x, y]} or {percent: [x, y]} -> Transform. None -> origin."""
    if position is None:
        return Transform.ZERO
    if not isinstance(position, dict) or len(position) != 1:
        raise ValueError(f"{where}: position must have exactly one of px/percent")
    (kind, value), = position.items()
    if kind not in VALID_POSITION_KINDS:
        raise ValueError(f"{where}: unknown position kind '{kind}'")
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"{where}: position.{kind} must be [x, y]")
    if kind == "px":
        return Transform.px(int(value[0]), int(value[1]))
    return Transform.percent(float(value[0]), float(value[1]))


# ── Manifest loading ─────────────────────────────────────────────


def _validate_layer(layer: dict, i: int) -> None:
    where = f"Layer {i}"
    has_source = "source" in layer
    has_color = "color" in layer
    if has_source == has_color:
        raise ValueError(f"{where}: needs exactly one of 'source' or 'color'")
    if "offset" in layer and float(layer["offset"]) < 0:
        raise ValueError(f"{where}: offset must be >= 0, got {layer['offset']}")
    if "speed" in layer:
        _positive(layer["speed"], f"{where}: speed")
    if "duration" in layer:
        _positive(layer["duration"], f"{where}: duration")
    if has_color and "size" in layer:
        size = layer["size"]
        if not isinstance(size, (list, tuple)) or len(size) != 2:
            raise ValueError(f"{where}: size must be [width, height]")
    if not isinstance(layer.get("effects", []), list):
        raise ValueError(f"{where}: effects must be a list")


def load_manifest(manifest_path: str | Path) -> dict:
    """Load, validate, and normalize a timeline manifest.

    Processing pipeline:
      1. Parse YAML.
      2. Validate canvas values and audio format.
      3. Resolve ${path} variables in layer sources and the cache dir.
      4. Validate each layer, parse colors, build transforms and effects.

    Returns:
        Normalized config dict with canvas, audio, cache and layers.
        Each layer has position (Transform) and effects (Effect tuple).

    Raises:
        ValueError: Missing/invalid fields, unknown effect types.
        FileNotFoundError: Missing manifest file.
    """
    with open(manifest_path) as f:
        raw = yaml.safe_load(f) or {}

    if "canvas" not in raw:
        raise ValueError("Manifest: missing required 'canvas' section")
    canvas_raw = raw["canvas"]
    for key in ("width", "height", "fps", "duration"):
        if key not in canvas_raw:
            raise ValueError(f"Manifest: canvas is missing '{key}'")
    canvas = {
        "width": int(_positive(canvas_raw["width"], "canvas.width")),
        "height": int(_positive(canvas_raw["height"], "canvas.height")),
        "fps": _positive(canvas_raw["fps"], "canvas.fps"),
        "duration": _positive(canvas_raw["duration"], "canvas.duration"),
    }

    audio = dict(DEFAULT_AUDIO)
    audio.update(raw.get("audio") or {})
    audio["sample_rate"] = int(_positive(audio["sample_rate"], "audio.sample_rate"))
    audio["channels"] = int(_positive(audio["channels"], "audio.channels"))

    paths = raw.get("paths", {})
    cache = resolve_path_vars(str(raw.get("cache", DEFAULT_CACHE_DIR)), paths)

    layers = []
    for i, layer in enumerate(raw.get("layers") or []):
        _validate_layer(layer, i)
        where = f"Layer {i}"
        resolved = {
            "offset": float(layer.get("offset", 0.0)),
            "speed": float(layer.get("speed", 1.0)),
            "duration": float(layer["duration"]) if "duration" in layer else None,
            "position": build_transform(layer.get("position"), where),
            "effects": tuple(
                build_effect(e, f"{where} effect {j}")
                for j, e in enumerate(layer.get("effects", []))
            ),
        }
        if "source" in layer:
            resolved["source"] = resolve_path_vars(str(layer["source"]), paths)
        else:
            resolved["color"] = parse_hex_color(str(layer["color"]))
            size = layer.get("size", [canvas["width"], canvas["height"]])
            resolved["size"] = (int(size[0]), int(size[1]))
        layers.append(resolved)

    return {"canvas": canvas, "audio": audio, "cache": cache, "layers": layers}


def validate_paths(config: dict) -> None:
    """Check that every layer source exists on disk.

    Raises:
        FileNotFoundError: Listing every missing source.
    """
    missing = [
        layer["source"] for layer in config["layers"]
        if "source" in layer and not Path(layer["source"]).exists()
    ]
    if missing:
        raise FileNotFoundError(
            f"Missing {len(missing)} media file(s):\n  " + "\n  ".join(missing)
        )


def build_timeline(config: dict, loader: FileLoader | None = None) -> Timeline:
    """Decode every layer source and assemble the Timeline."""
    if loader is None:
        loader = FileLoader(config["cache"])
    canvas = config["canvas"]
    timeline = Timeline(canvas["width"], canvas["height"], canvas["fps"], canvas["duration"])

    for layer in config["layers"]:
        if "source" in layer:
            image_duration = layer["duration"] or loader.image_duration
            data = loader.load_file(layer["source"], image_duration=image_duration)
        else:
            data = ColorLayer(
                layer["color"], layer["size"],
                layer["duration"] or canvas["duration"],
            )
        timeline.add_layer(Layer(
            data=data,
            offset=layer["offset"],
            transform=layer["position"],
            speed=layer["speed"],
            effects=layer["effects"],
            duration=layer["duration"],
        ))
    return timeline
