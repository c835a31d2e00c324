"""layercompose — layered timeline compositing.

Stack video, still-image and audio layers on a fixed-size canvas, apply
per-layer time-varying effects (scale, rotate, move, gain), render the
frames in parallel to numbered PNGs, and mix the audio into one WAV.
Timelines can be built in code or declared in YAML manifests.
"""
