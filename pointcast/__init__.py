"""Channel point reward effects: models, asset registry, playback queue and overlay server."""

__version__ = "2.1.1"