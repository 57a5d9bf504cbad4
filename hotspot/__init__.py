"""Hot-news crawler: configurable HTML extraction, keyword matching and weighting."""

__version__ = "0.1.0"
