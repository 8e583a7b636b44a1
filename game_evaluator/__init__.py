"""Game release evaluation pipeline."""

__version__ = "1.0.0"
