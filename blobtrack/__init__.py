"""Foreground blob detection, description, trajectory-aware tracking and KLT point tracking."""

__version__ = "0.1.0"

__all__ = [
    "geometry",
    "draw",
    "distance",
    "blob_feature",
    "blob_detector",
    "tracking",
    "klt",
]