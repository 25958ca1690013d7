"""Distortr - upload an image, get back a thoroughly mangled JPEG."""

__version__ = "0.1.0"

__all__ = ["__version__"]
