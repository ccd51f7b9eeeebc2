"""GeoPoll: location-gated prediction polls with proportional stake settlement."""

__version__ = "0.1.0"
__author__ = "GeoPoll Team"

__all__ = ["__version__", "__author__"]
