"""Quality-gated full-resolution image acquisition from image-search results."""

__version__ = "0.1.0"
