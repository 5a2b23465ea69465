"""Exception types raised along the acquisition pipeline."""

from __future__ import annotations


class HuntError(Exception):
    """Base class for every error raised by image_hunt."""


class ExtractionParseError(HuntError):
    """A structured-data entry on the results page could not be parsed."""


class InvalidUrl(HuntError):
    """A raw URL string could not be turned into a usable absolute URL."""


class ResolutionFailure(HuntError):
    """A single resolution strategy produced no usable image URL."""


class NetworkFailure(HuntError):
    """Timeout or transport error during a check, download, or navigation."""


class NavigationError(NetworkFailure):
    """The browser could not load a page within its timeout."""


class DecodeError(HuntError):
    """A downloaded file could not be read as an image."""
