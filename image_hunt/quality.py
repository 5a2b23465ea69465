"""Keep/discard decision for measured and declared image dimensions."""

from __future__ import annotations

from .config import QualityStandard


def admit(width: int, height: int, standard: QualityStandard) -> bool:
    """Return True when the dimensions satisfy every minimum in the standard."""
    megapixels = width * height / 1_000_000
    return (
        width >= standard.min_width
        and height >= standard.min_height
        and megapixels >= standard.min_megapixels
    )


def admit_declared(width: int, height: int, standard: QualityStandard) -> bool:
    """Advisory pre-download check on page-declared dimensions.

    Declared dimensions are often missing or wrong, so unknown (zero) sizes
    are always admitted and left to the measured check.
    """
    if width <= 0 or height <= 0:
        return True
    return admit(width, height, standard)


def describe(width: int, height: int) -> str:
    return f"{width}x{height} ({width * height / 1_000_000:.2f}MP)"
