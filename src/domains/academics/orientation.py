# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Orientation bands derived from a term average.

``classify`` is the only place the band thresholds exist. Aggregation,
class statistics, term overviews and rendered documents all call it.
"""

from enum import Enum


class OrientationBand(str, Enum):
    """Performance band of a student average, best first."""

    EXCELLENT = "Excellent"
    TRES_BIEN = "Très bien"
    BIEN = "Bien"
    PASSABLE = "Passable"
    INSUFFISANT = "Insuffisant"

    @property
    def rank(self) -> int:
        """Position of the band, 0 being the best."""
        return _BAND_ORDER.index(self)


# Lower bound (inclusive) of each band, evaluated top-down
_THRESHOLDS: tuple[tuple[float, OrientationBand], ...] = (
    (16.0, OrientationBand.EXCELLENT),
    (14.0, OrientationBand.TRES_BIEN),
    (12.0, OrientationBand.BIEN),
    (10.0, OrientationBand.PASSABLE),
)

_BAND_ORDER: tuple[OrientationBand, ...] = tuple(OrientationBand)


def classify(average: float) -> OrientationBand:
    """Map a numeric average on the 0-20 scale to its orientation band.

    The first threshold the average reaches wins, so a value sitting exactly
    on a boundary belongs to the higher band (16.0 is Excellent).

    Args:
        average: Mean score.

    Returns:
        The matching OrientationBand.
    """
    for lower_bound, band in _THRESHOLDS:
        if average >= lower_bound:
            return band
    return OrientationBand.INSUFFISANT


def classify_optional(average: float | None) -> OrientationBand | None:
    """Classify an average that may be undefined (no grades)."""
    if average is None:
        return None
    return classify(average)


def ordered_bands() -> tuple[OrientationBand, ...]:
    """All bands from best to worst."""
    return _BAND_ORDER
