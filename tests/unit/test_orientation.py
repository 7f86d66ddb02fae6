# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for orientation bands."""

import pytest

from src.domains.academics.orientation import (
    OrientationBand,
    classify,
    classify_optional,
    ordered_bands,
)


class TestClassify:
    """Tests for classify."""

    @pytest.mark.parametrize(
        "average,expected",
        [
            (20.0, OrientationBand.EXCELLENT),
            (16.0, OrientationBand.EXCELLENT),
            (15.99, OrientationBand.TRES_BIEN),
            (14.0, OrientationBand.TRES_BIEN),
            (13.999, OrientationBand.BIEN),
            (12.0, OrientationBand.BIEN),
            (10.0, OrientationBand.PASSABLE),
            (9.99, OrientationBand.INSUFFISANT),
            (0.0, OrientationBand.INSUFFISANT),
        ],
    )
    def test_band_boundaries(self, average: float, expected: OrientationBand) -> None:
        """Test that a value on a boundary belongs to the higher band."""
        assert classify(average) is expected

    def test_band_labels(self) -> None:
        """Test the printed labels of the bands."""
        assert [band.value for band in ordered_bands()] == [
            "Excellent",
            "Très bien",
            "Bien",
            "Passable",
            "Insuffisant",
        ]

    def test_rank_follows_order(self) -> None:
        """Test that rank 0 is the best band."""
        assert OrientationBand.EXCELLENT.rank == 0
        assert OrientationBand.INSUFFISANT.rank == 4


class TestClassifyOptional:
    """Tests for classify_optional."""

    def test_none_has_no_band(self) -> None:
        assert classify_optional(None) is None

    def test_value_is_classified(self) -> None:
        assert classify_optional(15.17) is OrientationBand.TRES_BIEN
