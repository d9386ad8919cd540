"""Tests for station sampling and landing pad filtering."""

import math
from unittest.mock import MagicMock

import pytest

from kural.exceptions import InvalidParameterError
from kural.models import LandingPad
from kural.sampler import filter_by_landing_pad, make_rng, sample_stations


@pytest.fixture
def galaxy(station_factory):
    """40,000 stations, roughly the size of the populated galaxy."""
    return [station_factory(i, x=float(i)) for i in range(40_000)]


class TestSampleStations:
    """Test cases for sample_stations."""

    def test_full_probability_returns_everything(self, station_factory):
        """p=1 keeps every station in order and never consults the generator."""
        stations = [station_factory(i) for i in range(10)]
        rng = MagicMock()

        result = sample_stations(stations, 1.0, rng)

        assert result == stations
        rng.random.assert_not_called()

    @pytest.mark.parametrize("probability", [0.0, -0.5, 1.01, 2.0, math.nan])
    def test_invalid_probability_rejected(self, station_factory, probability):
        with pytest.raises(InvalidParameterError):
            sample_stations([station_factory(1)], probability, make_rng(1))

    def test_sample_size_is_binomial(self, galaxy):
        """p=0.01 over 40k stations lands near 400, within binomial variance."""
        n, p = len(galaxy), 0.01
        sigma = math.sqrt(n * p * (1 - p))

        sizes = [len(sample_stations(galaxy, p, make_rng(seed))) for seed in range(8)]

        for size in sizes:
            assert abs(size - n * p) < 5 * sigma
        # Size is random, not pinned to exactly p*N
        assert len(set(sizes)) > 1

    def test_same_seed_same_sample(self, galaxy):
        """An explicitly seeded generator makes sampling reproducible."""
        first = sample_stations(galaxy, 0.05, make_rng(1234))
        second = sample_stations(galaxy, 0.05, make_rng(1234))

        assert [s.station_id for s in first] == [s.station_id for s in second]

    def test_sample_is_subset_in_original_order(self, galaxy):
        sample = sample_stations(galaxy, 0.02, make_rng(7))
        ids = [s.station_id for s in sample]

        assert ids == sorted(ids)
        assert set(ids) <= {s.station_id for s in galaxy}

    def test_empty_station_list(self):
        assert sample_stations([], 0.5, make_rng(0)) == []


class TestFilterByLandingPad:
    """Test cases for filter_by_landing_pad."""

    @pytest.fixture
    def stations(self, station_factory):
        return [
            station_factory(1, pad=LandingPad.SMALL),
            station_factory(2, pad=LandingPad.MEDIUM),
            station_factory(3, pad=LandingPad.LARGE),
            station_factory(4, pad=LandingPad.ANY),  # pad size unknown
        ]

    @pytest.mark.parametrize(
        "pad,expected",
        [
            (LandingPad.ANY, [1, 2, 3, 4]),
            (LandingPad.SMALL, [1, 2, 3]),
            (LandingPad.MEDIUM, [2, 3]),
            (LandingPad.LARGE, [3]),
        ],
    )
    def test_pad_filter(self, stations, pad, expected):
        result = filter_by_landing_pad(stations, pad)
        assert [s.station_id for s in result] == expected
