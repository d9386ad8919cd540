"""Test cases for domain models."""

import math
from datetime import timedelta

import pytest

from kural.exceptions import InvalidParameterError
from kural.models import ComputeParams, LandingPad, RouteCandidate, RouteSolution, TradeSelection


class TestLandingPad:
    """Test cases for landing pad compatibility."""

    @pytest.mark.parametrize(
        "required,station,expected",
        [
            (LandingPad.ANY, LandingPad.ANY, True),
            (LandingPad.ANY, LandingPad.SMALL, True),
            (LandingPad.SMALL, LandingPad.SMALL, True),
            (LandingPad.MEDIUM, LandingPad.SMALL, False),
            (LandingPad.MEDIUM, LandingPad.LARGE, True),
            (LandingPad.LARGE, LandingPad.MEDIUM, False),
            (LandingPad.LARGE, LandingPad.ANY, False),
        ],
    )
    def test_accepts(self, required, station, expected):
        assert required.accepts(station) is expected

    def test_from_string(self):
        assert LandingPad("large") is LandingPad.LARGE


class TestComputeParams:
    """Test cases for ComputeParams validation."""

    def test_valid_params(self):
        ComputeParams(capital=1000, capacity=100).validate()

    def test_probability_one_is_valid(self):
        ComputeParams(capital=1000, capacity=100, sample_probability=1.0).validate()

    @pytest.mark.parametrize(
        "kwargs,fragment",
        [
            ({"capital": 0}, "capital"),
            ({"capital": 10.5}, "capital"),
            ({"capital": True}, "capital"),
            ({"capacity": -1}, "capacity"),
            ({"sample_probability": 0.0}, "sample probability"),
            ({"sample_probability": -0.1}, "sample probability"),
            ({"sample_probability": 1.0001}, "sample probability"),
            ({"max_distance": -0.5}, "max_distance"),
            ({"max_distance": math.nan}, "max_distance"),
            ({"max_distance": math.inf}, "max_distance"),
            ({"max_distance": "far"}, "max_distance"),
            ({"max_age_days": -1}, "max_age_days"),
            ({"top_n": 0}, "top_n"),
            ({"top_n": 2.5}, "top_n"),
            ({"sample_probability": "0.5"}, "sample probability"),
            ({"landing_pad": "large"}, "landing_pad"),
        ],
    )
    def test_invalid(self, kwargs, fragment):
        params = ComputeParams(**{"capital": 1000, "capacity": 100, **kwargs})

        with pytest.raises(InvalidParameterError) as exc_info:
            params.validate()

        assert fragment in str(exc_info.value)

    def test_listing_cutoff(self, now):
        params = ComputeParams(capital=1, capacity=1, max_age_days=2)
        assert params.listing_cutoff(now) == now - timedelta(days=2)

    def test_no_cutoff_without_max_age(self, now):
        assert ComputeParams(capital=1, capacity=1).listing_cutoff(now) is None


class TestRouteSolution:
    """Test cases for derived route totals."""

    def test_totals(self, station_factory, now):
        candidate = RouteCandidate(origin=station_factory(1), destination=station_factory(2))
        solution = RouteSolution(
            candidate=candidate,
            selections=(
                TradeSelection("Gold", 10, 9000, 10000, now, now),
                TradeSelection("Silver", 5, 4500, 5200, now, now),
            ),
        )

        assert solution.origin.station_id == 1
        assert solution.destination.station_id == 2
        assert solution.total_quantity == 15
        assert solution.total_cost == 90_000 + 22_500
        assert solution.profit == 10_000 + 3_500

    def test_selection_age_uses_older_listing(self, now):
        selection = TradeSelection(
            "Gold",
            1,
            10,
            20,
            bought_listed_at=now - timedelta(hours=1),
            sold_listed_at=now - timedelta(hours=30),
        )

        assert selection.age(now) == timedelta(hours=30)
        assert selection.margin == 10
