"""Domain models for stations, listings and solved trade routes."""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from .exceptions import InvalidParameterError


class LandingPad(str, Enum):
    """Landing pad classes. ANY disables pad filtering."""

    ANY = "any"
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"

    @property
    def rank(self) -> int:
        return _PAD_RANKS[self]

    def accepts(self, station_pad: "LandingPad") -> bool:
        """True if a ship needing this pad class can dock at station_pad."""
        return station_pad.rank >= self.rank


_PAD_RANKS = {
    LandingPad.ANY: 0,
    LandingPad.SMALL: 1,
    LandingPad.MEDIUM: 2,
    LandingPad.LARGE: 3,
}


@dataclass(frozen=True)
class Station:
    """A station with a market, located in galactic coordinates (ly)."""

    station_id: int
    name: str
    system_name: str
    x: float
    y: float
    z: float
    max_landing_pad: LandingPad = LandingPad.LARGE
    distance_to_arrival: Optional[float] = None
    is_carrier: bool = False

    @property
    def coords(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def distance_to(self, other: "Station") -> float:
        return math.dist(self.coords, other.coords)


@dataclass(frozen=True)
class Listing:
    """One observation of a commodity at a station's market.

    The listing table is append-only; the freshness resolver picks the
    current one per (station_id, commodity).
    """

    listing_id: int
    station_id: int
    commodity: str
    buy_price: int
    sell_price: int
    demand: int
    stock: int
    listed_at: datetime
    mean_price: int = 0
    demand_bracket: int = 0
    stock_bracket: int = 0


@dataclass(frozen=True)
class RouteCandidate:
    """Origin/destination skeleton before commodities are chosen."""

    origin: Station
    destination: Station

    def __post_init__(self) -> None:
        if self.origin.station_id == self.destination.station_id:
            raise ValueError(
                f"Route origin and destination are both station {self.origin.station_id}"
            )

    @property
    def distance(self) -> float:
        return self.origin.distance_to(self.destination)


@dataclass(frozen=True)
class TradeSelection:
    """Quantity of one commodity bought at the origin and sold at the destination."""

    commodity: str
    quantity: int
    buy_price: int
    sell_price: int
    bought_listed_at: datetime
    sold_listed_at: datetime

    @property
    def margin(self) -> int:
        return self.sell_price - self.buy_price

    @property
    def cost(self) -> int:
        return self.quantity * self.buy_price

    @property
    def profit(self) -> int:
        return self.quantity * self.margin

    def age(self, now: Optional[datetime] = None) -> timedelta:
        """Age of the older of the two listings backing this selection."""
        now = now or datetime.now(timezone.utc)
        return now - min(self.bought_listed_at, self.sold_listed_at)


@dataclass(frozen=True)
class RouteSolution:
    """Optimal commodity selection for one route candidate.

    Cost, quantity and profit are derived from the selections.
    """

    candidate: RouteCandidate
    selections: tuple[TradeSelection, ...]

    @property
    def origin(self) -> Station:
        return self.candidate.origin

    @property
    def destination(self) -> Station:
        return self.candidate.destination

    @property
    def total_cost(self) -> int:
        return sum(s.cost for s in self.selections)

    @property
    def total_quantity(self) -> int:
        return sum(s.quantity for s in self.selections)

    @property
    def profit(self) -> int:
        return sum(s.profit for s in self.selections)


@dataclass(frozen=True)
class ComputeParams:
    """Caller-supplied parameters for one single-hop computation."""

    capital: int
    capacity: int
    sample_probability: float = 0.01
    max_distance: Optional[float] = None
    landing_pad: LandingPad = LandingPad.ANY
    origin_system: Optional[str] = None
    max_age_days: Optional[int] = None
    top_n: Optional[int] = None

    def validate(self) -> None:
        """Reject invalid parameters before any data is fetched.

        Raises:
            InvalidParameterError: On the first invalid field
        """
        if not _is_int(self.capital) or self.capital <= 0:
            raise InvalidParameterError(
                f"capital must be a positive integer, got {self.capital!r}"
            )
        if not _is_int(self.capacity) or self.capacity <= 0:
            raise InvalidParameterError(
                f"capacity must be a positive integer, got {self.capacity!r}"
            )
        if not _is_real(self.sample_probability) or not 0.0 < self.sample_probability <= 1.0:
            raise InvalidParameterError(
                f"Illegal sample probability: {self.sample_probability}"
            )
        # None is the unlimited distance; NaN and infinity are rejected
        if self.max_distance is not None and (
            not _is_real(self.max_distance)
            or not math.isfinite(self.max_distance)
            or self.max_distance < 0
        ):
            raise InvalidParameterError(
                f"max_distance must be a finite non-negative number, got {self.max_distance!r}"
            )
        if self.max_age_days is not None and (
            not _is_int(self.max_age_days) or self.max_age_days < 0
        ):
            raise InvalidParameterError(
                f"max_age_days must be a non-negative integer, got {self.max_age_days!r}"
            )
        if self.top_n is not None and (not _is_int(self.top_n) or self.top_n < 1):
            raise InvalidParameterError(
                f"top_n must be an integer of at least 1, got {self.top_n!r}"
            )
        if not isinstance(self.landing_pad, LandingPad):
            raise InvalidParameterError(
                f"landing_pad must be a LandingPad, got {self.landing_pad!r}"
            )

    def listing_cutoff(self, now: Optional[datetime] = None) -> Optional[datetime]:
        """Oldest listing timestamp still considered, or None for no expiry."""
        if self.max_age_days is None:
            return None
        now = now or datetime.now(timezone.utc)
        return now - timedelta(days=self.max_age_days)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_real(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
