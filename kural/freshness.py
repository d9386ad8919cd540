"""Listing freshness resolution.

The listing table is append-only: every market update inserts new rows.
Only the most recent row per (station, commodity) describes the market as
it is now, so everything downstream works on the resolved projection.
"""

import logging
from collections.abc import Iterable
from dataclasses import astuple, fields
from datetime import datetime
from typing import Optional

import pandas as pd

from .models import Listing

logger = logging.getLogger(__name__)

LISTING_COLUMNS = [f.name for f in fields(Listing)]


def listings_to_frame(listings: Iterable[Listing]) -> pd.DataFrame:
    """Build a DataFrame with one column per Listing field."""
    return pd.DataFrame([astuple(listing) for listing in listings], columns=LISTING_COLUMNS)


def frame_to_listings(df: pd.DataFrame) -> list[Listing]:
    """Convert rows with Listing columns back into Listing objects."""
    listings = []
    for row in df[LISTING_COLUMNS].itertuples(index=False):
        listed_at = row.listed_at
        if isinstance(listed_at, pd.Timestamp):
            listed_at = listed_at.to_pydatetime()
        listings.append(
            Listing(
                listing_id=int(row.listing_id),
                station_id=int(row.station_id),
                commodity=str(row.commodity),
                buy_price=int(row.buy_price),
                sell_price=int(row.sell_price),
                demand=int(row.demand),
                stock=int(row.stock),
                listed_at=listed_at,
                mean_price=int(row.mean_price),
                demand_bracket=int(row.demand_bracket),
                stock_bracket=int(row.stock_bracket),
            )
        )
    return listings


def latest_per_group(df: pd.DataFrame) -> pd.DataFrame:
    """Keep the newest row per (station_id, commodity).

    Ties on listed_at go to the lowest listing_id.
    """
    if df.empty:
        return df
    ordered = df.sort_values(
        ["station_id", "commodity", "listed_at", "listing_id"],
        ascending=[True, True, False, True],
        kind="mergesort",
    )
    return ordered.drop_duplicates(subset=["station_id", "commodity"], keep="first")


def resolve_current_listings(
    listings: Iterable[Listing], cutoff: Optional[datetime] = None
) -> list[Listing]:
    """Collapse listing history to one current listing per station/commodity.

    Args:
        listings: Raw listing history, in any order
        cutoff: If set, current listings observed before this time are dropped

    Returns:
        Current listings sorted by station_id, then commodity
    """
    df = listings_to_frame(listings)
    if df.empty:
        return []

    current = latest_per_group(df)
    if cutoff is not None:
        current = current[current["listed_at"] >= cutoff]

    dropped = len(df) - len(current)
    if dropped:
        logger.debug(f"Freshness resolver dropped {dropped} of {len(df)} listings")

    return frame_to_listings(current)


def index_by_station(listings: Iterable[Listing]) -> dict[int, dict[str, Listing]]:
    """Map station_id -> commodity -> listing.

    Expects already-resolved listings; a duplicate (station, commodity) is a
    caller bug and raises ValueError.
    """
    markets: dict[int, dict[str, Listing]] = {}
    for listing in listings:
        market = markets.setdefault(listing.station_id, {})
        if listing.commodity in market:
            raise ValueError(
                f"Duplicate current listing for station {listing.station_id}, "
                f"commodity {listing.commodity!r}"
            )
        market[listing.commodity] = listing
    return markets
