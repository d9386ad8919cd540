"""Listing store: fetches stations and current market listings from the database."""

import logging
from collections.abc import Iterable
from typing import Optional

import pandas as pd
from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import QueuePool

from .exceptions import DataFetchError
from .freshness import frame_to_listings
from .models import LandingPad, Listing, Station
from .schema import listings, stations

logger = logging.getLogger(__name__)

# Shorthand aliases for table references used in query building
s = stations
li = listings


def _current_listings_query(
    station_ids: Optional[list[int]] = None, commodity: Optional[str] = None
):
    """Newest listing per (station, commodity).

    row_number() over (partition by station_id, name order by listed_at desc, id)
    keeps exactly one row per group; ties on listed_at go to the lowest id.
    """
    conditions = []
    if station_ids is not None:
        conditions.append(li.c.station_id.in_(station_ids))
    if commodity is not None:
        conditions.append(func.lower(li.c.name) == commodity.lower())

    rn = func.row_number().over(
        partition_by=(li.c.station_id, li.c.name),
        order_by=(li.c.listed_at.desc(), li.c.id.asc()),
    ).label("rn")

    ranked = select(
        li.c.id.label("listing_id"),
        li.c.station_id,
        li.c.name.label("commodity"),
        li.c.buy_price,
        li.c.sell_price,
        li.c.demand,
        li.c.stock,
        li.c.listed_at,
        li.c.mean_price,
        li.c.demand_bracket,
        li.c.stock_bracket,
        rn,
    )
    if conditions:
        ranked = ranked.where(*conditions)
    ranked = ranked.subquery("ranked")

    return (
        select(*[c for c in ranked.c if c.name != "rn"])
        .where(ranked.c.rn == 1)
        .order_by(ranked.c.station_id, ranked.c.commodity)
    )


def _parse_pad(value: Optional[str]) -> LandingPad:
    # Unknown pad size only passes the ANY filter
    if not isinstance(value, str) or not value:
        return LandingPad.ANY
    try:
        return LandingPad(str(value).lower())
    except ValueError:
        logger.warning(f"Unknown landing pad value {value!r}")
        return LandingPad.ANY


class ListingStore:
    """Reads stations and deduplicated listings from PostgreSQL (or any SQLAlchemy URL).

    Every listing method honours the retrieval contract: one row per
    (station, commodity), the one with the newest listed_at.
    """

    def __init__(
        self,
        db_connection_string: str = "",
        pool_size: int = 5,
        engine: Optional[Engine] = None,
    ):
        """Initialize database connection.

        Args:
            db_connection_string: Database URL (ignored when engine is given)
            pool_size: Connection pool size
            engine: Pre-built SQLAlchemy engine
        """
        if engine is None:
            try:
                engine = create_engine(
                    db_connection_string,
                    poolclass=QueuePool,
                    pool_size=pool_size,
                    max_overflow=3,
                    pool_pre_ping=True,
                )
            except SQLAlchemyError as e:
                logger.error(f"Invalid database configuration: {e}")
                raise DataFetchError("Failed to create database engine") from e
        self.engine = engine

    def _read(self, query, what: str) -> pd.DataFrame:
        try:
            with self.engine.connect() as conn:
                return pd.read_sql(query, conn)
        except (SQLAlchemyError, pd.errors.DatabaseError) as e:
            # pandas 3 re-raises driver errors as its own DatabaseError
            logger.error(f"Error fetching {what}: {e}")
            raise DataFetchError(f"Failed to fetch {what}") from e

    def get_stations(self) -> list[Station]:
        """Fetch every station that has coordinates.

        Returns:
            Stations ordered by id
        """
        query = (
            select(
                s.c.id,
                s.c.name,
                s.c.system_name,
                s.c.x,
                s.c.y,
                s.c.z,
                s.c.max_landing_pad,
                s.c.distance_to_arrival,
                s.c.is_carrier,
            )
            .where(s.c.x.is_not(None), s.c.y.is_not(None), s.c.z.is_not(None))
            .order_by(s.c.id)
        )
        df = self._read(query, "stations")

        result = []
        for row in df.itertuples(index=False):
            distance = row.distance_to_arrival
            result.append(
                Station(
                    station_id=int(row.id),
                    name=str(row.name),
                    system_name="" if pd.isna(row.system_name) else str(row.system_name),
                    x=float(row.x),
                    y=float(row.y),
                    z=float(row.z),
                    max_landing_pad=_parse_pad(row.max_landing_pad),
                    distance_to_arrival=None if pd.isna(distance) else float(distance),
                    is_carrier=bool(row.is_carrier),
                )
            )
        logger.info(f"Loaded {len(result)} stations")
        return result

    def get_current_listings(self, station_id: int) -> list[Listing]:
        """Fetch the newest listing per commodity at one station."""
        return self.get_all_current_listings([station_id])

    def get_all_current_listings(self, station_ids: Iterable[int]) -> list[Listing]:
        """Fetch the newest listing per commodity for many stations at once.

        Args:
            station_ids: Stations to load markets for

        Returns:
            Listings ordered by station_id, then commodity
        """
        ids = sorted(set(station_ids))
        if not ids:
            return []
        df = self._read(
            _current_listings_query(station_ids=ids),
            f"listings for {len(ids)} stations",
        )
        result = self._to_listings(df)
        logger.info(f"Loaded {len(result)} current listings for {len(ids)} stations")
        return result

    def get_commodity_listings(self, commodity: str) -> list[Listing]:
        """Fetch the newest listing of one commodity at every station (case-insensitive)."""
        df = self._read(
            _current_listings_query(commodity=commodity),
            f"listings for commodity {commodity!r}",
        )
        return self._to_listings(df)

    @staticmethod
    def _to_listings(df: pd.DataFrame) -> list[Listing]:
        if df.empty:
            return []
        df = df.copy()
        df["listed_at"] = pd.to_datetime(df["listed_at"], utc=True)
        for col in ["mean_price", "demand_bracket", "stock_bracket"]:
            df[col] = df[col].fillna(0)
        return frame_to_listings(df)

    def dispose(self) -> None:
        """Close pooled connections."""
        self.engine.dispose()
