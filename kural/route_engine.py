"""Route engine that turns market listings into ranked single-hop trade routes.

Pipeline per run:
    stations -> landing pad filter -> Bernoulli sample -> current listings
    -> lazy candidate pairs -> per-pair MILP solve (thread pool) -> top-N

All listing data is fetched before the first solve; the solve phase does no I/O.
"""

import contextvars
import itertools
import logging
import threading
import time
from collections.abc import Iterable, Iterator, Mapping
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import numpy as np

from .config import Config
from .data_loader import ListingStore
from .exceptions import InvalidParameterError
from .freshness import index_by_station, resolve_current_listings
from .logging_config import run_context
from .models import ComputeParams, LandingPad, Listing, RouteCandidate, RouteSolution, Station
from .pairs import count_pairs, generate_pairs
from .ranker import TopKRanker
from .sampler import filter_by_landing_pad, make_rng, sample_stations
from .solver import Market, solve_route

logger = logging.getLogger(__name__)

Chunk = list[tuple[int, RouteCandidate]]


@dataclass
class ComputeResult:
    """Outcome of one compute_single run.

    An empty routes list with cancelled=False means no profitable route
    exists among the sampled stations.
    """

    routes: list[RouteSolution] = field(default_factory=list)
    stations_considered: int = 0
    stations_sampled: int = 0
    pairs_solved: int = 0
    solutions_found: int = 0
    cancelled: bool = False

    @property
    def found(self) -> bool:
        return bool(self.routes)


@dataclass(frozen=True)
class MarketOffer:
    """A station selling a commodity, as returned by find_cheapest."""

    station: Station
    listing: Listing


def _chunked(iterable: Iterable, size: int) -> Iterator[list]:
    iterator = iter(iterable)
    while True:
        chunk = list(itertools.islice(iterator, size))
        if not chunk:
            return
        yield chunk


class RouteEngine:
    """Computes optimal single-hop trade routes from a listing store."""

    def __init__(self, store: ListingStore, config: Optional[Config] = None):
        """Initialize engine.

        Args:
            store: Source of stations and current listings
            config: Application config (created from env vars if not provided)
        """
        self.store = store
        self.config = config or Config()

    @classmethod
    def from_config(cls, config: Config) -> "RouteEngine":
        """Build an engine with a pooled ListingStore from config."""
        store = ListingStore(
            db_connection_string=config.db_connection_string,
            pool_size=config.db_pool_size,
        )
        return cls(store, config)

    def compute_single(
        self,
        params: ComputeParams,
        rng: Optional[np.random.Generator] = None,
        cancel_event: Optional[threading.Event] = None,
        now: Optional[datetime] = None,
    ) -> ComputeResult:
        """Compute the most profitable single-hop routes.

        Args:
            params: Capital, capacity and filters for this run
            rng: Generator for station sampling (seeded from config if omitted)
            cancel_event: Set from another thread to stop between pair solves
            now: Reference time for listing expiry (defaults to current UTC time)

        Returns:
            ComputeResult with up to top_n routes, most profitable first

        Raises:
            InvalidParameterError: If params are invalid (before any fetch)
            DataFetchError: If the store cannot be read
        """
        params.validate()
        top_n = params.top_n or self.config.top_n

        with run_context() as run_id:
            started = time.monotonic()
            logger.info(
                f"Starting single-hop run {run_id}: capital={params.capital}, "
                f"capacity={params.capacity}, sample={params.sample_probability}, "
                f"max_distance={params.max_distance}, pad={params.landing_pad.value}"
            )

            stations = self.store.get_stations()
            eligible = [
                s
                for s in filter_by_landing_pad(stations, params.landing_pad)
                if not s.is_carrier
            ]
            logger.info(
                f"{len(eligible)} of {len(stations)} stations eligible "
                f"(pad={params.landing_pad.value}, carriers excluded)"
            )

            if rng is None:
                rng = make_rng(self.config.random_seed)
            sample = sample_stations(eligible, params.sample_probability, rng)

            raw_listings = self.store.get_all_current_listings(s.station_id for s in sample)
            current = resolve_current_listings(raw_listings, cutoff=params.listing_cutoff(now))
            markets = index_by_station(current)

            # Stations without a current market cannot be either end of a route
            sample = [s for s in sample if s.station_id in markets]
            logger.info(
                f"Solving up to {count_pairs(len(sample))} pairs over "
                f"{len(sample)} stations with markets"
            )

            pairs = generate_pairs(
                sample,
                max_distance=params.max_distance,
                origin_system=params.origin_system,
            )
            ranker, pairs_solved = self._solve_all(pairs, markets, params, top_n, cancel_event)
            cancelled = cancel_event is not None and cancel_event.is_set()

            routes = ranker.results()
            elapsed = time.monotonic() - started
            if cancelled:
                logger.warning(
                    f"Run cancelled after {pairs_solved} pairs; "
                    f"returning {len(routes)} complete routes"
                )
            elif not routes:
                logger.info(f"No profitable routes found ({pairs_solved} pairs, {elapsed:.1f}s)")
            else:
                logger.info(
                    f"Found {ranker.seen} profitable pairs of {pairs_solved} "
                    f"in {elapsed:.1f}s; best profit {routes[0].profit}"
                )

            return ComputeResult(
                routes=routes,
                stations_considered=len(eligible),
                stations_sampled=len(sample),
                pairs_solved=pairs_solved,
                solutions_found=ranker.seen,
                cancelled=cancelled,
            )

    def _solve_all(
        self,
        pairs: Iterable[RouteCandidate],
        markets: Mapping[int, Market],
        params: ComputeParams,
        top_n: int,
        cancel_event: Optional[threading.Event],
    ) -> tuple[TopKRanker, int]:
        """Fan chunks of pairs out to worker threads and merge their rankers.

        At most 2 x max_workers chunks are in flight, so the pair iterator is
        never materialized.
        """
        ranker = TopKRanker(top_n)
        pairs_solved = 0
        max_in_flight = self.config.max_workers * 2

        def collect(done: Iterable[Future]) -> None:
            nonlocal pairs_solved
            for future in done:
                local, solved = future.result()
                ranker.merge(local)
                pairs_solved += solved

        with ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="route-solver"
        ) as pool:
            pending: set[Future] = set()
            for chunk in _chunked(enumerate(pairs), self.config.pair_chunk_size):
                if cancel_event is not None and cancel_event.is_set():
                    break
                if len(pending) >= max_in_flight:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    collect(done)
                # Fresh context copy per task so log lines keep the run ID
                ctx = contextvars.copy_context()
                pending.add(
                    pool.submit(
                        ctx.run, self._solve_chunk, chunk, markets, params, top_n, cancel_event
                    )
                )
            done, _ = wait(pending)
            collect(done)

        return ranker, pairs_solved

    def _solve_chunk(
        self,
        chunk: Chunk,
        markets: Mapping[int, Market],
        params: ComputeParams,
        top_n: int,
        cancel_event: Optional[threading.Event],
    ) -> tuple[TopKRanker, int]:
        local = TopKRanker(top_n)
        solved = 0
        for index, candidate in chunk:
            if cancel_event is not None and cancel_event.is_set():
                break
            solution = solve_route(
                candidate,
                markets,
                params.capital,
                params.capacity,
                time_limit=self.config.solver_time_limit,
            )
            local.push(solution, order=index)
            solved += 1
        return local, solved

    def find_cheapest(
        self,
        commodity: str,
        landing_pad: LandingPad = LandingPad.ANY,
        max_age_days: Optional[int] = None,
        min_quantity: int = 0,
        limit: int = 10,
        now: Optional[datetime] = None,
    ) -> list[MarketOffer]:
        """Find the stations selling a commodity at the lowest price.

        Fleet carriers are never considered.

        Args:
            commodity: Commodity name (case-insensitive)
            landing_pad: Pad class the ship needs
            max_age_days: Ignore listings older than this many days
            min_quantity: Minimum stock on offer
            limit: Maximum offers returned

        Returns:
            Offers sorted by ascending buy price, then descending stock
        """
        if min_quantity < 0:
            raise InvalidParameterError(f"min_quantity must be non-negative, got {min_quantity}")
        if limit < 1:
            raise InvalidParameterError(f"limit must be at least 1, got {limit}")
        if max_age_days is not None and max_age_days < 0:
            raise InvalidParameterError(f"max_age_days must be non-negative, got {max_age_days}")

        cutoff = None
        if max_age_days is not None:
            cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=max_age_days)

        by_id = {s.station_id: s for s in self.store.get_stations()}
        listings = resolve_current_listings(
            self.store.get_commodity_listings(commodity), cutoff=cutoff
        )

        offers = []
        for listing in listings:
            station = by_id.get(listing.station_id)
            if station is None or station.is_carrier:
                continue
            if not landing_pad.accepts(station.max_landing_pad):
                continue
            if listing.buy_price <= 0 or listing.stock < min_quantity:
                continue
            offers.append(MarketOffer(station=station, listing=listing))

        offers.sort(key=lambda o: (o.listing.buy_price, -o.listing.stock, o.station.station_id))
        logger.info(f"Found {len(offers)} offers for {commodity!r}")
        return offers[:limit]
