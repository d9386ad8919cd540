"""Candidate pair generation.

Pairs are produced lazily: with a few hundred sampled stations the unfiltered
pair count is already in the hundreds of thousands.
"""

from collections.abc import Iterator, Sequence
from typing import Optional

import numpy as np

from .models import RouteCandidate, Station


def count_pairs(n: int) -> int:
    """Number of ordered pairs without a distance filter."""
    return n * (n - 1) if n > 1 else 0


def generate_pairs(
    stations: Sequence[Station],
    max_distance: Optional[float] = None,
    origin_system: Optional[str] = None,
) -> Iterator[RouteCandidate]:
    """Yield ordered (origin, destination) pairs of distinct stations.

    Args:
        stations: Sampled stations
        max_distance: If set, skip pairs further apart than this (ly)
        origin_system: If set, only stations in this system are origins

    Yields:
        RouteCandidate for each qualifying pair, origin-major order
    """
    if len(stations) < 2:
        return

    coords = None
    if max_distance is not None:
        coords = np.array([s.coords for s in stations], dtype=float)

    wanted_system = origin_system.casefold() if origin_system else None

    for i, origin in enumerate(stations):
        if wanted_system is not None and origin.system_name.casefold() != wanted_system:
            continue

        if coords is not None:
            # One vectorised distance row per origin keeps memory at O(n)
            distances = np.linalg.norm(coords - coords[i], axis=1)
            within = distances <= max_distance
        else:
            within = None

        for j, destination in enumerate(stations):
            if j == i or destination.station_id == origin.station_id:
                continue
            if within is not None and not within[j]:
                continue
            yield RouteCandidate(origin=origin, destination=destination)
