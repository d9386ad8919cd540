"""Station sampling.

The galaxy holds tens of thousands of stations and the pair count grows
quadratically, so each run works on a Bernoulli sample of the stations.
"""

import logging
from collections.abc import Iterable, Sequence
from typing import Optional

import numpy as np

from .exceptions import InvalidParameterError
from .models import LandingPad, Station

logger = logging.getLogger(__name__)


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Create the generator handle passed to sample_stations.

    Args:
        seed: Fixed seed for reproducible samples, or None for fresh entropy
    """
    return np.random.default_rng(seed)


def sample_stations(
    stations: Sequence[Station],
    probability: float,
    rng: Optional[np.random.Generator] = None,
) -> list[Station]:
    """Include each station independently with the given probability.

    The result size is binomial (mean p*N, variance p*(1-p)*N), not fixed.
    A probability of 1 returns every station without touching the generator.

    Args:
        stations: Candidate stations
        probability: Inclusion probability in (0, 1]
        rng: Generator to draw from; a fresh unseeded one if omitted

    Returns:
        Sampled stations in their original order

    Raises:
        InvalidParameterError: If probability is outside (0, 1]
    """
    if not 0.0 < probability <= 1.0:
        raise InvalidParameterError(f"Illegal sample probability: {probability}")

    if probability == 1.0:
        return list(stations)

    if rng is None:
        rng = make_rng()

    keep = rng.random(len(stations)) < probability
    sample = [station for station, kept in zip(stations, keep) if kept]

    logger.info(
        f"Sampled {len(sample)} of {len(stations)} stations "
        f"(p={probability}, expected {probability * len(stations):.0f})"
    )
    return sample


def filter_by_landing_pad(
    stations: Iterable[Station], pad: LandingPad
) -> list[Station]:
    """Keep stations whose largest pad fits a ship needing `pad`."""
    if pad is LandingPad.ANY:
        return list(stations)
    return [s for s in stations if pad.accepts(s.max_landing_pad)]
