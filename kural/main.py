"""Main entry point for the route engine.

Runs one single-hop computation using route parameters from the environment
and emits each route as a structured log event.
"""

import sys
from os import environ

from dotenv import load_dotenv

from .config import Config
from .exceptions import KuralError
from .logging_config import configure_logging, get_logger
from .models import ComputeParams, LandingPad
from .route_engine import RouteEngine

logger = get_logger(__name__)


def params_from_env(cfg: Config) -> ComputeParams:
    """Build ComputeParams from ROUTE_* environment variables.

    Raises:
        KuralError: If a value cannot be parsed
    """
    max_distance = environ.get("ROUTE_MAX_DISTANCE", "")
    max_age_days = environ.get("ROUTE_MAX_AGE_DAYS", "")
    try:
        return ComputeParams(
            capital=int(environ.get("ROUTE_CAPITAL", "0")),
            capacity=int(environ.get("ROUTE_CAPACITY", "0")),
            sample_probability=float(
                environ.get("ROUTE_SAMPLE", str(cfg.default_sample_probability))
            ),
            max_distance=float(max_distance) if max_distance else None,
            landing_pad=LandingPad(environ.get("ROUTE_LANDING_PAD", "any").lower()),
            origin_system=environ.get("ROUTE_ORIGIN_SYSTEM") or None,
            max_age_days=int(max_age_days) if max_age_days else None,
        )
    except ValueError as e:
        raise KuralError(f"Invalid ROUTE_* environment value: {e}") from e


def main() -> int:
    """Run one route computation. Returns the process exit status."""
    # Load .env before reading config so it can supply every variable
    load_dotenv()
    cfg = Config()
    configure_logging(cfg)

    errors = cfg.validate()
    if errors:
        logger.error("configuration_errors", errors=errors)
        return 1

    engine = None
    try:
        params = params_from_env(cfg)
        params.validate()
        engine = RouteEngine.from_config(cfg)
        result = engine.compute_single(params)
    except KuralError as e:
        logger.error("run_failed", error=str(e))
        return 1
    finally:
        if engine is not None:
            engine.store.dispose()

    if not result.found:
        logger.info(
            "no_profitable_routes",
            pairs_solved=result.pairs_solved,
            stations_sampled=result.stations_sampled,
        )
        return 0

    for rank, route in enumerate(result.routes, start=1):
        logger.info(
            "route",
            rank=rank,
            origin=route.origin.name,
            origin_system=route.origin.system_name,
            destination=route.destination.name,
            destination_system=route.destination.system_name,
            distance=round(route.candidate.distance, 2),
            cost=route.total_cost,
            profit=route.profit,
            cargo=[
                {
                    "commodity": s.commodity,
                    "quantity": s.quantity,
                    "age_hours": round(s.age().total_seconds() / 3600, 1),
                }
                for s in route.selections
            ],
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
