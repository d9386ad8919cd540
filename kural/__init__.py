"""Kural - single-hop trade route calculator for Elite: Dangerous markets."""

__version__ = "0.1.0"

from .models import ComputeParams, LandingPad, RouteSolution
from .route_engine import ComputeResult, RouteEngine

__all__ = [
    "ComputeParams",
    "ComputeResult",
    "LandingPad",
    "RouteEngine",
    "RouteSolution",
]
