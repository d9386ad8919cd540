"""Route profit solver.

For one origin/destination pair, choose integer quantities of each
commodity to buy at the origin and sell at the destination:

    maximize    sum(x_i * margin_i)
    subject to  sum(x_i * buy_i) <= capital
                sum(x_i)         <= capacity
                0 <= x_i <= min(origin stock_i, destination demand_i), integer

Two constraints bind at once, so ranking commodities by margin (or by
margin per credit) is not a valid greedy rule. The program is solved to
exact optimality with HiGHS branch-and-bound via scipy.optimize.milp.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import numpy as np
from scipy.optimize import Bounds, LinearConstraint, milp

from .models import Listing, RouteCandidate, RouteSolution, TradeSelection

logger = logging.getLogger(__name__)

# Market = commodity name -> current listing at one station
Market = Mapping[str, Listing]


@dataclass(frozen=True)
class KnapsackItem:
    """One commodity that can be hauled at a profit on a given pair."""

    commodity: str
    cost: int
    margin: int
    upper_bound: int


def profitable_commodities(origin_market: Market, destination_market: Market) -> list[KnapsackItem]:
    """Commodities that make money on this pair, sorted by name.

    A commodity qualifies if it is listed at both stations, the destination
    pays strictly more than the origin asks, and there is both stock to buy
    and demand to sell into.
    """
    items = []
    for name in sorted(origin_market.keys() & destination_market.keys()):
        bought = origin_market[name]
        sold = destination_market[name]
        # buy_price 0 means the origin does not sell this commodity
        if bought.buy_price <= 0:
            continue
        margin = sold.sell_price - bought.buy_price
        if margin <= 0:
            continue
        upper_bound = min(bought.stock, sold.demand)
        if upper_bound <= 0:
            continue
        items.append(
            KnapsackItem(
                commodity=name,
                cost=bought.buy_price,
                margin=margin,
                upper_bound=upper_bound,
            )
        )
    return items


def solve_knapsack(
    items: Sequence[KnapsackItem],
    capital: int,
    capacity: int,
    time_limit: Optional[float] = None,
) -> Optional[list[int]]:
    """Solve the two-constraint bounded knapsack exactly.

    Args:
        items: Commodities with unit cost, unit margin and quantity bound
        capital: Money available to buy cargo
        capacity: Cargo hold size in units
        time_limit: Optional HiGHS wall clock limit in seconds

    Returns:
        Quantity per item (same order as items), or None when the best
        achievable profit is zero or the solver does not prove optimality
    """
    if not items or capital <= 0 or capacity <= 0:
        return None

    costs = np.array([item.cost for item in items], dtype=float)
    margins = np.array([item.margin for item in items], dtype=float)

    # Tighten bounds up front: nobody can buy more than the money or hold allows
    upper = np.array(
        [min(item.upper_bound, capital // item.cost, capacity) for item in items],
        dtype=float,
    )
    if not upper.any():
        return None

    if len(items) == 1:
        quantities = [int(upper[0])]
        return quantities if quantities[0] > 0 else None

    constraints = LinearConstraint(
        np.vstack([costs, np.ones(len(items))]),
        -np.inf,
        np.array([capital, capacity], dtype=float),
    )
    options: dict = {"mip_rel_gap": 0.0}
    if time_limit is not None:
        options["time_limit"] = time_limit

    result = milp(
        c=-margins,
        constraints=constraints,
        integrality=np.ones(len(items), dtype=int),
        bounds=Bounds(lb=np.zeros(len(items)), ub=upper),
        options=options,
    )

    if not result.success or result.x is None:
        logger.warning(f"MILP solver did not reach optimality: {result.message}")
        return None

    quantities = [int(q) for q in np.clip(np.rint(result.x), 0, upper)]
    quantities = _repair(items, quantities, capital, capacity)

    if sum(q * item.margin for q, item in zip(quantities, items)) <= 0:
        return None
    return quantities


def _repair(
    items: Sequence[KnapsackItem], quantities: list[int], capital: int, capacity: int
) -> list[int]:
    """Undo rounding overshoot so both constraints hold in exact integers."""
    quantities = list(quantities)

    def over() -> bool:
        cost = sum(q * item.cost for q, item in zip(quantities, items))
        return cost > capital or sum(quantities) > capacity

    while over():
        held = [i for i, q in enumerate(quantities) if q > 0]
        worst = min(held, key=lambda i: (items[i].margin, -items[i].cost))
        quantities[worst] -= 1
        logger.debug(f"Rounding repair: dropped one unit of {items[worst].commodity}")
    return quantities


def solve_route(
    candidate: RouteCandidate,
    markets: Mapping[int, Market],
    capital: int,
    capacity: int,
    time_limit: Optional[float] = None,
) -> Optional[RouteSolution]:
    """Find the most profitable cargo for one route candidate.

    Pure function of its inputs; safe to call from many threads at once.

    Args:
        candidate: Origin and destination stations
        markets: station_id -> commodity -> current listing
        capital: Money available to buy cargo
        capacity: Cargo hold size in units
        time_limit: Optional per-solve limit passed to the MILP solver

    Returns:
        RouteSolution, or None if no profitable cargo exists on this pair
    """
    origin_market = markets.get(candidate.origin.station_id, {})
    destination_market = markets.get(candidate.destination.station_id, {})

    items = profitable_commodities(origin_market, destination_market)
    if not items:
        return None

    quantities = solve_knapsack(items, capital, capacity, time_limit=time_limit)
    if quantities is None:
        return None

    selections = [
        _selection(
            item,
            quantity,
            origin_market[item.commodity].listed_at,
            destination_market[item.commodity],
        )
        for item, quantity in zip(items, quantities)
        if quantity > 0
    ]
    selections.sort(key=lambda s: (-s.profit, s.commodity))

    return RouteSolution(candidate=candidate, selections=tuple(selections))


def _selection(
    item: KnapsackItem, quantity: int, bought_listed_at: datetime, sold: Listing
) -> TradeSelection:
    return TradeSelection(
        commodity=item.commodity,
        quantity=quantity,
        buy_price=item.cost,
        sell_price=sold.sell_price,
        bought_listed_at=bought_listed_at,
        sold_listed_at=sold.listed_at,
    )
