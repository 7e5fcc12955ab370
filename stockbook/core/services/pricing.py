"""
Unit price computations applied when a purchase completes.

All functions here are pure: they read the purchase lines and a snapshot of
stock levels taken before any stock increment, and return the prices to write.
"""

from collections import defaultdict
from collections.abc import Iterable, Mapping

from stockbook.core.entities.catalog import StockLevel, TargetKey
from stockbook.core.entities.purchase import (
    AdditionalCost,
    PriceUpdateMode,
    Purchase,
    PurchaseItem,
)


def additional_cost_per_unit(
    items: Iterable[PurchaseItem],
    additional_costs: Iterable[AdditionalCost],
) -> float | None:
    """
    Spread additional costs evenly over every purchased unit.

    Returns None when the purchase carries no quantity.
    """
    total_quantity = sum(item.quantity for item in items)
    if total_quantity == 0:
        return None
    return sum(cost.amount for cost in additional_costs) / total_quantity


def compute_weighted_average_prices(
    items: list[PurchaseItem],
    additional_costs: list[AdditionalCost],
    snapshots: Mapping[TargetKey, StockLevel],
) -> dict[TargetKey, float]:
    """
    Blend existing stock value with the purchased lines.

    For every distinct target:
        new_price = (stock0 * price0 + sum(qty * (price + acpu)))
                    / (stock0 + sum(qty))

    Targets whose blended quantity is not positive are left out.

    Example:
        stock 10 @ 100, one line 5 @ 200, additional costs 50
        -> (1000 + 5 * 210) / 15 = 136.67
    """
    acpu = additional_cost_per_unit(items, additional_costs)
    if acpu is None:
        return {}

    groups: dict[TargetKey, list[PurchaseItem]] = defaultdict(list)
    for item in items:
        groups[item.target_key].append(item)

    prices: dict[TargetKey, float] = {}
    for key, group in groups.items():
        snapshot = snapshots.get(key)
        stock0 = snapshot.stock if snapshot else 0.0
        price0 = snapshot.price if snapshot else 0.0

        total_value = stock0 * price0
        total_quantity = stock0
        for item in group:
            total_value += item.quantity * (item.price + acpu)
            total_quantity += item.quantity

        if total_quantity <= 0:
            continue
        prices[key] = total_value / total_quantity

    return prices


def direct_overwrite_prices(items: list[PurchaseItem]) -> dict[TargetKey, float]:
    """Take each target's price from its purchase line; the last line wins."""
    prices: dict[TargetKey, float] = {}
    for item in items:
        prices[item.target_key] = item.price
    return prices


def resolve_price_mode(
    purchase: Purchase, override: PriceUpdateMode | None = None
) -> PriceUpdateMode:
    """Pick the price strategy for a purchase unless one is forced."""
    if override is not None:
        return override
    if purchase.auto_update_price:
        return PriceUpdateMode.WEIGHTED_AVERAGE
    return PriceUpdateMode.NONE


def compute_prices(
    mode: PriceUpdateMode,
    purchase: Purchase,
    snapshots: Mapping[TargetKey, StockLevel],
) -> dict[TargetKey, float]:
    """Dispatch to the price strategy selected by mode."""
    if mode == PriceUpdateMode.WEIGHTED_AVERAGE:
        return compute_weighted_average_prices(
            purchase.items, purchase.additional_costs, snapshots
        )
    if mode == PriceUpdateMode.DIRECT_OVERWRITE:
        return direct_overwrite_prices(purchase.items)
    return {}
