"""Tour pricing rules"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...models import PricingConfig

logger = logging.getLogger(__name__)

GROUP_SIZES = ("individual", "small_group", "large_group", "custom")
TOUR_TYPES = ("standard", "extended", "custom")

DEFAULT_BASE_PRICES = {
    "individual": 15000.0,
    "small_group": 50000.0,
    "large_group": 80000.0,
    "custom": 100000.0,
}
DEFAULT_ADDITIONAL_HOUR_PRICE = 10000.0

# A standard tour covers two hours; extended tours add two more
INCLUDED_HOURS = 2
EXTENDED_EXTRA_HOURS = 2


def calculate_price(
    group_size: str,
    tour_type: str = "standard",
    custom_duration: Optional[int] = None,
    base_prices: Optional[dict[str, float]] = None,
    additional_hour_price: float = DEFAULT_ADDITIONAL_HOUR_PRICE,
) -> float:
    """
    Price of a tour in MWK

    extended = base + 2 additional hours
    custom with a duration d = base + additional hour x max(0, d - 2)
    anything else = base
    """
    prices = base_prices or DEFAULT_BASE_PRICES
    if group_size not in prices:
        raise ValueError(f"Unknown group size '{group_size}'")
    base = prices[group_size]

    if tour_type == "extended":
        return base + EXTENDED_EXTRA_HOURS * additional_hour_price
    if tour_type == "custom" and custom_duration:
        return base + additional_hour_price * max(0, custom_duration - INCLUDED_HOURS)
    return base


def load_pricing(db: Session) -> tuple[dict[str, float], dict[str, float]]:
    """
    Effective base and additional-hour prices per group size.
    Active PricingConfig rows override the defaults.
    """
    base_prices = dict(DEFAULT_BASE_PRICES)
    hour_prices = {size: DEFAULT_ADDITIONAL_HOUR_PRICE for size in GROUP_SIZES}

    for config in db.query(PricingConfig).filter(PricingConfig.is_active.is_(True)).all():
        base_prices[config.group_size] = config.base_price
        if config.additional_hour_price is not None:
            hour_prices[config.group_size] = config.additional_hour_price

    return base_prices, hour_prices


def price_for_booking(
    db: Session, group_size: str, tour_type: str, custom_duration: Optional[int]
) -> float:
    base_prices, hour_prices = load_pricing(db)
    return calculate_price(
        group_size,
        tour_type,
        custom_duration,
        base_prices=base_prices,
        additional_hour_price=hour_prices.get(group_size, DEFAULT_ADDITIONAL_HOUR_PRICE),
    )
