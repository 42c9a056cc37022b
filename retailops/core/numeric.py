"""
Fixed-point helpers for quantities and money.

All stock quantities and amounts are Decimals rounded half-up to the
configured number of places before they are compared or persisted.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from .config import settings
from .exceptions import ValidationError

Number = Union[Decimal, int, float, str]


def _quantum(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


def to_decimal(value: Number, places: int) -> Decimal:
    """Convert to Decimal and round half-up to ``places``"""
    if value is None:
        value = 0
    # str() avoids binary float artefacts such as 0.1 + 0.2
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(_quantum(places), rounding=ROUND_HALF_UP)


def to_quantity(value: Number) -> Decimal:
    return to_decimal(value, settings.QUANTITY_DECIMAL_PLACES)


def to_positive_quantity(value: Number, field: str = "quantity") -> Decimal:
    """Round a quantity and reject it if nothing is left after rounding"""
    quantity = to_quantity(value)
    if quantity <= 0:
        raise ValidationError(
            f"{field} must be at least {_quantum(settings.QUANTITY_DECIMAL_PLACES)} after rounding",
            {"field": field, "value": str(value), "rounded": str(quantity)},
        )
    return quantity


def to_money(value: Number) -> Decimal:
    return to_decimal(value, settings.CURRENCY_DECIMAL_PLACES)


def line_total(quantity: Number, unit_price: Number) -> Decimal:
    """Extended line amount, rounded once after multiplying"""
    return to_money(to_quantity(quantity) * to_money(unit_price))
