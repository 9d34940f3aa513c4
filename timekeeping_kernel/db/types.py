"""
Module: timekeeping_kernel.db.types
Responsibility: Annotated type aliases and the rounding helpers for pay
    rates, hours and amounts.  Centralizes precision so that every model and
    service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats for money.  Rates and amounts are Decimal end to end.
    - round_money() is the ONLY sanctioned rounding function.  It is applied
      when a value is materialised into a report row or summary, never
      between chained computations.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

# Hourly rate or amount, stored with headroom beyond presentation precision
Money = Annotated[Decimal, Numeric(38, 9)]

# ISO 4217 currency code (e.g., "PLN")
Currency = Annotated[str, String(3)]

# Short identifier strings
ShortCode = Annotated[str, String(50)]

# Long text for reasons and notes
LongText = Annotated[str, String(4000)]

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

_MINUTES_PER_HOUR = Decimal(60)


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary (or hours) value to the given number of decimal places.

    Raises:
        TypeError: If value is a float.
    """
    if isinstance(value, float):
        raise TypeError("round_money() does not accept float")
    quantum = Decimal(1).scaleb(-decimal_places)
    return Decimal(value).quantize(quantum, rounding=rounding)


def minutes_to_hours(minutes: int) -> Decimal:
    """Unrounded hours for a whole number of minutes."""
    return Decimal(minutes) / _MINUTES_PER_HOUR


def amount_for_minutes(minutes: int, rate: Decimal) -> Decimal:
    """Unrounded pay for ``minutes`` at hourly ``rate``."""
    if isinstance(rate, float):
        raise TypeError("rate must be Decimal, not float")
    return Decimal(minutes) * rate / _MINUTES_PER_HOUR
