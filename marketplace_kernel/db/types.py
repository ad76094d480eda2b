"""
Module: marketplace_kernel.db.types
Responsibility: Annotated type aliases and the money rounding helper shared by
    models, engines and services.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, selectors/ and marketplace_engines.  MUST NOT import from any
    of those layers.

Invariants enforced:
    - No floats for money.  All monetary amounts use Decimal with explicit
      precision.
    - round_money() is the ONLY sanctioned rounding function for monetary
      values (settlement quotes, auto-priced engagements).
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

# Monetary amount: 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Short identifier strings (status, pricing mode, payment method)
ShortCode = Annotated[str, String(50)]

# Human-readable names and titles
Name = Annotated[str, String(255)]

# Long text for descriptions and negotiation messages
LongText = Annotated[str, String(4000)]

# "HH:MM" wall-clock time
ClockTime = Annotated[str, String(5)]


MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_decimal(value: Decimal | int | str) -> Decimal:
    """
    Coerce an amount to Decimal without passing through float.

    Raises:
        TypeError: If value is a float.
    """
    if isinstance(value, float):
        raise TypeError("Monetary amounts must not be floats")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    Preconditions: value is a Decimal.
    Postconditions: Returns value quantized using the given rounding mode
        (half-up by default).
    """
    quantizer = Decimal(10) ** -decimal_places
    return value.quantize(quantizer, rounding=rounding)
