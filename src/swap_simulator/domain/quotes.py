from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from .prices import PriceTable


@dataclass(frozen=True)
class Quote:
    """Converted amount for a prospective trade.

    ``unavailable`` marks a quote that could not be computed because a price is
    missing; its ``value`` is then zero rather than Infinity/NaN.
    """

    value: Decimal
    unavailable: bool = False
    rate: Decimal | None = None


EMPTY_QUOTE = Quote(value=Decimal(0))


def quote(
    table: PriceTable,
    source_code: str | None,
    target_code: str | None,
    amount: Decimal | None,
) -> Quote:
    if not source_code or not target_code or not amount:
        return EMPTY_QUOTE

    source_price = table.price_of(source_code)
    target_price = table.price_of(target_code)
    if source_price == 0 or target_price == 0:
        return Quote(value=Decimal(0), unavailable=True)

    return Quote(
        value=amount * source_price / target_price,
        rate=source_price / target_price,
    )


__all__ = ["EMPTY_QUOTE", "Quote", "quote"]
