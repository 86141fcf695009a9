from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Iterator, NewType

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CurrencyCode = NewType("CurrencyCode", str)


class PriceEntry(BaseModel):
    """A single feed record: USD price of one currency at one point in time.

    Feed records use the wire keys ``currency``/``date``/``price``; ``date`` is
    exposed as ``as_of``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    currency: CurrencyCode
    as_of: datetime = Field(alias="date")
    price: Decimal

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, value: Any) -> Any:
        # Feed prices are JSON floats; go through str() to keep the printed digits.
        if isinstance(value, float):
            return Decimal(str(value))
        return value

    @field_validator("as_of")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _validate_fields(self) -> PriceEntry:
        if not self.currency:
            raise ValueError("currency must be non-empty")
        if not self.price.is_finite() or self.price <= 0:
            raise ValueError("price must be > 0")
        return self


class PriceTable:
    """Canonical price snapshot: at most one entry per currency code.

    Iteration follows the order in which codes first appeared in the feed.
    """

    def __init__(self, entries: dict[CurrencyCode, PriceEntry] | None = None) -> None:
        self._entries: dict[CurrencyCode, PriceEntry] = dict(entries or {})

    def __contains__(self, code: object) -> bool:
        return code in self._entries

    def __iter__(self) -> Iterator[CurrencyCode]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        prices = ", ".join(f"{code}={entry.price}" for code, entry in self._entries.items())
        return f"PriceTable({prices})"

    def entry_for(self, code: str | None) -> PriceEntry | None:
        if code is None:
            return None
        return self._entries.get(CurrencyCode(code))

    def price_of(self, code: str | None) -> Decimal:
        """Price for ``code``; unknown or unselected codes price at zero."""
        entry = self.entry_for(code)
        if entry is None:
            return Decimal(0)
        return entry.price

    def currencies(self) -> list[CurrencyCode]:
        return list(self._entries)


def build_price_table(entries: Iterable[PriceEntry]) -> PriceTable:
    """Reduce a raw feed to the latest entry per currency.

    Entries are scanned once in feed order. An entry replaces the stored one only
    when its ``as_of`` is strictly later, so on equal timestamps the entry seen
    first is kept.
    """
    latest: dict[CurrencyCode, PriceEntry] = {}
    for entry in entries:
        existing = latest.get(entry.currency)
        if existing is None or entry.as_of > existing.as_of:
            latest[entry.currency] = entry
    return PriceTable(latest)


__all__ = ["CurrencyCode", "PriceEntry", "PriceTable", "build_price_table"]
