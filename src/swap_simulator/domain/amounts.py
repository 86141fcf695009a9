from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation

_DISALLOWED = re.compile(r"[^0-9.,]")


class InvalidAmountError(ValueError):
    def __init__(self, raw_text: str, reason: str) -> None:
        self.raw_text = raw_text
        self.reason = reason
        super().__init__(f"Invalid amount {raw_text!r}: {reason}")


def normalize_amount_text(raw_text: str) -> str:
    """Drop everything except digits and separators, then use '.' as the only separator."""
    return _DISALLOWED.sub("", raw_text).replace(",", ".")


def sanitize(raw_text: str) -> Decimal | None:
    """Parse free-form input into a non-negative amount.

    Returns None for a cleared field. Raises InvalidAmountError when the text
    cannot be read as a single unambiguous number, e.g. ``"1,234.5.6"``.
    """
    normalized = normalize_amount_text(raw_text)
    if not normalized:
        return None
    if normalized.count(".") > 1:
        raise InvalidAmountError(raw_text, "multiple decimal separators")
    if normalized == ".":
        raise InvalidAmountError(raw_text, "no digits")

    try:
        value = Decimal(normalized)
    except InvalidOperation as exc:
        raise InvalidAmountError(raw_text, "not a number") from exc

    if value < 0:
        raise InvalidAmountError(raw_text, "negative amount")
    return value


def sanitize_display(value: Decimal | None) -> str:
    """Text shown in the amount field for an accepted value."""
    if value is None:
        return ""
    return format(value, "f")


__all__ = ["InvalidAmountError", "normalize_amount_text", "sanitize", "sanitize_display"]
