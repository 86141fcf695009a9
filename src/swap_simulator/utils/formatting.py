from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, localcontext


def format_decimal(value: Decimal) -> str:
    quantized = value.normalize()
    # Avoid scientific notation for integers.
    if quantized == quantized.to_integral():
        return f"{quantized:.0f}"
    return format(quantized, "f")


def truncate_display(value: Decimal, max_chars: int = 10) -> str:
    """Cut the plain-text form of ``value`` to ``max_chars`` characters.

    Digits are dropped, never rounded, so the text never overstates the
    underlying amount. The integer part is always kept whole.
    """
    text = format_decimal(value)
    integer_part, _, _ = text.partition(".")
    if len(text) <= max_chars or len(integer_part) >= max_chars:
        return integer_part if len(text) > max_chars else text
    return text[:max_chars].rstrip("0").rstrip(".")


def format_fixed(value: Decimal, places: int = 7) -> str:
    """Fixed number of fractional digits, truncated towards zero."""
    exponent = Decimal(1).scaleb(-places)
    with localcontext() as ctx:
        # quantize needs room for every integer digit plus the fractional ones.
        ctx.prec = max(ctx.prec, value.adjusted() + places + 2)
        truncated = value.quantize(exponent, rounding=ROUND_DOWN)
    return f"{truncated:.{places}f}"
