from decimal import Decimal

import pytest

from swap_simulator.utils.formatting import format_decimal, format_fixed, truncate_display


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (Decimal("2100"), "2100"),
        (Decimal("1645.9337373737374"), "1645.93373"),
        (Decimal("0.99999999999"), "0.99999999"),
        (Decimal("0.1000000001"), "0.1"),
        (Decimal("123456789012.5"), "123456789012"),
        (Decimal("0"), "0"),
    ],
)
def test_truncate_display_never_rounds_up(value: Decimal, expected: str) -> None:
    assert truncate_display(value) == expected


def test_format_fixed_truncates() -> None:
    assert format_fixed(Decimal("1")) == "1.0000000"
    assert format_fixed(Decimal("0.123456789")) == "0.1234567"
    assert format_fixed(Decimal("2.99999999"), places=2) == "2.99"


def test_format_decimal_drops_trailing_zeros() -> None:
    assert format_decimal(Decimal("1.500")) == "1.5"
    assert format_decimal(Decimal("1E+3")) == "1000"


def test_format_fixed_handles_values_beyond_context_precision() -> None:
    assert format_fixed(Decimal("123456789012345678901234.5")) == "123456789012345678901234.5000000"
    assert format_fixed(Decimal("1E+23")) == "100000000000000000000000.0000000"
