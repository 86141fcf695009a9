from decimal import Decimal

import pytest

from swap_simulator.domain.balance_ledger import BalanceLedger, InsufficientBalanceError, SettlementError
from tests.constants import BTC, ETH, USD


def test_unknown_currency_has_zero_balance() -> None:
    ledger = BalanceLedger()

    assert ledger.balance_of(BTC) == Decimal(0)
    assert ledger.balance_of(None) == Decimal(0)
    assert BTC not in ledger.snapshot()


def test_sufficient_for_compares_against_balance(ledger: BalanceLedger) -> None:
    assert ledger.sufficient_for(ETH, Decimal("10"))
    assert ledger.sufficient_for(ETH, Decimal("0"))
    assert not ledger.sufficient_for(ETH, Decimal("10.000001"))
    assert not ledger.sufficient_for(BTC, Decimal("0.1"))


def test_settle_moves_exact_debit_and_credit(ledger: BalanceLedger) -> None:
    debit = Decimal("1")
    credit = Decimal("2100")

    ledger.settle(ETH, USD, debit, credit)

    assert ledger.balance_of(ETH) == Decimal("9")
    assert ledger.balance_of(USD) == Decimal("3100")


def test_settle_credits_currency_without_prior_balance(ledger: BalanceLedger) -> None:
    ledger.settle(USD, BTC, Decimal("260"), Decimal("0.01"))

    assert ledger.balance_of(USD) == Decimal("740")
    assert ledger.balance_of(BTC) == Decimal("0.01")


def test_settle_can_drain_source_to_zero(ledger: BalanceLedger) -> None:
    ledger.settle(ETH, USD, Decimal("10"), Decimal("21000"))

    assert ledger.balance_of(ETH) == Decimal(0)
    assert ledger.nonzero() == {USD: Decimal("22000")}


def test_settle_rejects_overdraft_without_changes(ledger: BalanceLedger) -> None:
    before = ledger.snapshot()

    with pytest.raises(InsufficientBalanceError) as exc_info:
        ledger.settle(ETH, USD, Decimal("10.5"), Decimal("22050"))

    assert exc_info.value.currency == ETH
    assert exc_info.value.attempted_quantity == Decimal("10.5")
    assert exc_info.value.available_balance == Decimal("10")
    assert ledger.snapshot() == before


@pytest.mark.parametrize(
    ("source", "target", "debit", "credit"),
    [
        (ETH, ETH, Decimal("1"), Decimal("1")),
        (ETH, USD, Decimal("0"), Decimal("0")),
        (ETH, USD, Decimal("-1"), Decimal("2100")),
        (ETH, USD, Decimal("1"), Decimal("-1")),
    ],
)
def test_settle_rejects_malformed_trades(
    ledger: BalanceLedger, source: str, target: str, debit: Decimal, credit: Decimal
) -> None:
    before = ledger.snapshot()

    with pytest.raises(SettlementError):
        ledger.settle(source, target, debit, credit)

    assert ledger.snapshot() == before


def test_repeated_small_trades_stay_exact() -> None:
    ledger = BalanceLedger({ETH: Decimal("1")})

    for _ in range(10):
        ledger.settle(ETH, USD, Decimal("0.1"), Decimal("210"))

    assert ledger.balance_of(ETH) == Decimal(0)
    assert ledger.balance_of(USD) == Decimal("2100")


def test_open_account_lists_currency_at_zero() -> None:
    ledger = BalanceLedger({ETH: Decimal("1")})

    ledger.open_account(BTC)
    ledger.open_account(ETH)

    assert ledger.snapshot() == {ETH: Decimal("1"), BTC: Decimal(0)}
    assert ledger.nonzero() == {ETH: Decimal("1")}


def test_deposit_rejects_negative_amounts() -> None:
    ledger = BalanceLedger()

    with pytest.raises(ValueError):
        ledger.deposit(ETH, Decimal("-1"))
