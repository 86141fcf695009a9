from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Mapping

from .prices import CurrencyCode

CurrencyBalances = defaultdict[CurrencyCode, Decimal]


class SettlementError(Exception):
    """The ledger refused to apply a trade; no balance was changed."""


class InsufficientBalanceError(SettlementError):
    def __init__(
        self,
        *,
        currency: str,
        attempted_quantity: Decimal,
        available_balance: Decimal,
    ) -> None:
        self.currency = currency
        self.attempted_quantity = attempted_quantity
        self.available_balance = available_balance
        message = (
            f"Insufficient balance for currency={currency} "
            f"attempted={attempted_quantity} available={available_balance}"
        )
        super().__init__(message)


class BalanceLedger:
    def __init__(self, initial: Mapping[str, Decimal] | None = None) -> None:
        self._balances: CurrencyBalances = defaultdict(lambda: Decimal(0))
        for code, amount in (initial or {}).items():
            self.deposit(code, amount)

    def deposit(self, code: str, amount: Decimal) -> None:
        if amount < 0:
            raise ValueError("deposit amount must be >= 0")
        self._balances[CurrencyCode(code)] += amount

    def open_account(self, code: str) -> None:
        """Make ``code`` show up in snapshots, starting at zero."""
        self._balances[CurrencyCode(code)] += 0

    def balance_of(self, code: str | None) -> Decimal:
        if code is None:
            return Decimal(0)
        # .get() so that lookups never create entries.
        return self._balances.get(CurrencyCode(code), Decimal(0))

    def sufficient_for(self, code: str | None, amount: Decimal) -> bool:
        return amount <= self.balance_of(code)

    def settle(self, source_code: str, target_code: str, debit: Decimal, credit: Decimal) -> None:
        """Apply a trade's debit/credit pair as one update.

        Everything is validated against current balances before either side is
        written, so a rejected settlement leaves the ledger untouched.
        """
        if source_code == target_code:
            raise SettlementError(f"Cannot settle {source_code} against itself")
        if debit <= 0:
            raise SettlementError(f"Debit must be > 0, got {debit}")
        if credit < 0:
            raise SettlementError(f"Credit must be >= 0, got {credit}")

        source = CurrencyCode(source_code)
        target = CurrencyCode(target_code)
        available = self.balance_of(source)
        if debit > available:
            raise InsufficientBalanceError(
                currency=source,
                attempted_quantity=debit,
                available_balance=available,
            )

        self._balances.update(
            {
                source: available - debit,
                target: self.balance_of(target) + credit,
            }
        )

    def snapshot(self) -> dict[CurrencyCode, Decimal]:
        return dict(self._balances)

    def nonzero(self) -> dict[CurrencyCode, Decimal]:
        return {code: balance for code, balance in self._balances.items() if balance != 0}


__all__ = ["BalanceLedger", "InsufficientBalanceError", "SettlementError"]
