from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from swap_simulator.config import config
from swap_simulator.domain.balance_ledger import BalanceLedger, SettlementError
from swap_simulator.domain.session import TradeSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementResult:
    trade_id: UUID
    succeeded: bool
    error: str | None = None
    balances: dict[str, Decimal] = field(default_factory=dict)


class SettlementService:
    """Simulated settlement: waits a fixed delay, then applies the trade to the ledger.

    The ledger re-checks the source balance when the trade is applied, not when
    it was confirmed. Cancelling the coroutine before the delay elapses leaves
    the ledger untouched.
    """

    def __init__(
        self,
        ledger: BalanceLedger,
        *,
        delay_seconds: float | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        settings = config()
        self._ledger = ledger
        self.delay_seconds = delay_seconds if delay_seconds is not None else settings.settlement_delay_seconds
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.settlement_timeout_seconds
        if self.delay_seconds < 0:
            msg = "delay_seconds must be >= 0"
            raise ValueError(msg)
        if self.timeout_seconds <= 0:
            msg = "timeout_seconds must be > 0"
            raise ValueError(msg)

    async def settle(self, snapshot: TradeSnapshot) -> SettlementResult:
        logger.info(
            "Settling trade %s: %s %s -> %s %s",
            snapshot.trade_id,
            snapshot.amount,
            snapshot.source_currency,
            snapshot.quote,
            snapshot.target_currency,
        )
        try:
            await asyncio.wait_for(self._apply_after_delay(snapshot), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("Trade %s timed out after %.1fs", snapshot.trade_id, self.timeout_seconds)
            return SettlementResult(
                trade_id=snapshot.trade_id,
                succeeded=False,
                error=f"Settlement timed out after {self.timeout_seconds}s",
                balances=self._ledger.snapshot(),
            )
        except SettlementError as exc:
            logger.warning("Trade %s rejected by ledger: %s", snapshot.trade_id, exc)
            return SettlementResult(
                trade_id=snapshot.trade_id,
                succeeded=False,
                error=str(exc),
                balances=self._ledger.snapshot(),
            )

        logger.info("Trade %s settled", snapshot.trade_id)
        return SettlementResult(trade_id=snapshot.trade_id, succeeded=True, balances=self._ledger.snapshot())

    async def _apply_after_delay(self, snapshot: TradeSnapshot) -> None:
        await asyncio.sleep(self.delay_seconds)
        self._ledger.settle(
            snapshot.source_currency,
            snapshot.target_currency,
            debit=snapshot.amount,
            credit=snapshot.quote,
        )


__all__ = ["SettlementResult", "SettlementService"]
