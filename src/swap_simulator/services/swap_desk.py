from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterable, Protocol

from swap_simulator.config import config
from swap_simulator.domain.balance_ledger import BalanceLedger
from swap_simulator.domain.prices import PriceEntry, PriceTable, build_price_table
from swap_simulator.domain.quotes import Quote
from swap_simulator.domain.session import (
    Acknowledge,
    Cancel,
    CancelSettlement,
    Confirm,
    EditAmount,
    Invert,
    PricesUpdated,
    RequestTrade,
    SelectSource,
    SelectTarget,
    SettlementFailed,
    SettlementSucceeded,
    StartSettlement,
    SwapContext,
    SwapEffect,
    SwapEvent,
    SwapMessage,
    SwapSession,
    SwapStatus,
    TradeSnapshot,
    UseMaxAmount,
    initial_session,
    reduce,
    target_options,
)
from swap_simulator.utils.formatting import format_fixed, truncate_display

from .settlement import SettlementResult, SettlementService
from .token_icons import IconResolver

logger = logging.getLogger(__name__)


class PriceFeed(Protocol):
    def fetch_entries(self) -> list[PriceEntry]: ...


class IconListing(Protocol):
    def list_icon_names(self) -> list[str]: ...


@dataclass(frozen=True)
class CurrencyOption:
    value: str
    label: str
    image: str | None = None


@dataclass(frozen=True)
class SwapView:
    """Read-only state handed to the rendering surface."""

    options: tuple[CurrencyOption, ...]
    target_options: tuple[CurrencyOption, ...]
    source_currency: str | None
    target_currency: str | None
    amount_text: str
    quote: Quote
    quote_display: str
    insufficient_funds: bool
    status: SwapStatus
    locked: bool
    message: SwapMessage | None
    pending: TradeSnapshot | None
    confirmation_text: str | None
    balances: dict[str, Decimal]
    nonzero_balances: dict[str, Decimal]

    @property
    def quote_unavailable(self) -> bool:
        return self.quote.unavailable


class SwapDesk:
    """Owns one swap session and runs its effects.

    Every user action goes through :func:`swap_simulator.domain.session.reduce`;
    the desk only executes the resulting effects and keeps the settlement task.
    Must be driven from a single event loop.
    """

    def __init__(
        self,
        *,
        ledger: BalanceLedger | None = None,
        settlement: SettlementService | None = None,
        icon_resolver: IconResolver | None = None,
        preferred_source: str | None = None,
        preferred_target: str | None = None,
        display_digits: int | None = None,
    ) -> None:
        settings = config()
        self.ledger = ledger if ledger is not None else BalanceLedger(settings.initial_balances)
        self.settlement = settlement if settlement is not None else SettlementService(self.ledger)
        self.icon_resolver = icon_resolver
        self.display_digits = display_digits or settings.display_digits
        self._context = SwapContext(
            prices=PriceTable(),
            ledger=self.ledger,
            preferred_source=preferred_source or settings.preferred_source_currency,
            preferred_target=preferred_target or settings.preferred_target_currency,
        )
        self._session = initial_session(self._context)
        self._settlement_task: asyncio.Task[SettlementResult] | None = None

    @property
    def session(self) -> SwapSession:
        return self._session

    @property
    def prices(self) -> PriceTable:
        return self._context.prices

    def load_prices(self, entries: Iterable[PriceEntry]) -> SwapView:
        table = build_price_table(entries)
        for code in table:
            self.ledger.open_account(code)
        self._context = replace(self._context, prices=table)
        logger.info("Loaded price table with %d currencies", len(table))
        return self._dispatch(PricesUpdated())

    async def refresh_prices(self, feed: PriceFeed) -> SwapView:
        entries = await asyncio.to_thread(feed.fetch_entries)
        return self.load_prices(entries)

    async def refresh_icons(self, listing: IconListing) -> SwapView:
        names = await asyncio.to_thread(listing.list_icon_names)
        self.icon_resolver = IconResolver(names)
        return self.view()

    def select_source(self, currency: str | None) -> SwapView:
        return self._dispatch(SelectSource(currency))

    def select_target(self, currency: str | None) -> SwapView:
        return self._dispatch(SelectTarget(currency))

    def edit_amount(self, text: str) -> SwapView:
        return self._dispatch(EditAmount(text))

    def use_max(self) -> SwapView:
        return self._dispatch(UseMaxAmount())

    def invert(self) -> SwapView:
        return self._dispatch(Invert())

    def request_trade(self) -> SwapView:
        return self._dispatch(RequestTrade())

    async def confirm(self) -> SwapView:
        """Start settlement of the pending trade; returns without waiting for it."""
        return self._dispatch(Confirm())

    def cancel(self) -> SwapView:
        return self._dispatch(Cancel())

    def acknowledge(self) -> SwapView:
        return self._dispatch(Acknowledge())

    async def wait_for_settlement(self) -> SettlementResult | None:
        """Wait for the last started settlement; None when there is none or it was cancelled."""
        task = self._settlement_task
        if task is None:
            return None
        await asyncio.wait({task})
        if task.cancelled():
            return None
        return task.result()

    def view(self) -> SwapView:
        session = self._session
        options = tuple(self._option(code) for code in self._context.prices)
        targets = tuple(self._option(code) for code in target_options(self._context, session))
        pending = session.pending
        confirmation_text = None
        if pending is not None:
            confirmation_text = (
                f"Are you sure you want to trade {format_fixed(pending.amount)} {pending.source_currency} "
                f"for {format_fixed(pending.quote)} {pending.target_currency}?"
            )
        return SwapView(
            options=options,
            target_options=targets,
            source_currency=session.source_currency,
            target_currency=session.target_currency,
            amount_text=session.amount_text,
            quote=session.quote,
            quote_display=truncate_display(session.quote.value, self.display_digits),
            insufficient_funds=session.insufficient_funds,
            status=session.status,
            locked=session.locked,
            message=session.message,
            pending=pending,
            confirmation_text=confirmation_text,
            balances=dict(self.ledger.snapshot()),
            nonzero_balances=dict(self.ledger.nonzero()),
        )

    def _option(self, code: str) -> CurrencyOption:
        image = self.icon_resolver.icon_url(code) if self.icon_resolver is not None else None
        return CurrencyOption(value=code, label=code, image=image)

    def _dispatch(self, event: SwapEvent) -> SwapView:
        previous = self._session.status
        transition = reduce(self._session, event, self._context)
        self._session = transition.session
        if transition.session.status is not previous:
            logger.debug("Swap status %s -> %s on %s", previous, transition.session.status, type(event).__name__)
        for effect in transition.effects:
            self._run_effect(effect)
        return self.view()

    def _run_effect(self, effect: SwapEffect) -> None:
        if isinstance(effect, StartSettlement):
            self._settlement_task = asyncio.get_running_loop().create_task(self._settle(effect.snapshot))
        elif isinstance(effect, CancelSettlement):
            task = self._settlement_task
            if task is not None and not task.done():
                logger.info("Cancelling settlement of trade %s", effect.trade_id)
                task.cancel()

    async def _settle(self, snapshot: TradeSnapshot) -> SettlementResult:
        try:
            result = await self.settlement.settle(snapshot)
        except Exception:
            logger.exception("Settlement of trade %s failed unexpectedly", snapshot.trade_id)
            result = SettlementResult(
                trade_id=snapshot.trade_id,
                succeeded=False,
                error="An error occurred during the trade.",
                balances=self.ledger.snapshot(),
            )
        if result.succeeded:
            self._dispatch(SettlementSucceeded(trade_id=result.trade_id))
        else:
            self._dispatch(SettlementFailed(trade_id=result.trade_id, error=result.error or "Trade failed"))
        return result


__all__ = ["CurrencyOption", "IconListing", "PriceFeed", "SwapDesk", "SwapView"]
