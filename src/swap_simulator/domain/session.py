"""Swap form state machine.

The session is an immutable value; every user action or settlement outcome is
an event fed to :func:`reduce`, which returns the next session plus the effects
the caller has to run (start or cancel a settlement). Nothing here performs I/O.

Status flow::

    IDLE -> AWAITING_CONFIRMATION -> PROCESSING -> IDLE
                                                -> ERROR -> IDLE
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import StrEnum
from typing import Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .amounts import InvalidAmountError, normalize_amount_text, sanitize, sanitize_display
from .balance_ledger import BalanceLedger
from .prices import PriceTable
from .quotes import EMPTY_QUOTE, Quote, quote


class SwapStatus(StrEnum):
    IDLE = "IDLE"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
    PROCESSING = "PROCESSING"
    ERROR = "ERROR"


class SwapErrorKind(StrEnum):
    INVALID_AMOUNT = "INVALID_AMOUNT"
    MISSING_SELECTION = "MISSING_SELECTION"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    SETTLEMENT_FAILURE = "SETTLEMENT_FAILURE"
    QUOTE_UNAVAILABLE = "QUOTE_UNAVAILABLE"


@dataclass(frozen=True)
class SwapMessage:
    kind: SwapErrorKind
    text: str


class TradeSnapshot(BaseModel):
    """What the user confirmed. Settlement works from this, never from the live session."""

    model_config = ConfigDict(frozen=True)

    trade_id: UUID = Field(default_factory=uuid4)
    amount: Decimal
    quote: Decimal
    source_currency: str
    target_currency: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def _validate_fields(self) -> TradeSnapshot:
        if self.amount <= 0:
            raise ValueError("amount must be > 0")
        if self.quote < 0:
            raise ValueError("quote must be >= 0")
        if self.source_currency == self.target_currency:
            raise ValueError("source and target currency must differ")
        return self


@dataclass(frozen=True)
class SwapSession:
    source_currency: str | None = None
    target_currency: str | None = None
    amount: Decimal | None = None
    amount_text: str = ""
    quote: Quote = EMPTY_QUOTE
    insufficient_funds: bool = False
    status: SwapStatus = SwapStatus.IDLE
    pending: TradeSnapshot | None = None
    message: SwapMessage | None = None

    @property
    def locked(self) -> bool:
        return self.status is SwapStatus.PROCESSING


@dataclass(frozen=True)
class SwapContext:
    """Read-only collaborators the reducer consults."""

    prices: PriceTable
    ledger: BalanceLedger
    preferred_source: str = "ETH"
    preferred_target: str = "USD"


# Events


@dataclass(frozen=True)
class SelectSource:
    currency: str | None


@dataclass(frozen=True)
class SelectTarget:
    currency: str | None


@dataclass(frozen=True)
class EditAmount:
    text: str


@dataclass(frozen=True)
class UseMaxAmount:
    pass


@dataclass(frozen=True)
class Invert:
    pass


@dataclass(frozen=True)
class RequestTrade:
    pass


@dataclass(frozen=True)
class Confirm:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class Acknowledge:
    pass


@dataclass(frozen=True)
class PricesUpdated:
    pass


@dataclass(frozen=True)
class SettlementSucceeded:
    trade_id: UUID


@dataclass(frozen=True)
class SettlementFailed:
    trade_id: UUID
    error: str


UserEvent = Union[
    SelectSource, SelectTarget, EditAmount, UseMaxAmount, Invert, RequestTrade, Confirm, Cancel, Acknowledge
]
SwapEvent = Union[UserEvent, PricesUpdated, SettlementSucceeded, SettlementFailed]

# Effects


@dataclass(frozen=True)
class StartSettlement:
    snapshot: TradeSnapshot


@dataclass(frozen=True)
class CancelSettlement:
    trade_id: UUID


SwapEffect = Union[StartSettlement, CancelSettlement]


@dataclass(frozen=True)
class Transition:
    session: SwapSession
    effects: tuple[SwapEffect, ...] = field(default_factory=tuple)


_LOCKED_EVENTS = (SelectSource, SelectTarget, EditAmount, UseMaxAmount, Invert, RequestTrade, Confirm, Acknowledge)


def default_pair(context: SwapContext) -> tuple[str | None, str | None]:
    """Preferred pair when the table lists both, otherwise the first two currencies."""
    prices = context.prices
    if (
        context.preferred_source in prices
        and context.preferred_target in prices
        and context.preferred_source != context.preferred_target
    ):
        return context.preferred_source, context.preferred_target

    codes = prices.currencies()
    source = codes[0] if codes else None
    target = codes[1] if len(codes) > 1 else None
    return source, target


def initial_session(context: SwapContext) -> SwapSession:
    source, target = default_pair(context)
    return _recompute(SwapSession(source_currency=source, target_currency=target), context)


def target_options(context: SwapContext, session: SwapSession) -> list[str]:
    return [code for code in context.prices if code != session.source_currency]


def reduce(session: SwapSession, event: SwapEvent, context: SwapContext) -> Transition:
    if isinstance(event, SettlementSucceeded):
        return _settlement_succeeded(session, event, context)
    if isinstance(event, SettlementFailed):
        return _settlement_failed(session, event)
    if isinstance(event, PricesUpdated):
        return _prices_updated(session, context)

    if session.locked:
        if isinstance(event, Cancel):
            return _cancel_processing(session)
        if isinstance(event, _LOCKED_EVENTS):
            return Transition(session)

    if isinstance(event, EditAmount):
        # A rejected keystroke is not an action: nothing changes, not even the error banner.
        try:
            amount = sanitize(event.text)
        except InvalidAmountError:
            return Transition(session)
        base = _begin_user_action(session)
        return Transition(
            _recompute(replace(base, amount=amount, amount_text=normalize_amount_text(event.text)), context)
        )

    base = _begin_user_action(session)
    if isinstance(event, Acknowledge):
        return Transition(base)
    if isinstance(event, SelectSource):
        return Transition(_select_source(base, event.currency, context))
    if isinstance(event, SelectTarget):
        return Transition(_select_target(base, event.currency, context))
    if isinstance(event, Invert):
        inverted = replace(base, source_currency=base.target_currency, target_currency=base.source_currency)
        return Transition(_recompute(inverted, context))
    if isinstance(event, UseMaxAmount):
        if base.source_currency is None:
            return Transition(base)
        amount = context.ledger.balance_of(base.source_currency)
        return Transition(_recompute(replace(base, amount=amount, amount_text=sanitize_display(amount)), context))
    if isinstance(event, RequestTrade):
        return Transition(_request_trade(base, context))
    if isinstance(event, Confirm):
        if base.status is not SwapStatus.AWAITING_CONFIRMATION or base.pending is None:
            return Transition(base)
        return Transition(
            replace(base, status=SwapStatus.PROCESSING),
            (StartSettlement(snapshot=base.pending),),
        )
    if isinstance(event, Cancel):
        return Transition(replace(base, status=SwapStatus.IDLE, pending=None))

    raise TypeError(f"Unsupported swap event: {event!r}")


def _begin_user_action(session: SwapSession) -> SwapSession:
    if session.status is SwapStatus.ERROR:
        return replace(session, status=SwapStatus.IDLE, message=None)
    return replace(session, message=None)


def _recompute(session: SwapSession, context: SwapContext) -> SwapSession:
    current_quote = quote(context.prices, session.source_currency, session.target_currency, session.amount)
    insufficient = (
        session.source_currency is not None
        and session.amount is not None
        and not context.ledger.sufficient_for(session.source_currency, session.amount)
    )
    return replace(session, quote=current_quote, insufficient_funds=insufficient)


def _select_source(session: SwapSession, currency: str | None, context: SwapContext) -> SwapSession:
    if currency is not None and currency not in context.prices:
        return session

    target = session.target_currency
    if currency is not None and currency == target:
        # The new source leaves the target list; hand the target the old source.
        target = session.source_currency
    return _recompute(replace(session, source_currency=currency, target_currency=target), context)


def _select_target(session: SwapSession, currency: str | None, context: SwapContext) -> SwapSession:
    if currency is not None and (currency not in context.prices or currency == session.source_currency):
        return session
    return _recompute(replace(session, target_currency=currency), context)


def _request_trade(session: SwapSession, context: SwapContext) -> SwapSession:
    session = _recompute(session, context)
    source, target, amount = session.source_currency, session.target_currency, session.amount
    if not source or not target or amount is None or amount <= 0:
        return replace(
            session,
            message=SwapMessage(SwapErrorKind.MISSING_SELECTION, "Please enter a valid amount to swap."),
        )
    if session.insufficient_funds:
        return replace(
            session,
            message=SwapMessage(SwapErrorKind.INSUFFICIENT_BALANCE, f"Insufficient {source} balance!"),
        )
    if session.quote.unavailable:
        return replace(
            session,
            message=SwapMessage(SwapErrorKind.QUOTE_UNAVAILABLE, f"No price available for {source}/{target}."),
        )

    snapshot = TradeSnapshot(
        amount=amount,
        quote=session.quote.value,
        source_currency=source,
        target_currency=target,
    )
    return replace(session, status=SwapStatus.AWAITING_CONFIRMATION, pending=snapshot)


def _cancel_processing(session: SwapSession) -> Transition:
    if session.pending is None:
        return Transition(replace(session, status=SwapStatus.IDLE))
    return Transition(
        replace(session, status=SwapStatus.IDLE, pending=None),
        (CancelSettlement(trade_id=session.pending.trade_id),),
    )


def _is_pending(session: SwapSession, trade_id: UUID) -> bool:
    return (
        session.status is SwapStatus.PROCESSING
        and session.pending is not None
        and session.pending.trade_id == trade_id
    )


def _settlement_succeeded(session: SwapSession, event: SettlementSucceeded, context: SwapContext) -> Transition:
    if not _is_pending(session, event.trade_id):
        return Transition(session)
    settled = replace(
        session,
        status=SwapStatus.IDLE,
        pending=None,
        amount=None,
        amount_text="",
        message=None,
    )
    return Transition(_recompute(settled, context))


def _settlement_failed(session: SwapSession, event: SettlementFailed) -> Transition:
    if not _is_pending(session, event.trade_id):
        return Transition(session)
    return Transition(
        replace(
            session,
            status=SwapStatus.ERROR,
            pending=None,
            message=SwapMessage(SwapErrorKind.SETTLEMENT_FAILURE, event.error),
        )
    )


def _prices_updated(session: SwapSession, context: SwapContext) -> Transition:
    if session.source_currency is None and session.target_currency is None:
        source, target = default_pair(context)
        session = replace(session, source_currency=source, target_currency=target)
    return Transition(_recompute(session, context))


__all__ = [
    "Acknowledge",
    "Cancel",
    "CancelSettlement",
    "Confirm",
    "EditAmount",
    "Invert",
    "PricesUpdated",
    "RequestTrade",
    "SelectSource",
    "SelectTarget",
    "SettlementFailed",
    "SettlementSucceeded",
    "StartSettlement",
    "SwapContext",
    "SwapEffect",
    "SwapErrorKind",
    "SwapEvent",
    "SwapMessage",
    "SwapSession",
    "SwapStatus",
    "Transition",
    "TradeSnapshot",
    "UseMaxAmount",
    "default_pair",
    "initial_session",
    "reduce",
    "target_options",
]
