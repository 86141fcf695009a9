# Run via uv for access to dev deps, e.g.:
# uv run scripts/swap_probe.py --source ETH --target USD --amount 1.5 --delay 0.5
from __future__ import annotations

import argparse
import asyncio
import logging

from swap_simulator.services.price_feed_client import PriceFeedClient
from swap_simulator.services.settlement import SettlementService
from swap_simulator.services.swap_desk import SwapDesk, SwapView
from swap_simulator.services.token_icons import TokenIconClient


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one simulated swap against the live price feed.")
    parser.add_argument("--source", default="ETH", help="Currency to sell (default: ETH).")
    parser.add_argument("--target", default="USD", help="Currency to buy (default: USD).")
    parser.add_argument("--amount", default="1", help="Amount as typed into the form (default: 1).")
    parser.add_argument("--delay", type=float, default=None, help="Settlement delay in seconds.")
    parser.add_argument("--icons", action="store_true", help="Also resolve token icon URLs.")
    return parser.parse_args()


def print_view(label: str, view: SwapView) -> None:
    print(
        f"[{label}] {view.status} {view.amount_text or '-'} {view.source_currency} -> "
        f"{view.quote_display} {view.target_currency}"
        f"{' (quote unavailable)' if view.quote_unavailable else ''}"
        f"{' (insufficient funds)' if view.insufficient_funds else ''}",
    )
    if view.message is not None:
        print(f"[{label}] {view.message.kind}: {view.message.text}")


async def run(args: argparse.Namespace) -> None:
    desk = SwapDesk()
    desk.settlement = SettlementService(desk.ledger, delay_seconds=args.delay)

    if args.icons:
        await desk.refresh_icons(TokenIconClient())
    view = await desk.refresh_prices(PriceFeedClient())
    print(f"Loaded {len(view.options)} currencies")

    desk.select_source(args.source)
    desk.select_target(args.target)
    print_view("quote", desk.edit_amount(args.amount))

    view = desk.request_trade()
    if view.confirmation_text is None:
        print_view("refused", view)
        return
    print(view.confirmation_text)

    print_view("confirm", await desk.confirm())
    result = await desk.wait_for_settlement()
    print_view("settled", desk.view())
    if result is not None:
        for code, balance in sorted(desk.view().nonzero_balances.items()):
            print(f"  {code}: {balance}")


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    asyncio.run(run(parse_args()))


if __name__ == "__main__":
    main()
