from decimal import Decimal

import pytest

from swap_simulator.domain.balance_ledger import BalanceLedger
from swap_simulator.domain.prices import PriceTable, build_price_table
from swap_simulator.domain.session import SwapContext
from tests.constants import ETH, USD
from tests.helpers.price_feed import scenario_feed


@pytest.fixture(scope="function")
def price_table() -> PriceTable:
    return build_price_table(scenario_feed())


@pytest.fixture(scope="function")
def ledger() -> BalanceLedger:
    return BalanceLedger({ETH: Decimal("10"), USD: Decimal("1000")})


@pytest.fixture(scope="function")
def swap_context(price_table: PriceTable, ledger: BalanceLedger) -> SwapContext:
    return SwapContext(prices=price_table, ledger=ledger)
