"""Domain logic for the currency swap simulator.

Pure, I/O-free pieces: the price table built from the raw feed, quotes,
amount parsing, the balance ledger and the swap session state machine. The
services package wires them to HTTP clients and asyncio.
"""

__all__ = [
    "amounts",
    "balance_ledger",
    "prices",
    "quotes",
    "session",
]
