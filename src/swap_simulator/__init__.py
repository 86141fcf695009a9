"""Currency swap simulator: price table, quotes, balance ledger and swap session."""

__version__ = "0.1.0"
