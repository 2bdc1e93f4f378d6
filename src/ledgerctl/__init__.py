"""ledgerctl — plain-text double-entry ledger parser and checker."""

__version__ = "0.4.0"
