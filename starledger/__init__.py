"""Hash-chained block ledger with value hashing, JSON views, certified HTTP metadata and an asset mapping registry."""

__version__ = "0.1.0"