"""access-ledger: effective-permission resolution and hash-chained audit trail."""

__version__ = "0.1.0"
