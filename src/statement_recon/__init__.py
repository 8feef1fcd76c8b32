"""Bank statement reconciliation: match imported statement lines to ledger transactions."""

__version__ = "0.1.0"
