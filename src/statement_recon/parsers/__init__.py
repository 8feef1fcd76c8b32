"""Parsers for bank statement and ledger files."""

from .statement_parser import StatementParser
from .ledger_parser import LedgerParser

__all__ = ["StatementParser", "LedgerParser"]
