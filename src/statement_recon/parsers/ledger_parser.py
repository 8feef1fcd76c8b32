"""
Ledger (system transaction) parser.
Reads CSV or JSON exports of ledger transactions that are candidates for
matching against a bank statement.
"""

from pathlib import Path
from typing import Optional
import logging

import pandas as pd

from ..config import ReconConfig
from ..models.transaction import SystemTransaction, TransactionType
from .common import TabularParser

logger = logging.getLogger(__name__)


class LedgerParser(TabularParser):
    """Parser for ledger transaction exports."""

    def __init__(self, config: ReconConfig):
        ledger_config = config.input.ledger
        super().__init__(
            column_mappings=ledger_config.column_mappings,
            encoding=ledger_config.encoding,
            delimiter=ledger_config.delimiter,
            date_format=ledger_config.date_format,
            aliases={"date": ["entryDate"]},
        )

    def parse_file(self, file_path: Path) -> list[SystemTransaction]:
        """
        Parse a ledger file and return system transactions.

        Raises:
            StatementParseError: If the file cannot be read
        """
        logger.info(f"Parsing ledger file: {file_path}")

        df = self.read_frame(file_path)
        columns = self.resolve_columns(df)

        transactions: list[SystemTransaction] = []
        for idx, row in df.iterrows():
            txn = self._normalize_row(row, int(idx), columns)
            if txn:
                transactions.append(txn)

        logger.info(f"Extracted {len(transactions)} ledger transactions from {file_path.name}")
        return transactions

    def _normalize_row(
        self, row: pd.Series, idx: int, columns: dict[str, Optional[str]]
    ) -> Optional[SystemTransaction]:
        txn_date = self.parse_date(self.cell(row, columns.get("date")))
        if not txn_date:
            logger.warning(f"Ledger row {idx}: Invalid date, skipping")
            return None

        amount = self.parse_amount(self.cell(row, columns.get("amount")))
        if amount is None or amount == 0:
            logger.warning(f"Ledger row {idx}: No valid amount found, skipping")
            return None

        type_text = self.text(row, columns.get("type")).lower()
        if type_text in ("debit", "dr", "d"):
            txn_type = TransactionType.DEBIT
        elif type_text in ("credit", "cr", "c"):
            txn_type = TransactionType.CREDIT
        elif type_text:
            logger.warning(f"Ledger row {idx}: Unknown type '{type_text}', skipping")
            return None
        else:
            # No type column: the sign decides
            txn_type = TransactionType.CREDIT if amount < 0 else TransactionType.DEBIT

        return SystemTransaction(
            id=self.text(row, columns.get("id")) or f"SYS-{idx + 1:05d}",
            date=txn_date,
            amount=abs(amount),
            type=txn_type,
            reference=self.text(row, columns.get("reference")),
            description=self.text(row, columns.get("description")),
            raw_data={str(k): v for k, v in row.to_dict().items()},
        )
