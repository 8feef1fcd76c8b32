"""
Bank statement parser.
Reads CSV (Date, Description, Reference, Debit, Credit, Balance) or an
equivalent JSON array into bank transactions.
"""

from pathlib import Path
from typing import Optional
import logging

import pandas as pd

from ..config import ReconConfig
from ..models.transaction import ZERO, BankTransaction
from .common import TabularParser

logger = logging.getLogger(__name__)


class StatementParser(TabularParser):
    """Parser for bank statement exports."""

    def __init__(self, config: ReconConfig):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object
        """
        statement_config = config.input.statement
        super().__init__(
            column_mappings=statement_config.column_mappings,
            encoding=statement_config.encoding,
            delimiter=statement_config.delimiter,
            date_format=statement_config.date_format,
            aliases={
                "balance": ["runningBalance", "running_balance"],
                "date": ["transactionDate"],
            },
        )

    def parse_file(self, file_path: Path) -> list[BankTransaction]:
        """
        Parse a statement file and return bank transactions.

        Args:
            file_path: Path to the CSV or JSON file

        Returns:
            Bank transactions in file order

        Raises:
            StatementParseError: If the file cannot be read
        """
        logger.info(f"Parsing bank statement: {file_path}")

        df = self.read_frame(file_path)
        transactions = self._process_dataframe(df)

        logger.info(f"Extracted {len(transactions)} transactions from {file_path.name}")
        return transactions

    def _process_dataframe(self, df: pd.DataFrame) -> list[BankTransaction]:
        columns = self.resolve_columns(df)
        transactions: list[BankTransaction] = []

        for idx, row in df.iterrows():
            txn = self._normalize_row(row, int(idx), columns)
            if txn:
                transactions.append(txn)

        return transactions

    def _normalize_row(
        self, row: pd.Series, idx: int, columns: dict[str, Optional[str]]
    ) -> Optional[BankTransaction]:
        """
        Convert a row to a BankTransaction.

        Returns:
            The transaction, or None if the row has no usable date or amount
        """
        txn_date = self.parse_date(self.cell(row, columns.get("date")))
        if not txn_date:
            logger.warning(f"Row {idx}: Invalid date, skipping")
            return None

        debit = self.parse_amount(self.cell(row, columns.get("debit"))) or ZERO
        credit = self.parse_amount(self.cell(row, columns.get("credit"))) or ZERO

        # A single signed column exported into Debit: negative means money in
        if debit < 0 and credit == 0:
            debit, credit = ZERO, -debit
        if credit < 0 and debit == 0:
            debit, credit = -credit, ZERO

        if debit == 0 and credit == 0:
            logger.warning(f"Row {idx}: No valid amount found, skipping")
            return None

        txn_id = self.text(row, columns.get("id")) or f"BANK-{idx + 1:05d}"

        return BankTransaction(
            id=txn_id,
            date=txn_date,
            description=self.text(row, columns.get("description")),
            reference=self.text(row, columns.get("reference")),
            debit=debit,
            credit=credit,
            running_balance=self.parse_amount(self.cell(row, columns.get("balance"))),
            raw_data={str(k): v for k, v in row.to_dict().items()},
        )
