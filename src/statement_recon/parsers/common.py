"""Shared helpers for reading tabular CSV/JSON transaction files."""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional
import logging

import pandas as pd

from ..utils.exceptions import StatementParseError

logger = logging.getLogger(__name__)

JSON_SUFFIXES = {".json"}


class TabularParser:
    """
    Base class for parsers that turn a CSV or JSON file into rows.

    Column names are resolved case-insensitively, so a CSV header ``Date``
    and a JSON key ``date`` both satisfy the mapping ``date: Date``.
    """

    def __init__(
        self,
        column_mappings: dict[str, str],
        encoding: str = "utf-8",
        delimiter: str = ",",
        date_format: str = "%Y-%m-%d",
        aliases: Optional[dict[str, list[str]]] = None,
    ):
        self.column_mappings = column_mappings
        self.encoding = encoding
        self.delimiter = delimiter
        self.date_format = date_format
        self.aliases = aliases or {}

    def read_frame(self, file_path: Path) -> pd.DataFrame:
        """
        Read a CSV or JSON array file into a DataFrame of strings.

        Raises:
            StatementParseError: If the file cannot be read
        """
        try:
            if file_path.suffix.lower() in JSON_SUFFIXES:
                df = pd.read_json(
                    file_path,
                    orient="records",
                    encoding=self.encoding,
                    dtype=False,
                    convert_dates=False,
                )
            else:
                df = pd.read_csv(
                    file_path,
                    encoding=self.encoding,
                    delimiter=self.delimiter,
                    dtype=str,
                    skipinitialspace=True,
                )
        except Exception as e:
            logger.error(f"Failed to read {file_path}: {e}")
            raise StatementParseError(f"Failed to read {file_path}: {e}") from e

        return df

    def resolve_columns(self, df: pd.DataFrame) -> dict[str, Optional[str]]:
        """Map each logical field to the actual column name present in ``df``."""
        lookup = {str(col).strip().lower(): col for col in df.columns}
        resolved: dict[str, Optional[str]] = {}

        for field_name, column in self.column_mappings.items():
            names = [column, field_name] + self.aliases.get(field_name, [])
            resolved[field_name] = next(
                (lookup[n.lower()] for n in names if n.lower() in lookup), None
            )

        return resolved

    def parse_date(self, value: Any) -> Optional[date]:
        """Parse a date cell, falling back to the pandas parser."""
        if _is_missing(value):
            return None

        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value

        text = str(value).strip()
        try:
            return datetime.strptime(text, self.date_format).date()
        except ValueError:
            try:
                return pd.to_datetime(text).date()
            except (ValueError, TypeError):
                return None

    def parse_amount(self, value: Any) -> Optional[Decimal]:
        """Parse an amount cell, ignoring currency symbols and separators."""
        if _is_missing(value):
            return None

        text = str(value).replace("$", "").replace(",", "").strip()
        if not text:
            return None
        # Accounting style negatives: (123.45)
        if text.startswith("(") and text.endswith(")"):
            text = "-" + text[1:-1]

        try:
            return Decimal(text)
        except InvalidOperation:
            return None

    @staticmethod
    def cell(row: pd.Series, column: Optional[str]) -> Any:
        if column is None:
            return None
        value = row.get(column)
        return None if _is_missing(value) else value

    @staticmethod
    def text(row: pd.Series, column: Optional[str]) -> str:
        value = TabularParser.cell(row, column)
        return "" if value is None else str(value).strip()


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False
