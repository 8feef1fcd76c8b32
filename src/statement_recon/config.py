"""Configuration loader and validation for reconciliation settings."""

from pathlib import Path
from typing import Any, Literal, Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class StatementInputConfig(BaseModel):
    """How to read bank statement files."""

    encoding: str = "utf-8"
    delimiter: str = ","
    date_format: str = "%Y-%m-%d"
    column_mappings: dict[str, str] = Field(
        default_factory=lambda: {
            "id": "ID",
            "date": "Date",
            "description": "Description",
            "reference": "Reference",
            "debit": "Debit",
            "credit": "Credit",
            "balance": "Balance",
        }
    )


class LedgerInputConfig(BaseModel):
    """How to read system (ledger) transaction files."""

    encoding: str = "utf-8"
    delimiter: str = ","
    date_format: str = "%Y-%m-%d"
    column_mappings: dict[str, str] = Field(
        default_factory=lambda: {
            "id": "ID",
            "date": "Date",
            "reference": "Reference",
            "description": "Description",
            "amount": "Amount",
            "type": "Type",
        }
    )


class InputConfig(BaseModel):
    """Configuration for input file parsing."""

    statement: StatementInputConfig = Field(default_factory=StatementInputConfig)
    ledger: LedgerInputConfig = Field(default_factory=LedgerInputConfig)


class MatchingConfig(BaseModel):
    """Candidate suggestion settings."""

    amount_tolerance: float = Field(default=0.01, gt=0)
    # 0 keeps suggestions to the same calendar day
    date_window_days: int = Field(default=0, ge=0)
    auto_match: bool = False
    # Save each match/unmatch to the backend as it happens
    persist_incrementally: bool = False


class BackendConfig(BaseModel):
    """Where imports come from and completed reconciliations go."""

    kind: Literal["local", "http"] = "local"
    base_url: str = "http://localhost:3000/api"
    api_token: Optional[str] = None
    timeout_seconds: float = 30.0
    history_file: str = "reconciliations.json"
    ledger_file: Optional[str] = None


class SheetConfig(BaseModel):
    """Configuration for a report sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all report sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    matched: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Matched Transactions"))
    unmatched_bank: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Unmatched Bank")
    )
    unmatched_system: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Unmatched System")
    )


class OutputConfig(BaseModel):
    """Configuration for output."""

    filename_template: str = "reconciliation_{account}_{date}_{time}.xlsx"
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class ReconConfig(BaseModel):
    """Main configuration model for reconciliation."""

    input: InputConfig = Field(default_factory=InputConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return ReconConfig().model_dump(exclude={"config_file_path"})


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(f"Top level of {config_path} must be a mapping")

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**config_dict)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Write the default configuration to a YAML file.

    Args:
        output_path: Path to write the configuration file
    """
    yaml_content = """# Bank statement reconciliation configuration
# matching.date_window_days widens suggestions beyond the same day
# backend.kind is "local" (JSON history file) or "http" (ERP API)

"""
    yaml_content += yaml.dump(get_default_config(), default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
