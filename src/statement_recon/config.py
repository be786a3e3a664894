"""Configuration loader and validation for reconciliation settings."""

from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Order matters: the first field whose keywords hit the header wins.
DEFAULT_COLUMN_KEYWORDS: dict[str, list[str]] = {
    "date": ["date", "posted"],
    "description": ["description", "narrative", "details"],
    "debit": ["debit", "withdrawal", "payment"],
    "credit": ["credit", "deposit", "receipt"],
    "balance": ["balance"],
    "reference": ["reference", "ref", "cheque"],
}


class StatementInputConfig(BaseModel):
    """Configuration for bank statement CSV parsing."""

    encoding: str = "utf-8"
    delimiter: str = ","
    has_headers: bool = True
    id_prefix: str = "import"
    column_keywords: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_COLUMN_KEYWORDS.items()}
    )


class LedgerInputConfig(BaseModel):
    """Configuration for ledger entry CSV exports."""

    encoding: str = "utf-8"
    delimiter: str = ","
    date_format: str = "%Y-%m-%d"
    column_mappings: dict[str, str] = Field(
        default_factory=lambda: {
            "id": "Entry_ID",
            "account_id": "Account_ID",
            "account_name": "Account_Name",
            "date": "Date",
            "description": "Description",
            "debit": "Debit",
            "credit": "Credit",
            "source_document_number": "Document_Number",
        }
    )


class InputConfig(BaseModel):
    """Configuration for input parsing."""

    statement: StatementInputConfig = Field(default_factory=StatementInputConfig)
    ledger: LedgerInputConfig = Field(default_factory=LedgerInputConfig)


class MatchingSettings(BaseModel):
    """Thresholds for scoring-based and import-time matching."""

    auto_match_threshold: int = Field(default=85, ge=0, le=100)
    suggestion_threshold: int = Field(default=40, ge=0, le=100)
    suggestion_limit: int = Field(default=5, ge=1)
    import_amount_tolerance: float = 0.01
    import_date_window_days: int = 7
    import_description_prefix: int = 10
    auto_match_user: str = "auto-match"
    default_strategy: str = "strict"


class MatchingConfig(BaseModel):
    """Configuration for matching engine."""

    settings: MatchingSettings = Field(default_factory=MatchingSettings)


class WizardConfig(BaseModel):
    """Configuration for the import wizard."""

    step_delay_seconds: float = Field(default=0.01, ge=0)


class ExcelOutputConfig(BaseModel):
    """Configuration for Excel output."""

    filename_template: str = "reconciliation_{account}_{date}.xlsx"
    include_timestamp: bool = True


class CsvOutputConfig(BaseModel):
    """Configuration for the tabular CSV export."""

    file_prefix: str = "reconciliation"


class SheetConfig(BaseModel):
    """Configuration for a report sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all report sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    matched: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Matched Transactions"))
    unmatched_bank: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Unmatched Bank Items")
    )
    unmatched_book: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Unmatched Book Items")
    )


class OutputConfig(BaseModel):
    """Configuration for output."""

    excel: ExcelOutputConfig = Field(default_factory=ExcelOutputConfig)
    csv: CsvOutputConfig = Field(default_factory=CsvOutputConfig)
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ReconConfig(BaseModel):
    """Main configuration model for reconciliation."""

    input: InputConfig = Field(default_factory=InputConfig)
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    wizard: WizardConfig = Field(default_factory=WizardConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "input": {
            "statement": {
                "encoding": "utf-8",
                "delimiter": ",",
                "has_headers": True,
                "id_prefix": "import",
                "column_keywords": {k: list(v) for k, v in DEFAULT_COLUMN_KEYWORDS.items()},
            },
            "ledger": {
                "encoding": "utf-8",
                "delimiter": ",",
                "date_format": "%Y-%m-%d",
                "column_mappings": {
                    "id": "Entry_ID",
                    "account_id": "Account_ID",
                    "account_name": "Account_Name",
                    "date": "Date",
                    "description": "Description",
                    "debit": "Debit",
                    "credit": "Credit",
                    "source_document_number": "Document_Number",
                },
            },
        },
        "matching": {
            "settings": {
                "auto_match_threshold": 85,
                "suggestion_threshold": 40,
                "suggestion_limit": 5,
                "import_amount_tolerance": 0.01,
                "import_date_window_days": 7,
                "import_description_prefix": 10,
                "auto_match_user": "auto-match",
                "default_strategy": "strict",
            },
        },
        "wizard": {
            "step_delay_seconds": 0.01,
        },
        "output": {
            "excel": {
                "filename_template": "reconciliation_{account}_{date}.xlsx",
                "include_timestamp": True,
            },
            "csv": {
                "file_prefix": "reconciliation",
            },
            "sheets": {
                "summary": {"enabled": True, "name": "Summary"},
                "matched": {"enabled": True, "name": "Matched Transactions"},
                "unmatched_bank": {"enabled": True, "name": "Unmatched Bank Items"},
                "unmatched_book": {"enabled": True, "name": "Unmatched Book Items"},
            },
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        },
    }


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
            raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

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
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()

    yaml_content = """# Bank Statement Reconciliation Configuration
# Generated configuration file - customize as needed

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
