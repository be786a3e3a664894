"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    StatementParseError,
    LedgerParseError,
    ConfigurationError,
    ValidationError,
    InvariantViolation,
    WizardStateError,
    ReportGenerationError,
)
from .logging_config import setup_logging, get_logger, level_from_name

__all__ = [
    "ReconciliationError",
    "StatementParseError",
    "LedgerParseError",
    "ConfigurationError",
    "ValidationError",
    "InvariantViolation",
    "WizardStateError",
    "ReportGenerationError",
    "setup_logging",
    "get_logger",
    "level_from_name",
]
