"""Bank statement import and reconciliation matching engine."""

__version__ = "0.1.0"
