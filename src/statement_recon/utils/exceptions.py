"""Custom exceptions for the statement reconciliation engine."""


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class StatementParseError(ReconciliationError):
    """Bank statement file could not be read."""

    pass


class LedgerParseError(ReconciliationError):
    """Ledger entry export could not be read."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class ValidationError(ReconciliationError):
    """Caller input rejected before any state was changed."""

    pass


class InvariantViolation(ReconciliationError):
    """
    A record would belong to two matches at once.

    Callers are expected to check availability before committing, so this
    always indicates a logic bug rather than bad user input.
    """

    pass


class WizardStateError(ReconciliationError):
    """Import wizard operation is not allowed in the current step."""

    pass


class ReportGenerationError(ReconciliationError):
    """Error generating an export payload."""

    pass
