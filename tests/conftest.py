"""Shared fixtures and helpers for the statement reconciliation test suite."""

import logging
from datetime import date
from decimal import Decimal

import pytest

from statement_recon.config import ReconConfig
from statement_recon.models.statement import LedgerEntry, StatementTransaction
from statement_recon.reconciliation.session import ReconciliationSession

ACCOUNT = "1000"
STATEMENT_DATE = date(2024, 3, 31)

STATEMENT_CSV = """Date,Description,Debit,Credit,Balance
01/03/2024,Opening deposit,,1000.00,1000.00
05/03/2024,ACME Supplies,250.00,,750.00
"""

LEDGER_CSV = """Entry_ID,Account_ID,Account_Name,Date,Description,Debit,Credit,Document_Number
GL-1,1000,Operating,2024-03-01,Opening deposit,,1000.00,
GL-2,1000,Operating,2024-03-05,ACME Supplies,250.00,,INV-7
GL-3,2000,Petty Cash,2024-03-05,Elsewhere,10.00,,
"""


def _txn(
    id: str = "B1",
    day: int = 15,
    description: str = "Payment",
    debit: str = "0",
    credit: str = "0",
    reference=None,
) -> StatementTransaction:
    """Helper to create a statement line in March 2024."""
    return StatementTransaction(
        id=id,
        transaction_date=date(2024, 3, day),
        description=description,
        debit=Decimal(debit),
        credit=Decimal(credit),
        reference=reference,
    )


def _entry(
    id: str = "G1",
    day: int = 15,
    description: str = "Payment",
    debit: str = "0",
    credit: str = "0",
    document=None,
    account_id: str = ACCOUNT,
) -> LedgerEntry:
    """Helper to create a ledger entry in March 2024."""
    return LedgerEntry(
        id=id,
        account_id=account_id,
        transaction_date=date(2024, 3, day),
        description=description,
        debit=Decimal(debit),
        credit=Decimal(credit),
        source_document_number=document,
    )


@pytest.fixture
def config():
    """Default configuration without the wizard's step delay."""
    recon_config = ReconConfig()
    recon_config.wizard.step_delay_seconds = 0
    return recon_config


@pytest.fixture
def make_txn():
    return _txn


@pytest.fixture
def make_entry():
    return _entry


@pytest.fixture
def make_session():
    """Factory for sessions on the test account."""

    def factory(transactions=(), entries=(), statement_balance="0", book_balance="0", **kwargs):
        return ReconciliationSession(
            bank_account_id=ACCOUNT,
            statement_date=STATEMENT_DATE,
            statement_balance=Decimal(statement_balance),
            book_balance=Decimal(book_balance),
            statement_transactions=transactions,
            ledger_entries=entries,
            **kwargs,
        )

    return factory


@pytest.fixture
def statement_file(tmp_path):
    path = tmp_path / "statement.csv"
    path.write_text(STATEMENT_CSV)
    return path


@pytest.fixture
def ledger_file(tmp_path):
    path = tmp_path / "ledger.csv"
    path.write_text(LEDGER_CSV)
    return path


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by the CLI so later tests never write to a closed stream."""
    yield
    logging.getLogger("statement_recon").handlers = []
