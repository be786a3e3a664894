from datetime import date
from decimal import Decimal

import pytest

from statement_recon.parsers.column_inference import ColumnMapping
from statement_recon.parsers.statement_parser import (
    StatementParser,
    parse_amount,
    parse_date,
)
from statement_recon.utils.exceptions import StatementParseError, ValidationError


class TestParseDate:
    def test_day_month_year(self):
        assert parse_date("15/03/2024") == date(2024, 3, 15)
        assert parse_date("5-3-2024") == date(2024, 3, 5)

    def test_year_first(self):
        assert parse_date("2024-03-15") == date(2024, 3, 15)
        assert parse_date("2024/3/5") == date(2024, 3, 5)

    def test_two_digit_year(self):
        assert parse_date("15/03/24") == date(2024, 3, 15)
        assert parse_date("15/03/99") == date(1999, 3, 15)

    def test_date_inside_text(self):
        assert parse_date("Posted 15/03/2024 10:31") == date(2024, 3, 15)

    def test_unreadable(self):
        assert parse_date("") is None
        assert parse_date("not a date") is None


class TestParseAmount:
    def test_currency_and_separators(self):
        assert parse_amount("$1,234.56") == Decimal("1234.56")
        assert parse_amount("-5") == Decimal("-5")

    def test_numeric_prefix(self):
        assert parse_amount("1.2.3") == Decimal("1.2")

    def test_nothing_numeric(self):
        assert parse_amount("N/A") is None
        assert parse_amount("") is None


class TestStatementParser:
    def test_parse_text_with_balance(self, config):
        text = (
            "Date,Description,Debit,Credit,Balance\n"
            "15/03/2024,Coffee,4.50,,995.50\n"
            "16/03/2024,Salary,,2000.00,2995.50\n"
        )
        result = StatementParser(config).parse_text(text)

        assert len(result.transactions) == 2
        coffee, salary = result.transactions
        assert coffee.transaction_date == date(2024, 3, 15)
        assert coffee.value_date == date(2024, 3, 15)
        assert coffee.debit == Decimal("4.50")
        assert coffee.credit == Decimal("0")
        assert coffee.running_balance == Decimal("995.50")
        assert salary.credit == Decimal("2000.00")
        assert result.closing_balance == Decimal("2995.50")
        assert result.warnings == []

    def test_ids_unique_within_batch(self, config):
        text = "Date,Description,Debit\n01/03/2024,A,1\n02/03/2024,B,2\n"
        result = StatementParser(config).parse_text(text)

        ids = [t.id for t in result.transactions]
        assert len(set(ids)) == 2
        assert all(i.startswith("import-") for i in ids)

    def test_running_balance_computed_without_column(self, config):
        text = "Date,Description,Debit,Credit\n01/03/2024,In,,100\n02/03/2024,Out,30,\n"
        result = StatementParser(config).parse_text(text)

        assert [t.running_balance for t in result.transactions] == [
            Decimal("100"),
            Decimal("70"),
        ]

    def test_unparsable_amount_becomes_zero(self, config):
        text = "Date,Description,Debit,Credit\n01/03/2024,Fee,N/A,\n"
        result = StatementParser(config).parse_text(text)

        assert result.transactions[0].debit == Decimal("0")
        assert len(result.warnings) == 1
        assert result.warnings[0].field == "debit"
        assert result.warnings[0].raw_value == "N/A"

    def test_unreadable_date_falls_back_to_today(self, config):
        text = "Date,Description,Debit\nsomeday,Fee,1\n"
        result = StatementParser(config).parse_text(text)

        assert result.transactions[0].transaction_date == date.today()
        assert result.warnings[0].field == "date"

    def test_header_only_file(self, config):
        result = StatementParser(config).parse_text("Date,Description,Debit,Credit\n")
        assert result.transactions == []

    def test_rows_without_date_or_description_skipped(self, config):
        text = "Date,Description,Debit\n01/03/2024,,5\n,Fee,5\n02/03/2024,Fee,5\n"
        result = StatementParser(config).parse_text(text)

        assert len(result.transactions) == 1
        assert result.skipped_rows == [0, 1]

    def test_short_rows_are_padded(self, config):
        text = "Date,Description,Debit,Credit\n01/03/2024,Fee\n"
        result = StatementParser(config).parse_text(text)

        assert result.transactions[0].debit == Decimal("0")
        assert result.transactions[0].credit == Decimal("0")

    def test_negative_debit_moves_to_credit(self, config):
        text = "Date,Description,Debit,Credit\n01/03/2024,Refund,-20,\n"
        result = StatementParser(config).parse_text(text)

        txn = result.transactions[0]
        assert txn.debit == Decimal("0")
        assert txn.credit == Decimal("20")
        assert result.warnings[0].field == "amount"

    def test_explicit_mapping_without_headers(self, config):
        parser = StatementParser(config)
        rows = parser.read_rows("ref-1,01/03/2024,Coffee,4.50\n")
        mapping = ColumnMapping.from_fields(
            {"reference": 0, "date": 1, "description": 2, "debit": 3}
        )
        result = parser.parse_rows(rows, mapping, has_headers=False)

        txn = result.transactions[0]
        assert txn.reference == "ref-1"
        assert txn.description == "Coffee"
        assert txn.debit == Decimal("4.50")

    def test_missing_required_mapping(self, config):
        parser = StatementParser(config)
        rows = parser.read_rows("Date,Amount\n01/03/2024,5\n")
        mapping = parser.propose_mapping(rows, has_headers=True)

        with pytest.raises(ValidationError, match="Description"):
            parser.parse_rows(rows, mapping, has_headers=True)

    def test_parse_file(self, config, statement_file):
        result = StatementParser(config).parse_file(statement_file)
        assert [t.description for t in result.transactions] == [
            "Opening deposit",
            "ACME Supplies",
        ]

    def test_missing_file(self, config, tmp_path):
        with pytest.raises(StatementParseError):
            StatementParser(config).parse_file(tmp_path / "missing.csv")

    def test_from_records(self, config):
        records = [
            {
                "id": "T1",
                "transactionDate": "2024-03-15",
                "description": " Transfer ",
                "debit": 10,
                "credit": None,
                "reference": "R9",
            },
            {"transactionDate": date(2024, 3, 16), "description": "Interest", "credit": "1.25"},
        ]
        result = StatementParser(config).from_records(records)

        first, second = result.transactions
        assert first.id == "T1"
        assert first.description == "Transfer"
        assert first.debit == Decimal("10")
        assert first.reference == "R9"
        assert first.running_balance == Decimal("-10")
        assert second.id.startswith("import-")
        assert second.credit == Decimal("1.25")
        assert second.running_balance == Decimal("-8.75")

    def test_from_records_missing_amount_cells(self, config):
        records = [
            {
                "transactionDate": "2024-03-01",
                "description": "Fee",
                "debit": float("nan"),
                "credit": 5,
            },
            {"transactionDate": "2024-03-02", "description": "Refund", "credit": Decimal("Infinity")},
        ]
        result = StatementParser(config).from_records(records)

        first, second = result.transactions
        assert first.debit == Decimal("0")
        assert first.credit == Decimal("5")
        assert second.credit == Decimal("0")
        assert [(w.row_index, w.field) for w in result.warnings] == [(0, "debit"), (1, "credit")]
