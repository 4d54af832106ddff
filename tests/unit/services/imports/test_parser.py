import json
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from app.schemas.transaction import TransactionRow
from app.services.imports.parser import (
    TransactionCSVParser,
    row_to_dict,
    validate_row,
)


class RecordingPersister:
    def __init__(self):
        self.accepted = []
        self.rejected = []

    async def add_accepted(self, row):
        self.accepted.append(row)

    async def add_rejected(self, line_number, line_text, error_message):
        self.rejected.append((line_number, line_text, error_message))


@pytest.fixture
def persister():
    return RecordingPersister()


def test_valid_row_is_accepted():
    row, message = validate_row({"amount": " 12.50 ", "currency": " EUR ", "description": "Coffee"})
    assert message is None
    assert row == TransactionRow(amount=Decimal("12.50"), currency="EUR", description="Coffee")


def test_description_defaults_to_empty():
    row, _ = validate_row(row_to_dict(["1", "USD"]))
    assert row.description == ""


@pytest.mark.parametrize("amount", ["abc", "", "   ", "NaN", "Infinity", "1,5"])
def test_invalid_amount_is_rejected(amount):
    row, message = validate_row({"amount": amount, "currency": "EUR", "description": ""})
    assert row is None
    assert message == "amount: Amount must be a valid number"


@pytest.mark.parametrize("amount, message", [
    ("1.123456", "amount: Amount must have at most 4 decimal places"),
    ("1E-5", "amount: Amount must have at most 4 decimal places"),
    ("123456789012345678901", "amount: Amount is out of range"),
    ("-100000000000000", "amount: Amount is out of range"),
])
def test_amount_outside_column_range_is_rejected(amount, message):
    row, error = validate_row({"amount": amount, "currency": "EUR", "description": ""})
    assert row is None
    assert error == message


@pytest.mark.parametrize("amount", ["1.1000000", "-99999999999999.9999", "0.0001", "1E+3"])
def test_amount_within_column_range_is_accepted(amount):
    row, error = validate_row({"amount": amount, "currency": "EUR", "description": ""})
    assert error is None
    assert row.amount == Decimal(amount)


def test_all_field_errors_are_reported():
    _, message = validate_row({"amount": "x", "currency": "  ", "description": ""})
    assert message == "amount: Amount must be a valid number; currency: Currency is required"


def test_row_to_dict_pads_and_truncates():
    assert row_to_dict(["1"]) == {"amount": "1", "currency": "", "description": ""}
    assert row_to_dict(["1", "EUR", "a", "extra"]) == {"amount": "1", "currency": "EUR", "description": "a"}


@pytest.mark.asyncio
async def test_mixed_file_partitions_rows_with_line_numbers(write_csv, persister):
    path = write_csv("12.5;EUR;coffee\nabc;USD;bad amount\n-3;GBP;\n")

    result = await TransactionCSVParser().parse_file(path, persister)

    assert result.accepted == 2
    assert result.rejected == 1
    assert result.total_lines == 3
    assert [r.amount for r in persister.accepted] == [Decimal("12.5"), Decimal("-3")]

    line_number, raw, message = persister.rejected[0]
    assert line_number == 3
    assert json.loads(raw) == {"amount": "abc", "currency": "USD", "description": "bad amount"}
    assert message == "amount: Amount must be a valid number"


@pytest.mark.asyncio
async def test_header_is_skipped_even_if_valid(tmp_path, persister):
    path = tmp_path / "no_header.csv"
    path.write_text("1;EUR;first\n2;EUR;second\n", encoding="utf-8")

    result = await TransactionCSVParser().parse_file(path, persister)

    assert result.accepted == 1
    assert persister.accepted[0].description == "second"


@pytest.mark.asyncio
async def test_header_only_file_has_no_rows(write_csv, persister):
    result = await TransactionCSVParser().parse_file(write_csv(""), persister)
    assert result.total_lines == 0
    assert persister.accepted == [] and persister.rejected == []


@pytest.mark.asyncio
async def test_bom_and_quoted_separator(tmp_path, persister):
    path = tmp_path / "bom.csv"
    path.write_bytes("\ufeffamount;currency;description\n4;EUR;\"rent; march\"\n".encode("utf-8"))

    await TransactionCSVParser().parse_file(path, persister)

    assert persister.accepted[0].description == "rent; march"


@pytest.mark.asyncio
async def test_progress_every_n_accepted_rows(write_csv, persister):
    notifier = AsyncMock()
    body = "".join(f"{i};EUR;row {i}\n" for i in range(1, 6)) + "bad;EUR;\n"
    path = write_csv(body)

    await TransactionCSVParser(progress_interval=2).parse_file(path, persister, notifier)

    assert [c.args for c in notifier.progress.await_args_list] == [(2, 0, 3), (4, 0, 5)]
    notifier.row_error.assert_awaited_once()
    line, message, _ = notifier.row_error.await_args.args
    assert line == 7
    assert message == "amount: Amount must be a valid number"


@pytest.mark.asyncio
async def test_missing_file_raises(tmp_path, persister):
    with pytest.raises(FileNotFoundError):
        await TransactionCSVParser().parse_file(tmp_path / "missing.csv", persister)


@pytest.mark.asyncio
async def test_undecodable_bytes_are_replaced(tmp_path, persister):
    path = tmp_path / "latin1.csv"
    path.write_bytes(b"amount;currency;description\n1;EUR;ok\n2;EUR;caf\xe9\n3;EUR;ok\n")

    result = await TransactionCSVParser().parse_file(path, persister)

    assert result.accepted == 3
    assert result.rejected == 0
    assert persister.accepted[1].description == "caf\ufffd"


@pytest.mark.asyncio
async def test_strict_decoding_can_be_requested(tmp_path, persister):
    path = tmp_path / "latin1.csv"
    path.write_bytes(b"amount;currency;description\n2;EUR;caf\xe9\n")

    with pytest.raises(UnicodeDecodeError):
        await TransactionCSVParser(errors="strict").parse_file(path, persister)


@pytest.mark.asyncio
async def test_progress_at_default_interval(write_csv, persister):
    notifier = AsyncMock()
    path = write_csv("".join(f"{i};EUR;row {i}\n" for i in range(1, 121)))

    result = await TransactionCSVParser().parse_file(path, persister, notifier)

    assert result.accepted == 120
    assert [c.args for c in notifier.progress.await_args_list] == [(50, 0, 51), (100, 0, 101)]
    notifier.row_error.assert_not_awaited()
