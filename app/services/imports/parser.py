"""
Streaming parser for semicolon-delimited transaction files.

Rows are read one at a time and never held in memory as a whole file. Each
data row is validated against ``TransactionRow`` and handed to the persister
as either an accepted transaction or a rejected row.
"""
import asyncio
import csv
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from app.schemas.transaction import TransactionRow
from app.services.imports.notifier import ProgressNotifier
from app.services.imports.persister import BatchPersister

logger = logging.getLogger("ledgerflow.imports.parser")

# Columns by position; the header line is skipped, never interpreted.
COLUMNS: Tuple[str, ...] = ("amount", "currency", "description")


class CSVParseResult:
    """Counters for one parsed file."""

    def __init__(self):
        self.accepted = 0
        self.rejected = 0
        self.last_line = 1  # header

    @property
    def total_lines(self) -> int:
        """Data rows seen, header excluded."""
        return self.accepted + self.rejected


def row_to_dict(values: List[str]) -> Dict[str, str]:
    """Map positional values to column names, padding missing trailing values with ''."""
    padded = list(values[:len(COLUMNS)]) + [""] * (len(COLUMNS) - len(values))
    return dict(zip(COLUMNS, padded))


def format_validation_errors(exc: PydanticValidationError) -> str:
    """Join every field error as ``"<field>: <message>"`` separated by ``"; "``."""
    parts = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"]) or "row"
        parts.append(f"{field}: {error['msg']}")
    return "; ".join(parts)


def validate_row(values: Dict[str, str]) -> Tuple[Optional[TransactionRow], Optional[str]]:
    """
    Validate one row.

    Returns:
        Tuple: (row, None) when accepted, (None, message) when rejected
    """
    try:
        return TransactionRow(**values), None
    except PydanticValidationError as e:
        return None, format_validation_errors(e)


class TransactionCSVParser:
    """
    Reads a staged file row by row, validating and dispatching each row.

    The first line is always treated as a header and skipped. Files are read
    as UTF-8 (BOM tolerated) and bytes that do not decode are replaced, so a
    stray Latin-1 character costs one character, not the whole import.

    Line numbers are 1-based with the header on line 1, so the first data row
    is line 2.
    """

    def __init__(
        self,
        delimiter: str = ";",
        progress_interval: int = 50,
        encoding: str = "utf-8-sig",
        errors: str = "replace",
    ):
        self.delimiter = delimiter
        self.progress_interval = progress_interval
        self.encoding = encoding
        self.errors = errors

    async def parse_file(
        self,
        file_path: Union[str, Path],
        persister: BatchPersister,
        notifier: Optional[ProgressNotifier] = None,
    ) -> CSVParseResult:
        """
        Parse ``file_path`` to end of file.

        Yields to the event loop after every row, so the task can be cancelled
        between rows. Undecodable bytes become U+FFFD by default; I/O errors
        propagate to the caller.

        Args:
            file_path: Staged file to read
            persister: Receives accepted and rejected rows
            notifier: Optional progress sink

        Returns:
            CSVParseResult: Final counters
        """
        result = CSVParseResult()

        with open(file_path, "r", encoding=self.encoding, errors=self.errors, newline="") as f:
            reader = csv.reader(f, delimiter=self.delimiter)
            next(reader, None)

            line_number = 1
            for values in reader:
                line_number += 1
                result.last_line = line_number

                raw_values = row_to_dict(values)
                row, message = validate_row(raw_values)

                if row is not None:
                    await persister.add_accepted(row)
                    result.accepted += 1
                    if (
                        notifier is not None
                        and self.progress_interval > 0
                        and result.accepted % self.progress_interval == 0
                    ):
                        await notifier.progress(result.accepted, result.rejected, line_number)
                else:
                    raw = json.dumps(raw_values, ensure_ascii=False, separators=(",", ":"))
                    await persister.add_rejected(line_number, raw, message)
                    result.rejected += 1
                    if notifier is not None:
                        await notifier.row_error(line_number, message, raw)

                await asyncio.sleep(0)

        logger.debug(
            f"Parsed {file_path}: {result.accepted} accepted, {result.rejected} rejected"
        )
        return result
