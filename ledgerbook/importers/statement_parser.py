"""
Bank Statement File Parser

Turns a CSV or Excel bank statement into BankStatementLine objects.

Banks name their columns differently ("Txn Date", "Value Date",
"Particulars", "Withdrawals"...). Headers are normalized by lower-casing
and dropping everything that is not a letter or digit, then looked up
in HEADER_ALIASES.

Amounts: a single signed "amount" column wins. Otherwise the net amount
is credit minus debit, so withdrawals come out negative.

IMPORTANT: A row that has a date or amount we cannot read fails the whole
import with the row number. Nothing is guessed.
"""

import csv
import io
import re
import zipfile
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import PurePath
from typing import Any, Optional, Union

import openpyxl
import structlog
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import ValidationError as PydanticValidationError

from ledgerbook.config import ImportSettings, get_settings
from ledgerbook.errors import ImportParseError
from ledgerbook.models.banking import BankStatementLine

logger = structlog.get_logger("ledgerbook.importers")

HEADER_ALIASES = {
    "date": "date",
    "transactiondate": "date",
    "valuedate": "date",
    "txndate": "date",
    "postingdate": "date",
    "description": "description",
    "narration": "description",
    "particulars": "description",
    "details": "description",
    "remarks": "description",
    "amount": "amount",
    "debit": "debit",
    "withdrawal": "debit",
    "withdrawals": "debit",
    "dr": "debit",
    "credit": "credit",
    "deposit": "credit",
    "deposits": "credit",
    "cr": "credit",
    "balance": "balance",
    "closingbalance": "balance",
    "runningbalance": "balance",
}

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_NOT_NUMERIC = re.compile(r"[^0-9.\-]")

Content = Union[bytes, str]


def normalize_header(header: Any) -> str:
    """'Transaction Date' -> 'transactiondate'."""
    return _NON_ALNUM.sub("", str(header or "").lower())


def map_headers(headers: list[Any]) -> dict[int, str]:
    """
    Column index to canonical field name.

    Unknown columns are left out. When two columns map to the same
    field the first one wins.
    """
    mapping: dict[int, str] = {}
    seen = set()
    for index, header in enumerate(headers):
        field = HEADER_ALIASES.get(normalize_header(header))
        if field and field not in seen:
            mapping[index] = field
            seen.add(field)
    return mapping


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Read a money cell.

    Currency symbols and thousands separators are dropped; "(500)" is -500.
    Returns None for a blank cell.

    Raises:
        ValueError: If no number can be read
    """
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValueError(f"Not an amount: {value!r}")
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))

    text = str(value).strip()
    negative = text.startswith("(") and text.endswith(")")
    cleaned = _NOT_NUMERIC.sub("", text)
    if cleaned in ("", "-", ".", "-."):
        raise ValueError(f"Not an amount: {value!r}")
    try:
        amount = Decimal(cleaned)
    except InvalidOperation as e:
        raise ValueError(f"Not an amount: {value!r}") from e
    return -abs(amount) if negative else amount


def parse_date(value: Any, formats: list[str]) -> Optional[date]:
    """
    Read a date cell. Excel cells already hold datetimes; text is tried
    against each format in order (ISO first, then day-first).

    Raises:
        ValueError: If no format matches
    """
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    for fmt in formats:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date: {value!r}")


class StatementParser:
    """
    Parses statement files into unsaved BankStatementLine objects.

    Lines come back without ids or ledger; the bank statement store
    assigns both on import.
    """

    def __init__(self, settings: Optional[ImportSettings] = None):
        self._settings = settings or get_settings().imports

    def parse(self, filename: str, content: Content) -> list[BankStatementLine]:
        """
        Parse a statement file.

        Args:
            filename: Original file name; its extension picks the reader
            content: Raw file content

        Returns:
            Statement lines sorted by date

        Raises:
            ImportParseError: Unsupported type, oversized file or bad row
        """
        extension = PurePath(filename).suffix.lower().lstrip(".")
        if extension not in self._settings.supported_formats_list:
            raise ImportParseError(
                f"Unsupported statement file type: {filename}",
                user_message="Please upload a CSV or Excel (.xlsx) file",
            )

        size = len(content.encode(self._settings.csv_encoding) if isinstance(content, str) else content)
        if size > self._settings.max_upload_size_bytes:
            raise ImportParseError(
                f"Statement file is {size} bytes, limit is {self._settings.max_upload_size_bytes}",
                user_message=f"File is larger than {self._settings.max_upload_size_mb} MB",
            )

        if extension == "csv":
            rows = self._read_csv(content)
        else:
            rows = self._read_xlsx(content)

        lines = self._rows_to_lines(rows)
        logger.info(
            "statement_parsed",
            filename=filename,
            format=extension,
            lines=len(lines),
        )
        return lines

    def _read_csv(self, content: Content) -> list[list[Any]]:
        if isinstance(content, bytes):
            try:
                text = content.decode(self._settings.csv_encoding)
            except UnicodeDecodeError as e:
                raise ImportParseError(
                    f"Statement is not valid {self._settings.csv_encoding} text: {e}"
                ) from e
        else:
            text = content.lstrip("\ufeff")

        try:
            return [row for row in csv.reader(io.StringIO(text, newline=""))]
        except csv.Error as e:
            raise ImportParseError(f"Malformed CSV: {e}") from e

    def _read_xlsx(self, content: Content) -> list[list[Any]]:
        if isinstance(content, str):
            raise ImportParseError("Excel statements must be passed as bytes")

        try:
            wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
            raise ImportParseError(f"Could not open spreadsheet: {e}") from e

        try:
            sheet = wb.active
            return [list(row) for row in sheet.iter_rows(values_only=True)]
        finally:
            wb.close()

    def _rows_to_lines(self, rows: list[list[Any]]) -> list[BankStatementLine]:
        header_index = next(
            (i for i, row in enumerate(rows) if not all(_is_blank(v) for v in row)),
            None,
        )
        if header_index is None:
            return []

        mapping = map_headers(rows[header_index])
        fields = set(mapping.values())
        if "date" not in fields or not fields & {"amount", "debit", "credit"}:
            raise ImportParseError(
                f"Statement needs a date column and an amount, debit or credit column "
                f"(found: {sorted(fields)})",
                row_number=header_index + 1,
                user_message="Could not find the date and amount columns",
            )

        formats = self._settings.date_formats_list
        lines = []

        for offset, row in enumerate(rows[header_index + 1:], start=header_index + 2):
            record = {
                field: row[index] if index < len(row) else None
                for index, field in mapping.items()
            }
            money_cells = [record.get(k) for k in ("amount", "debit", "credit")]
            if _is_blank(record.get("date")) or all(_is_blank(v) for v in money_cells):
                continue

            try:
                line_date = parse_date(record["date"], formats)
                if "amount" in record and not _is_blank(record["amount"]):
                    amount = parse_amount(record["amount"])
                else:
                    credit = parse_amount(record.get("credit")) or Decimal("0")
                    debit = parse_amount(record.get("debit")) or Decimal("0")
                    amount = credit - debit
                balance = parse_amount(record.get("balance")) or Decimal("0")
                description = record.get("description")
                line = BankStatementLine(
                    date=line_date,
                    description="" if _is_blank(description) else str(description).strip(),
                    amount=amount,
                    balance=balance,
                )
            except (ValueError, PydanticValidationError) as e:
                raise ImportParseError(
                    f"Row {offset}: {e}",
                    row_number=offset,
                    user_message=f"Row {offset} could not be read",
                ) from e

            lines.append(line)

        lines.sort(key=lambda line: line.date)
        return lines


def parse_statement_file(
    filename: str,
    content: Content,
    settings: Optional[ImportSettings] = None,
) -> list[BankStatementLine]:
    """Parse a CSV or XLSX statement. See StatementParser.parse."""
    return StatementParser(settings).parse(filename, content)
