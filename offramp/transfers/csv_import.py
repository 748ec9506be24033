"""Bulk bank-account import from CSV text."""

from __future__ import annotations

import csv
import io

from offramp.transfers.constants import CSV_COLUMNS
from offramp.transfers.flow import BankAccountAllocation


class CsvImportError(ValueError):
    """Raised when uploaded CSV text cannot be mapped to bank accounts."""


def _normalize_header(value: str | None) -> str:
    return " ".join((value or "").strip().lower().split())


def parse_bank_accounts(text: str) -> list[BankAccountAllocation]:
    """Map CSV rows to fresh allocations.

    The header row must contain every column in ``CSV_COLUMNS`` (case and
    spacing are ignored); extra columns are ignored, blank rows skipped.
    """

    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    header = next(reader, None)
    if not header:
        raise CsvImportError("CSV file is empty")

    positions: dict[str, int] = {}
    for index, column in enumerate(header):
        attribute = CSV_COLUMNS.get(_normalize_header(column))
        if attribute and attribute not in positions:
            positions[attribute] = index

    missing = [name for name, attribute in CSV_COLUMNS.items() if attribute not in positions]
    if missing:
        titles = ", ".join(name.title() for name in missing)
        raise CsvImportError(f"CSV is missing required columns: {titles}")

    accounts: list[BankAccountAllocation] = []
    for row in reader:
        if not any(cell.strip() for cell in row):
            continue
        values = {
            attribute: (row[index].strip() if index < len(row) else "")
            for attribute, index in positions.items()
        }
        accounts.append(BankAccountAllocation(**values))

    if not accounts:
        raise CsvImportError("CSV contains no bank account rows")
    return accounts
