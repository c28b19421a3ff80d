import io
from collections.abc import Iterable, Sequence
from typing import Any

import openpyxl
from pydantic import ValidationError

from payslip_mailer.database.repositories.recipient_repository import RecipientRepository
from payslip_mailer.logging.logger import Log
from payslip_mailer.roster.exceptions import RosterImportError
from payslip_mailer.roster.models import RecipientInput, RosterImportResult

# Column order: A=name, B=email, C=hint, D=filename, E=secret
COLUMNS: tuple[str, ...] = (
    "name",
    "email",
    "secret_hint",
    "document_filename",
    "secret",
)


def parse_rows(rows: Sequence[Sequence[Any]]) -> tuple[list[RecipientInput], list[str]]:
    """Validate spreadsheet rows into recipient inputs.

    A first row whose email column holds no ``@`` is treated as a header.
    Blank rows and rows with fewer than five cells are skipped. Returns the
    valid inputs and ``"Row N: message"`` errors, N being the 1-based sheet row.
    """
    start = 1 if rows and _looks_like_header(rows[0]) else 0
    inputs: list[RecipientInput] = []
    errors: list[str] = []
    for index in range(start, len(rows)):
        row = rows[index]
        if len(row) < len(COLUMNS) or all(cell is None for cell in row):
            continue
        values = {
            column: "" if cell is None else str(cell).strip()
            for column, cell in zip(COLUMNS, row)
        }
        try:
            inputs.append(RecipientInput(**values))
        except ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(part) for part in first["loc"])
            errors.append(f"Row {index + 1}: {field}: {first['msg']}")
    return inputs, errors


def _looks_like_header(row: Sequence[Any]) -> bool:
    email_cell = row[1] if len(row) > 1 else None
    return not (isinstance(email_cell, str) and "@" in email_cell)


class RosterImporter:
    """Imports recipients from the first sheet of an .xlsx workbook, upserting by email."""

    def __init__(self, recipient_repo: RecipientRepository) -> None:
        self._recipient_repo = recipient_repo

    def import_workbook(self, content: bytes) -> RosterImportResult:
        """Parse and upsert a roster workbook.

        Raises:
            RosterImportError: if the workbook cannot be read or has no valid rows.
        """
        rows = self._read_rows(content)
        inputs, errors = parse_rows(rows)
        if not inputs:
            raise RosterImportError(
                "No valid recipients found in file"
                + (f": {'; '.join(errors)}" if errors else "")
            )
        result = self.upsert_all(inputs)
        result.errors = errors + result.errors
        return result

    def upsert_all(self, inputs: Iterable[RecipientInput]) -> RosterImportResult:
        result = RosterImportResult()
        for data in inputs:
            try:
                self._recipient_repo.upsert_by_email(data)
                result.created += 1
            except Exception as exc:
                Log.error(f"Failed to save recipient {data.name}: {exc}")
                result.failed += 1
                result.errors.append(f"Failed to save {data.email}")
        Log.info(f"Roster import: {result.created} saved, {result.failed} failed")
        return result

    @staticmethod
    def _read_rows(content: bytes) -> list[tuple[Any, ...]]:
        try:
            workbook = openpyxl.load_workbook(
                io.BytesIO(content), read_only=True, data_only=True
            )
        except Exception as exc:
            raise RosterImportError(f"Could not read workbook: {exc}") from exc
        try:
            sheet = workbook.worksheets[0]
            return [tuple(row) for row in sheet.iter_rows(values_only=True)]
        finally:
            workbook.close()
