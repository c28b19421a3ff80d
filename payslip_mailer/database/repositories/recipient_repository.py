from typing import Any

import psycopg
from psycopg import errors
from psycopg.rows import dict_row

from payslip_mailer.database.connection import get_connection
from payslip_mailer.distribution.exceptions import (
    DuplicateRecipientError,
    RecipientNotFoundError,
    StoreWriteError,
)
from payslip_mailer.distribution.models import Recipient, RecordPresence
from payslip_mailer.logging.logger import Log
from payslip_mailer.roster.models import RecipientInput

_COLUMNS = """
    id, name, email, secret_hint, document_filename, secret, created_at, updated_at
"""


class RecipientRepository:
    """Database operations for the recipients table."""

    def find_by_id(self, recipient_id: int) -> Recipient:
        """Find a recipient by ID, secret included.

        Raises:
            RecipientNotFoundError: if no recipient with this ID exists.
        """
        row = self._fetch_one(
            f"SELECT {_COLUMNS} FROM recipients WHERE id = %s",
            (recipient_id,),
        )
        if row is None:
            raise RecipientNotFoundError(f"Recipient {recipient_id} not found")
        return self._to_recipient(row)

    def find_by_email(self, email: str) -> Recipient | None:
        row = self._fetch_one(
            f"SELECT {_COLUMNS} FROM recipients WHERE email = %s",
            (email.strip().lower(),),
        )
        return self._to_recipient(row) if row is not None else None

    def find_by_filename(self, document_filename: str) -> list[Recipient]:
        """All recipients whose canonical filename equals the argument exactly."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT {_COLUMNS} FROM recipients
                    WHERE document_filename = %s
                    ORDER BY id
                    """,
                    (document_filename,),
                )
                rows = cur.fetchall()
        return [self._to_recipient(row) for row in rows]

    def list_all(
        self,
        search: str | None = None,
        include_secret: bool = False,
    ) -> list[Recipient]:
        """List recipients ordered by ID.

        ``search`` filters case-insensitively on name, email and hint. Secrets
        are blanked unless ``include_secret`` is set.
        """
        query = f"SELECT {_COLUMNS} FROM recipients"
        params: tuple[Any, ...] = ()
        if search:
            pattern = f"%{search}%"
            query += " WHERE name ILIKE %s OR email ILIKE %s OR secret_hint ILIKE %s"
            params = (pattern, pattern, pattern)
        query += " ORDER BY id"
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                rows = cur.fetchall()
        return [self._to_recipient(row, include_secret=include_secret) for row in rows]

    def create(self, data: RecipientInput) -> Recipient:
        """Insert a new recipient.

        Raises:
            DuplicateRecipientError: if the email is already registered.
        """
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO recipients
                        (name, email, secret_hint, document_filename, secret)
                        VALUES (%s, %s, %s, %s, %s)
                        RETURNING {_COLUMNS}
                        """,
                        self._params(data),
                    )
                    row = cur.fetchone()
                    if row is None:
                        raise StoreWriteError(f"Recipient {data.email} was not stored")
                conn.commit()
        except errors.UniqueViolation as exc:
            raise DuplicateRecipientError(
                f"Recipient with email {data.email} already exists"
            ) from exc
        Log.info(f"Created recipient {row['id']} ({data.name})")
        return self._to_recipient(row)

    def update(self, recipient_id: int, data: RecipientInput) -> Recipient:
        """Replace all editable fields of a recipient.

        Raises:
            RecipientNotFoundError: if no recipient with this ID exists.
            DuplicateRecipientError: if the new email belongs to another recipient.
        """
        try:
            with get_connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(
                        f"""
                        UPDATE recipients
                        SET name = %s, email = %s, secret_hint = %s,
                            document_filename = %s, secret = %s, updated_at = NOW()
                        WHERE id = %s
                        RETURNING {_COLUMNS}
                        """,
                        (*self._params(data), recipient_id),
                    )
                    row = cur.fetchone()
                conn.commit()
        except errors.UniqueViolation as exc:
            raise DuplicateRecipientError(
                f"Recipient with email {data.email} already exists"
            ) from exc
        if row is None:
            raise RecipientNotFoundError(f"Recipient {recipient_id} not found")
        Log.info(f"Updated recipient {recipient_id}")
        return self._to_recipient(row)

    def delete(self, recipient_id: int) -> None:
        """Delete a recipient. Past distribution attempts keep their reference.

        Raises:
            RecipientNotFoundError: if no recipient with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM recipients WHERE id = %s", (recipient_id,))
                if cur.rowcount == 0:
                    raise RecipientNotFoundError(f"Recipient {recipient_id} not found")
            conn.commit()
        Log.info(f"Deleted recipient {recipient_id}")

    def upsert_by_email(self, data: RecipientInput) -> Recipient:
        """Insert or overwrite the recipient identified by email."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO recipients
                    (name, email, secret_hint, document_filename, secret)
                    VALUES (%s, %s, %s, %s, %s)
                    ON CONFLICT (email) DO UPDATE
                    SET name = EXCLUDED.name,
                        secret_hint = EXCLUDED.secret_hint,
                        document_filename = EXCLUDED.document_filename,
                        secret = EXCLUDED.secret,
                        updated_at = NOW()
                    RETURNING {_COLUMNS}
                    """,
                    self._params(data),
                )
                row = cur.fetchone()
                if row is None:
                    raise StoreWriteError(f"Recipient {data.email} was not stored")
            conn.commit()
        return self._to_recipient(row)

    def presence(self) -> RecordPresence:
        """Whether any recipient is registered; UNKNOWN if the store is unreachable."""
        try:
            row = self._fetch_one("SELECT EXISTS (SELECT 1 FROM recipients) AS present", ())
        except (psycopg.Error, RuntimeError) as exc:
            Log.warning(f"Could not check for recipients: {exc}")
            return RecordPresence.UNKNOWN
        if row is not None and row["present"]:
            return RecordPresence.NON_EMPTY
        return RecordPresence.EMPTY

    def _fetch_one(self, query: str, params: tuple[Any, ...]) -> dict[str, Any] | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                return cur.fetchone()

    @staticmethod
    def _params(data: RecipientInput) -> tuple[str, str, str, str, str]:
        return (
            data.name,
            data.email,
            data.secret_hint,
            data.document_filename,
            data.secret,
        )

    @staticmethod
    def _to_recipient(row: dict[str, Any], include_secret: bool = True) -> Recipient:
        return Recipient(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            secret_hint=row["secret_hint"],
            document_filename=row["document_filename"],
            secret=row["secret"] if include_secret else "",
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
