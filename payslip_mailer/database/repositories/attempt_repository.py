from typing import Any

import psycopg
from psycopg.rows import dict_row

from payslip_mailer.database.connection import get_connection
from payslip_mailer.distribution.exceptions import StoreWriteError
from payslip_mailer.distribution.models import (
    AttemptStatus,
    DistributionAttempt,
    Period,
    RecordPresence,
)
from payslip_mailer.logging.logger import Log


class AttemptRepository:
    """Append-only access to the distribution_attempts table."""

    def append(self, attempt: DistributionAttempt) -> DistributionAttempt:
        """Insert one attempt in its own transaction and return it with its ID."""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    INSERT INTO distribution_attempts
                    (recipient_id, recipient_name, year, month, filename, status,
                     reason, sent_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, COALESCE(%s, NOW()))
                    RETURNING id, sent_at
                    """,
                    (
                        attempt.recipient_id,
                        attempt.recipient_name,
                        attempt.year,
                        attempt.month,
                        attempt.filename,
                        attempt.status.value,
                        attempt.reason,
                        attempt.sent_at,
                    ),
                )
                row = cur.fetchone()
                if row is None:
                    raise StoreWriteError(
                        f"Attempt for recipient {attempt.recipient_id} was not stored"
                    )
            conn.commit()
        Log.debug(
            f"Recorded {attempt.status.value} attempt {row['id']} "
            f"for recipient {attempt.recipient_id}"
        )
        return DistributionAttempt(
            recipient_id=attempt.recipient_id,
            recipient_name=attempt.recipient_name,
            year=attempt.year,
            month=attempt.month,
            filename=attempt.filename,
            status=attempt.status,
            reason=attempt.reason,
            sent_at=row["sent_at"],
            id=row["id"],
        )

    def find_by_period(
        self,
        year: int | None = None,
        month: int | None = None,
        recipient_id: int | None = None,
    ) -> list[DistributionAttempt]:
        """Attempts newest first, with the recipient's current name and email where known."""
        conditions: list[str] = []
        params: list[Any] = []
        if year is not None:
            conditions.append("a.year = %s")
            params.append(year)
        if month is not None:
            conditions.append("a.month = %s")
            params.append(month)
        if recipient_id is not None:
            conditions.append("a.recipient_id = %s")
            params.append(recipient_id)
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    f"""
                    SELECT a.id, a.recipient_id,
                           COALESCE(r.name, a.recipient_name) AS recipient_name,
                           r.email AS recipient_email,
                           a.year, a.month, a.filename, a.status, a.reason, a.sent_at
                    FROM distribution_attempts a
                    LEFT JOIN recipients r ON r.id = a.recipient_id
                    {where}
                    ORDER BY a.sent_at DESC, a.id DESC
                    """,
                    params,
                )
                rows = cur.fetchall()
        return [self._to_attempt(row) for row in rows]

    def count_sent(self, period: Period | None = None) -> int:
        """Number of successful attempts, optionally within one period."""
        query = "SELECT COUNT(*) FROM distribution_attempts WHERE status = 'sent'"
        params: tuple[Any, ...] = ()
        if period is not None:
            query += " AND year = %s AND month = %s"
            params = (period.year, period.month)
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                row = cur.fetchone()
        return int(row[0]) if row is not None else 0

    def presence(self, period: Period, recipient_id: int | None = None) -> RecordPresence:
        """Whether attempts exist for a period (and recipient); UNKNOWN on store errors."""
        query = "SELECT EXISTS (SELECT 1 FROM distribution_attempts WHERE year = %s AND month = %s"
        params: tuple[Any, ...] = (period.year, period.month)
        if recipient_id is not None:
            query += " AND recipient_id = %s"
            params = (*params, recipient_id)
        query += ")"
        try:
            with get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    row = cur.fetchone()
        except (psycopg.Error, RuntimeError) as exc:
            Log.warning(f"Could not check attempts for {period.label}: {exc}")
            return RecordPresence.UNKNOWN
        if row is not None and row[0]:
            return RecordPresence.NON_EMPTY
        return RecordPresence.EMPTY

    @staticmethod
    def _to_attempt(row: dict[str, Any]) -> DistributionAttempt:
        return DistributionAttempt(
            id=row["id"],
            recipient_id=row["recipient_id"],
            recipient_name=row["recipient_name"],
            recipient_email=row["recipient_email"],
            year=row["year"],
            month=row["month"],
            filename=row["filename"],
            status=AttemptStatus(row["status"]),
            reason=row["reason"],
            sent_at=row["sent_at"],
        )
