import os
import uuid
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from payslip_mailer.config.settings import Settings
from payslip_mailer.database.connection import apply_schema, close_pool, get_connection, init_pool
from payslip_mailer.database.repositories.recipient_repository import RecipientRepository
from payslip_mailer.distribution.models import Recipient
from payslip_mailer.roster.models import RecipientInput


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "payslips_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        apply_schema()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(
    integration_pool: None,
) -> Generator[list[tuple[str, int]], None, None]:
    cleanup: list[tuple[str, int]] = []
    yield cleanup
    if not cleanup:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            for table, row_id in cleanup:
                if table == "recipients":
                    cur.execute(
                        "DELETE FROM distribution_attempts WHERE recipient_id = %s",
                        (row_id,),
                    )
                    cur.execute("DELETE FROM recipients WHERE id = %s", (row_id,))
        conn.commit()


@pytest.fixture
def make_recipient(
    integration_cleanup: list[tuple[str, int]],
) -> Any:
    """Factory fixture creating recipients with unique emails and filenames."""

    def _make(name: str = "Anna Kovács", secret: str = "ABCD") -> Recipient:
        token = uuid.uuid4().hex[:8]
        recipient = RecipientRepository().create(
            RecipientInput(
                name=name,
                email=f"{token}@example.com",
                secret_hint="first pet",
                document_filename=f"payslip_{token}.pdf",
                secret=secret,
            )
        )
        integration_cleanup.append(("recipients", recipient.id))
        return recipient

    return _make
