from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone

from payslip_mailer.config.settings import Settings
from payslip_mailer.database.repositories.attempt_repository import AttemptRepository
from payslip_mailer.database.repositories.recipient_repository import RecipientRepository
from payslip_mailer.distribution.dispatcher import Dispatcher
from payslip_mailer.distribution.exceptions import RecipientNotFoundError
from payslip_mailer.distribution.models import (
    AttemptStatus,
    BatchOutcome,
    DispatchOutcome,
    DistributionAttempt,
    MatchedDocument,
    Period,
    Recipient,
    SendResult,
)
from payslip_mailer.distribution.notification import NotificationComposer
from payslip_mailer.encryption.base import BaseEncryptor
from payslip_mailer.encryption.factory import EncryptorFactory
from payslip_mailer.logging.logger import Log
from payslip_mailer.transport.base import BaseTransport
from payslip_mailer.transport.factory import TransportFactory

RECIPIENT_NOT_FOUND = "recipient not found"
RECIPIENT_LOOKUP_FAILED = "recipient lookup failed"
UNEXPECTED_ERROR = "unexpected error"


@dataclass(frozen=True)
class _ItemResult:
    recipient_name: str
    outcome: DispatchOutcome


class BatchCoordinator:
    """Drives the dispatcher over individual and mass sends and keeps the audit trail.

    Every attempt that reaches a recipient reference produces exactly one
    ``DistributionAttempt``. A failing item never stops the rest of a batch.
    With ``max_workers > 1`` items run on a bounded thread pool; counts are
    still tallied on the calling thread in upload order.
    """

    def __init__(
        self,
        recipient_repo: RecipientRepository,
        attempt_repo: AttemptRepository,
        dispatcher: Dispatcher,
        max_workers: int = 1,
    ) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self._recipient_repo = recipient_repo
        self._attempt_repo = attempt_repo
        self._dispatcher = dispatcher
        self._max_workers = max_workers

    def send_one(self, recipient_id: int, document_bytes: bytes, period: Period) -> SendResult:
        """Send a single payslip. A missing recipient yields an error and no audit row."""
        try:
            recipient = self._recipient_repo.find_by_id(recipient_id)
        except RecipientNotFoundError:
            Log.warning(f"Individual send: recipient {recipient_id} not found")
            return SendResult(ok=False, error=RECIPIENT_NOT_FOUND)
        except Exception as exc:
            Log.error(f"Individual send: lookup of recipient {recipient_id} failed: {exc}")
            return SendResult(ok=False, error=RECIPIENT_LOOKUP_FAILED)

        outcome = self._safe_dispatch(recipient, document_bytes, period)
        self._record(
            recipient_id=recipient.id,
            recipient_name=recipient.name,
            filename=recipient.document_filename,
            period=period,
            outcome=outcome,
        )
        if outcome.ok:
            return SendResult(ok=True)
        return SendResult(ok=False, error=outcome.reason)

    def send_batch(self, matched: Sequence[MatchedDocument], period: Period) -> BatchOutcome:
        """Send every matched payslip and return the tally."""
        Log.info(f"Starting batch of {len(matched)} payslips for {period.label}")
        if self._max_workers == 1 or len(matched) <= 1:
            results = [self._process_item(item, period) for item in matched]
        else:
            with ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix="payslip-dispatch",
            ) as executor:
                results = list(
                    executor.map(lambda item: self._process_item(item, period), matched)
                )

        summary = BatchOutcome()
        for result in results:
            if result.outcome.ok:
                summary.sent += 1
            else:
                summary.failed += 1
                summary.errors.append(f"{result.recipient_name}: {result.outcome.reason}")
        Log.info(
            f"Batch for {period.label} finished: sent {summary.sent}, failed {summary.failed}"
        )
        return summary

    def _process_item(self, item: MatchedDocument, period: Period) -> _ItemResult:
        # Re-resolve: the recipient may have been edited or deleted since matching.
        try:
            recipient = self._recipient_repo.find_by_id(item.recipient_id)
        except RecipientNotFoundError:
            Log.warning(f"Batch send: recipient {item.recipient_id} ({item.recipient_name}) not found")
            return self._record_unresolved(item, period, RECIPIENT_NOT_FOUND)
        except Exception as exc:
            Log.error(f"Batch send: lookup of recipient {item.recipient_id} failed: {exc}")
            return self._record_unresolved(item, period, RECIPIENT_LOOKUP_FAILED)

        outcome = self._safe_dispatch(recipient, item.content, period)
        self._record(
            recipient_id=recipient.id,
            recipient_name=recipient.name,
            filename=recipient.document_filename,
            period=period,
            outcome=outcome,
        )
        return _ItemResult(recipient_name=recipient.name, outcome=outcome)

    def _record_unresolved(
        self, item: MatchedDocument, period: Period, reason: str
    ) -> _ItemResult:
        outcome = DispatchOutcome.failed(reason)
        self._record(
            recipient_id=item.recipient_id,
            recipient_name=item.recipient_name,
            filename=item.filename,
            period=period,
            outcome=outcome,
        )
        return _ItemResult(recipient_name=item.recipient_name, outcome=outcome)

    def _safe_dispatch(
        self, recipient: Recipient, document_bytes: bytes, period: Period
    ) -> DispatchOutcome:
        try:
            return self._dispatcher.dispatch(recipient, document_bytes, period)
        except Exception as exc:
            Log.exception(f"Dispatch to recipient {recipient.id} raised: {exc}")
            return DispatchOutcome.failed(UNEXPECTED_ERROR)

    def _record(
        self,
        *,
        recipient_id: int | None,
        recipient_name: str,
        filename: str,
        period: Period,
        outcome: DispatchOutcome,
    ) -> None:
        attempt = DistributionAttempt(
            recipient_id=recipient_id,
            recipient_name=recipient_name,
            year=period.year,
            month=period.month,
            filename=filename,
            status=AttemptStatus.SENT if outcome.ok else AttemptStatus.FAILED,
            reason=outcome.reason,
            sent_at=datetime.now(timezone.utc),
        )
        try:
            self._attempt_repo.append(attempt)
        except Exception as exc:
            Log.error(
                f"Failed to record {attempt.status.value} attempt for recipient "
                f"{recipient_id}: {exc}"
            )


def build_coordinator(
    settings: Settings,
    encryptor: BaseEncryptor | None = None,
    transport: BaseTransport | None = None,
) -> BatchCoordinator:
    """Build a BatchCoordinator with the configured adapters.

    The caller owns the transport and should close it when done.
    """
    dispatcher = Dispatcher(
        encryptor=encryptor or EncryptorFactory.create(settings),
        transport=transport or TransportFactory.create(settings),
        composer=NotificationComposer(signature=settings.notification_signature),
    )
    return BatchCoordinator(
        recipient_repo=RecipientRepository(),
        attempt_repo=AttemptRepository(),
        dispatcher=dispatcher,
        max_workers=settings.batch_max_workers,
    )
