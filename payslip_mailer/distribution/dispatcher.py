from payslip_mailer.distribution.models import DispatchOutcome, Period, Recipient
from payslip_mailer.distribution.notification import NotificationComposer
from payslip_mailer.encryption.base import BaseEncryptor
from payslip_mailer.encryption.exceptions import EncryptionError
from payslip_mailer.logging.logger import Log
from payslip_mailer.transport.base import BaseTransport
from payslip_mailer.transport.exceptions import DeliveryError

ENCRYPTION_FAILED = "encryption failed"
DELIVERY_FAILED = "delivery failed"


class Dispatcher:
    """Encrypts one payslip for one recipient and hands it to the transport.

    Pipeline: protect -> compose -> send. Each call is a single attempt;
    capability errors come back as a failed ``DispatchOutcome`` instead of
    being raised. Audit records are the caller's concern.
    """

    def __init__(
        self,
        encryptor: BaseEncryptor,
        transport: BaseTransport,
        composer: NotificationComposer | None = None,
    ) -> None:
        self._encryptor = encryptor
        self._transport = transport
        self._composer = composer or NotificationComposer()

    def dispatch(
        self,
        recipient: Recipient,
        document_bytes: bytes,
        period: Period,
    ) -> DispatchOutcome:
        """Protect, compose and deliver a payslip; never raises on capability errors."""
        try:
            protected = self._encryptor.protect(document_bytes, recipient.secret)
        except EncryptionError as exc:
            Log.error(f"Encryption failed for recipient {recipient.id}: {exc}")
            return DispatchOutcome.failed(ENCRYPTION_FAILED)

        notification = self._composer.compose(recipient, period)

        try:
            self._transport.send(
                recipient.email,
                notification.subject,
                notification.html_body,
                notification.attachment_name,
                protected,
            )
        except DeliveryError as exc:
            Log.error(f"Delivery failed for recipient {recipient.id}: {exc}")
            return DispatchOutcome.failed(DELIVERY_FAILED)

        Log.info(
            f"Sent {period.label} payslip to recipient {recipient.id} ({recipient.name})"
        )
        return DispatchOutcome.succeeded()
