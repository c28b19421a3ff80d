from payslip_mailer.logging.logger import Log
from payslip_mailer.transport.base import BaseTransport
from payslip_mailer.transport.exceptions import DeliveryError


class FallbackTransport(BaseTransport):
    """Tries the primary transport, then the fallback exactly once."""

    def __init__(self, primary: BaseTransport, fallback: BaseTransport) -> None:
        self._primary = primary
        self._fallback = fallback

    def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        attachment_name: str,
        attachment_bytes: bytes,
    ) -> None:
        try:
            self._primary.send(to, subject, html_body, attachment_name, attachment_bytes)
            return
        except DeliveryError as exc:
            Log.warning(
                f"{type(self._primary).__name__} failed, falling back to "
                f"{type(self._fallback).__name__}: {exc}"
            )
        try:
            self._fallback.send(to, subject, html_body, attachment_name, attachment_bytes)
        except DeliveryError as exc:
            raise DeliveryError(f"Primary and fallback delivery failed: {exc}") from exc

    def close(self) -> None:
        self._primary.close()
        self._fallback.close()
