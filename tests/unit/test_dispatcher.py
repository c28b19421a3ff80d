from unittest.mock import MagicMock

from payslip_mailer.distribution.dispatcher import Dispatcher
from payslip_mailer.distribution.models import Period, Recipient
from payslip_mailer.encryption.exceptions import EncryptionError
from payslip_mailer.transport.exceptions import DeliveryError


def _recipient() -> Recipient:
    return Recipient(
        id=5,
        name="Anna Kovács",
        email="anna@example.com",
        secret_hint="first pet",
        document_filename="p1.pdf",
        secret="ABCD",
    )


def _make_dispatcher() -> tuple[Dispatcher, MagicMock, MagicMock]:
    encryptor = MagicMock()
    encryptor.protect.return_value = b"encrypted"
    transport = MagicMock()
    return Dispatcher(encryptor=encryptor, transport=transport), encryptor, transport


class TestSuccessfulDispatch:
    def test_returns_ok(self) -> None:
        dispatcher, _encryptor, _transport = _make_dispatcher()

        outcome = dispatcher.dispatch(_recipient(), b"plain", Period(2026, 1))

        assert outcome.ok is True
        assert outcome.reason is None

    def test_encrypts_with_recipient_secret(self) -> None:
        dispatcher, encryptor, _transport = _make_dispatcher()

        dispatcher.dispatch(_recipient(), b"plain", Period(2026, 1))

        encryptor.protect.assert_called_once_with(b"plain", "ABCD")

    def test_sends_protected_bytes_under_canonical_filename(self) -> None:
        dispatcher, _encryptor, transport = _make_dispatcher()

        dispatcher.dispatch(_recipient(), b"plain", Period(2026, 1))

        transport.send.assert_called_once()
        to, subject, html_body, attachment_name, attachment_bytes = transport.send.call_args.args
        assert to == "anna@example.com"
        assert "2026/01" in subject
        assert "first pet" in html_body
        assert "ABCD" not in html_body
        assert attachment_name == "p1.pdf"
        assert attachment_bytes == b"encrypted"


class TestEncryptionFailure:
    def test_returns_encryption_failed(self) -> None:
        dispatcher, encryptor, _transport = _make_dispatcher()
        encryptor.protect.side_effect = EncryptionError("qpdf missing")

        outcome = dispatcher.dispatch(_recipient(), b"plain", Period(2026, 1))

        assert outcome.ok is False
        assert outcome.reason == "encryption failed"

    def test_does_not_send(self) -> None:
        dispatcher, encryptor, transport = _make_dispatcher()
        encryptor.protect.side_effect = EncryptionError("bad pdf")

        dispatcher.dispatch(_recipient(), b"plain", Period(2026, 1))

        transport.send.assert_not_called()


class TestDeliveryFailure:
    def test_returns_delivery_failed(self) -> None:
        dispatcher, _encryptor, transport = _make_dispatcher()
        transport.send.side_effect = DeliveryError("relay refused")

        outcome = dispatcher.dispatch(_recipient(), b"plain", Period(2026, 1))

        assert outcome.ok is False
        assert outcome.reason == "delivery failed"

    def test_makes_a_single_attempt(self) -> None:
        dispatcher, _encryptor, transport = _make_dispatcher()
        transport.send.side_effect = DeliveryError("relay refused")

        dispatcher.dispatch(_recipient(), b"plain", Period(2026, 1))

        assert transport.send.call_count == 1
