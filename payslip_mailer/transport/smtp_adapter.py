import smtplib
from email.message import EmailMessage

from payslip_mailer.logging.logger import Log
from payslip_mailer.transport.base import BaseTransport
from payslip_mailer.transport.exceptions import DeliveryError

IMPLICIT_TLS_PORT = 465


class SmtpTransport(BaseTransport):
    """Delivers mail through an SMTP relay.

    A new connection is opened per message, so one instance can be shared
    between threads.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        secure: bool = False,
        starttls: bool = True,
        timeout_seconds: int = 30,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._secure = secure or port == IMPLICIT_TLS_PORT
        self._starttls = starttls
        self._timeout_seconds = timeout_seconds

    def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        attachment_name: str,
        attachment_bytes: bytes,
    ) -> None:
        try:
            message = self._build_message(
                to, subject, html_body, attachment_name, attachment_bytes
            )
            with self._connect() as server:
                if self._username and self._password:
                    server.login(self._username, self._password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError, ValueError) as exc:
            raise DeliveryError(f"SMTP delivery failed: {exc}") from exc
        Log.debug(f"SMTP relay {self._host}:{self._port} accepted '{attachment_name}'")

    def _connect(self) -> smtplib.SMTP:
        if self._secure:
            return smtplib.SMTP_SSL(self._host, self._port, timeout=self._timeout_seconds)
        server = smtplib.SMTP(self._host, self._port, timeout=self._timeout_seconds)
        try:
            server.ehlo()
            if self._starttls and server.has_extn("starttls"):
                server.starttls()
                server.ehlo()
        except (smtplib.SMTPException, OSError):
            server.close()
            raise
        return server

    def _build_message(
        self,
        to: str,
        subject: str,
        html_body: str,
        attachment_name: str,
        attachment_bytes: bytes,
    ) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self._sender
        message["To"] = to
        message.set_content(html_body, subtype="html")
        message.add_attachment(
            attachment_bytes,
            maintype="application",
            subtype="pdf",
            filename=attachment_name,
        )
        return message
