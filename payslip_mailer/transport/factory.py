from payslip_mailer.config.settings import Settings
from payslip_mailer.transport.base import BaseTransport
from payslip_mailer.transport.fallback import FallbackTransport
from payslip_mailer.transport.graph_adapter import GraphTransport
from payslip_mailer.transport.smtp_adapter import SmtpTransport


class TransportFactory:
    """Creates the configured mail transport.

    ``graph`` yields Microsoft Graph with SMTP as fallback; ``smtp`` yields SMTP alone.
    """

    PROVIDERS: tuple[str, ...] = ("smtp", "graph")

    @classmethod
    def create(cls, settings: Settings) -> BaseTransport:
        provider = settings.email_provider.lower()
        if provider == "smtp":
            return cls._smtp(settings)
        if provider == "graph":
            graph = GraphTransport(
                tenant_id=settings.azure_tenant_id,
                client_id=settings.azure_client_id,
                client_secret=settings.azure_client_secret,
                sender=settings.sender_email,
                timeout_seconds=settings.graph_timeout_seconds,
                save_to_sent_items=settings.graph_save_to_sent_items,
            )
            return FallbackTransport(primary=graph, fallback=cls._smtp(settings))
        raise ValueError(
            f"Unknown email provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
        )

    @classmethod
    def _smtp(cls, settings: Settings) -> SmtpTransport:
        return SmtpTransport(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.sender_email,
            username=settings.smtp_username,
            password=settings.smtp_password,
            secure=settings.smtp_secure,
            starttls=settings.smtp_starttls,
            timeout_seconds=settings.smtp_timeout_seconds,
        )
