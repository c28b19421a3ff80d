from abc import ABC, abstractmethod


class BaseTransport(ABC):
    """Contract for all mail delivery adapters."""

    @abstractmethod
    def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        attachment_name: str,
        attachment_bytes: bytes,
    ) -> None:
        """Deliver one HTML message with a single PDF attachment.

        Raises:
            DeliveryError: on any provider error.
        """

    def close(self) -> None:
        """Release provider resources. Safe to call more than once."""
