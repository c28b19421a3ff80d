from abc import ABC, abstractmethod


class BaseEncryptor(ABC):
    """Contract for all PDF protection adapters."""

    @abstractmethod
    def protect(self, pdf_bytes: bytes, secret: str) -> bytes:
        """Encrypt PDF bytes with AES-256, using ``secret`` as both user and owner password.

        Args:
            pdf_bytes: Raw PDF file content.
            secret: Password required to open the resulting document.

        Returns:
            Encrypted PDF bytes readable by standard PDF viewers.

        Raises:
            EncryptionError: if the secret is empty or encryption fails for any reason.
        """
