from payslip_mailer.config.settings import Settings
from payslip_mailer.encryption.base import BaseEncryptor
from payslip_mailer.encryption.pymupdf_adapter import PyMuPdfEncryptor
from payslip_mailer.encryption.qpdf_adapter import QpdfEncryptor


class EncryptorFactory:
    """Creates the correct PDF encryptor based on settings."""

    ENGINES: tuple[str, ...] = ("pymupdf", "qpdf")

    @classmethod
    def create(cls, settings: Settings) -> BaseEncryptor:
        engine = settings.encryption_engine.lower()
        if engine == "pymupdf":
            return PyMuPdfEncryptor()
        if engine == "qpdf":
            return QpdfEncryptor(
                binary=settings.qpdf_binary,
                timeout_seconds=settings.qpdf_timeout_seconds,
            )
        raise ValueError(
            f"Unknown encryption engine '{engine}'. Choose from: {list(cls.ENGINES)}"
        )
