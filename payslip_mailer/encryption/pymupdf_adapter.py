import pymupdf

from payslip_mailer.encryption.base import BaseEncryptor
from payslip_mailer.encryption.exceptions import EncryptionError


class PyMuPdfEncryptor(BaseEncryptor):
    """Protects PDFs in-process using PyMuPDF."""

    def protect(self, pdf_bytes: bytes, secret: str) -> bytes:
        if not secret:
            raise EncryptionError("Secret must not be empty")
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                if doc.needs_pass:
                    raise EncryptionError("Document is already password-protected")
                return doc.tobytes(
                    garbage=3,
                    deflate=True,
                    encryption=pymupdf.PDF_ENCRYPT_AES_256,
                    owner_pw=secret,
                    user_pw=secret,
                )
        except EncryptionError:
            raise
        except Exception as exc:
            raise EncryptionError(f"pymupdf encryption failed: {exc}") from exc
