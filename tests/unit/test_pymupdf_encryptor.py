import pymupdf
import pytest

from payslip_mailer.encryption.exceptions import EncryptionError
from payslip_mailer.encryption.pymupdf_adapter import PyMuPdfEncryptor


class TestPyMuPdfEncryptor:
    def test_output_requires_password(self, sample_pdf_bytes: bytes) -> None:
        protected = PyMuPdfEncryptor().protect(sample_pdf_bytes, "ABCD")

        with pymupdf.open(stream=protected, filetype="pdf") as doc:
            assert doc.needs_pass

    def test_secret_opens_document(self, sample_pdf_bytes: bytes) -> None:
        protected = PyMuPdfEncryptor().protect(sample_pdf_bytes, "ABCD")

        with pymupdf.open(stream=protected, filetype="pdf") as doc:
            assert doc.authenticate("ABCD") > 0
            assert "Payslip 2026/01" in doc[0].get_text()

    def test_wrong_secret_is_rejected(self, sample_pdf_bytes: bytes) -> None:
        protected = PyMuPdfEncryptor().protect(sample_pdf_bytes, "ABCD")

        with pymupdf.open(stream=protected, filetype="pdf") as doc:
            assert doc.authenticate("WXYZ") == 0

    def test_uses_aes_256(self, sample_pdf_bytes: bytes) -> None:
        protected = PyMuPdfEncryptor().protect(sample_pdf_bytes, "ABCD")

        with pymupdf.open(stream=protected, filetype="pdf") as doc:
            doc.authenticate("ABCD")
            assert "256" in (doc.metadata or {}).get("encryption", "")

    def test_keeps_all_pages(self, multi_page_pdf_bytes: bytes) -> None:
        protected = PyMuPdfEncryptor().protect(multi_page_pdf_bytes, "ABCD")

        with pymupdf.open(stream=protected, filetype="pdf") as doc:
            doc.authenticate("ABCD")
            assert doc.page_count == 2

    def test_empty_secret_raises(self, sample_pdf_bytes: bytes) -> None:
        with pytest.raises(EncryptionError, match="empty"):
            PyMuPdfEncryptor().protect(sample_pdf_bytes, "")

    def test_invalid_pdf_raises(self) -> None:
        with pytest.raises(EncryptionError, match="pymupdf encryption failed"):
            PyMuPdfEncryptor().protect(b"not a pdf at all", "ABCD")

    def test_already_protected_input_raises(self, sample_pdf_bytes: bytes) -> None:
        encryptor = PyMuPdfEncryptor()
        protected = encryptor.protect(sample_pdf_bytes, "ABCD")

        with pytest.raises(EncryptionError, match="already password-protected"):
            encryptor.protect(protected, "ABCD")
