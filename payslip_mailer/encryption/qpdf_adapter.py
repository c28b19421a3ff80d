import subprocess
import tempfile
from pathlib import Path

from payslip_mailer.encryption.base import BaseEncryptor
from payslip_mailer.encryption.exceptions import EncryptionError

# qpdf exits with 3 when it succeeded but emitted warnings.
_QPDF_OK_CODES = (0, 3)


class QpdfEncryptor(BaseEncryptor):
    """Protects PDFs by shelling out to the qpdf binary."""

    def __init__(self, binary: str = "qpdf", timeout_seconds: int = 30) -> None:
        self._binary = binary
        self._timeout_seconds = timeout_seconds

    def protect(self, pdf_bytes: bytes, secret: str) -> bytes:
        if not secret:
            raise EncryptionError("Secret must not be empty")
        with tempfile.TemporaryDirectory(prefix="payslip-") as workdir:
            root = Path(workdir)
            input_path = root / "input.pdf"
            output_path = root / "output.pdf"
            args_path = root / "args"
            input_path.write_bytes(pdf_bytes)
            # Passwords go through an argument file, never the process table.
            args_path.write_text(
                "\n".join(
                    [
                        "--encrypt",
                        secret,
                        secret,
                        "256",
                        "--",
                        str(input_path),
                        str(output_path),
                    ]
                )
                + "\n"
            )
            self._run([self._binary, f"@{args_path}"])
            if not output_path.exists():
                raise EncryptionError("qpdf produced no output file")
            return output_path.read_bytes()

    def _run(self, command: list[str]) -> None:
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                timeout=self._timeout_seconds,
                check=False,
            )
        except FileNotFoundError as exc:
            raise EncryptionError(f"qpdf binary '{self._binary}' not found") from exc
        except subprocess.TimeoutExpired as exc:
            raise EncryptionError(
                f"qpdf timed out after {self._timeout_seconds}s"
            ) from exc
        if completed.returncode not in _QPDF_OK_CODES:
            stderr = completed.stderr.decode(errors="replace").strip()
            raise EncryptionError(
                f"qpdf exited with code {completed.returncode}: {stderr}"
            )
