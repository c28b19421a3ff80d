from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from payslip_mailer.distribution.exceptions import InvalidPeriodError

MIN_YEAR = 2000
MAX_YEAR = 2100


@dataclass(frozen=True)
class Period:
    """The (year, month) a payslip pertains to."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not MIN_YEAR <= self.year <= MAX_YEAR:
            raise InvalidPeriodError(
                f"year must be between {MIN_YEAR} and {MAX_YEAR}, got {self.year}"
            )
        if not 1 <= self.month <= 12:
            raise InvalidPeriodError(f"month must be between 1 and 12, got {self.month}")

    @property
    def label(self) -> str:
        return f"{self.year}/{self.month:02d}"


@dataclass(frozen=True)
class Recipient:
    """Domain model for an employee entitled to receive a protected payslip."""

    id: int
    name: str
    email: str
    secret_hint: str
    document_filename: str
    secret: str = field(repr=False)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class UploadedFile:
    """A document blob as uploaded by the operator."""

    filename: str
    content: bytes = field(repr=False)


@dataclass(frozen=True)
class MatchedDocument:
    """An uploaded document paired with exactly one recipient."""

    recipient_id: int
    recipient_name: str
    filename: str
    content: bytes = field(repr=False)


@dataclass(frozen=True)
class MissingRecipient:
    """A recipient for whom no document was uploaded."""

    recipient_id: int
    recipient_name: str
    document_filename: str


@dataclass
class MatchResult:
    """Output of the matcher. Not persisted."""

    matched: list[MatchedDocument] = field(default_factory=list)
    unmatched: list[str] = field(default_factory=list)
    missing_recipients: list[MissingRecipient] = field(default_factory=list)


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of a single encrypt-and-send attempt."""

    ok: bool
    reason: str | None = None

    @classmethod
    def succeeded(cls) -> "DispatchOutcome":
        return cls(ok=True)

    @classmethod
    def failed(cls, reason: str) -> "DispatchOutcome":
        return cls(ok=False, reason=reason)


class AttemptStatus(str, Enum):
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class DistributionAttempt:
    """Immutable audit record of one dispatch attempt.

    ``recipient_id`` may point at a recipient that no longer exists;
    ``recipient_name`` is the snapshot taken when the attempt was made.
    """

    recipient_id: int | None
    recipient_name: str
    year: int
    month: int
    filename: str
    status: AttemptStatus
    reason: str | None = None
    sent_at: datetime | None = None
    id: int | None = None
    recipient_email: str | None = None


@dataclass(frozen=True)
class SendResult:
    """Outcome of an individual send as seen by the caller."""

    ok: bool
    error: str | None = None


@dataclass
class BatchOutcome:
    """Aggregate summary of a mass send. Not persisted."""

    sent: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.sent + self.failed


class RecordPresence(str, Enum):
    """Tri-state answer to "are there any records?".

    UNKNOWN means the store could not be queried; callers pick the safe default.
    """

    UNKNOWN = "unknown"
    EMPTY = "empty"
    NON_EMPTY = "non_empty"
