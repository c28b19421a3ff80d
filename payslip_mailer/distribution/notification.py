import html
from dataclasses import dataclass
from string import Template

from payslip_mailer.distribution.models import Period, Recipient

SUBJECT_TEMPLATE = Template("Payslip - $period")

BODY_TEMPLATE = Template(
    """\
<h2>Dear $name,</h2>
<p>Your payslip for $month_name $year is now available.</p>
<p><strong>PDF password hint:</strong> $hint</p>
<p>The document is attached to this email.</p>
<br/>
<p>Kind regards,<br/>$signature</p>
"""
)

_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


@dataclass(frozen=True)
class Notification:
    subject: str
    html_body: str
    attachment_name: str


class NotificationComposer:
    """Builds the email that carries a protected payslip.

    The body contains the secret hint, never the secret.
    """

    def __init__(self, signature: str = "Finance") -> None:
        self._signature = signature

    def compose(self, recipient: Recipient, period: Period) -> Notification:
        body = BODY_TEMPLATE.substitute(
            name=html.escape(recipient.name),
            month_name=_MONTH_NAMES[period.month - 1],
            year=period.year,
            hint=html.escape(recipient.secret_hint),
            signature=html.escape(self._signature),
        )
        return Notification(
            subject=SUBJECT_TEMPLATE.substitute(period=period.label),
            html_body=body,
            attachment_name=recipient.document_filename,
        )
