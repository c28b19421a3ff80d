from collections.abc import Sequence

from payslip_mailer.distribution.exceptions import MatchAmbiguityError
from payslip_mailer.distribution.models import (
    MatchedDocument,
    MatchResult,
    MissingRecipient,
    Recipient,
    UploadedFile,
)
from payslip_mailer.logging.logger import Log


class Matcher:
    """Pairs uploaded documents with recipients by exact filename.

    Matching is case-sensitive and does not normalize extensions. When two
    recipients share a canonical filename the first one in iteration order
    wins; with ``strict=True`` a ``MatchAmbiguityError`` is raised instead.
    """

    def __init__(self, strict: bool = False) -> None:
        self._strict = strict

    def match(
        self,
        documents: Sequence[UploadedFile],
        recipients: Sequence[Recipient],
    ) -> MatchResult:
        """Return matched pairs in upload order, plus both kinds of leftovers."""
        result = MatchResult()
        matched_ids: set[int] = set()

        for document in documents:
            candidates = [
                r for r in recipients if r.document_filename == document.filename
            ]
            if not candidates:
                result.unmatched.append(document.filename)
                continue
            if len(candidates) > 1:
                self._on_ambiguity(document.filename, candidates)
            recipient = candidates[0]
            matched_ids.add(recipient.id)
            result.matched.append(
                MatchedDocument(
                    recipient_id=recipient.id,
                    recipient_name=recipient.name,
                    filename=document.filename,
                    content=document.content,
                )
            )

        result.missing_recipients = [
            MissingRecipient(
                recipient_id=r.id,
                recipient_name=r.name,
                document_filename=r.document_filename,
            )
            for r in recipients
            if r.id not in matched_ids
        ]
        Log.info(
            f"Matched {len(result.matched)} of {len(documents)} documents, "
            f"{len(result.unmatched)} unmatched, "
            f"{len(result.missing_recipients)} recipients without a document"
        )
        return result

    def _on_ambiguity(self, filename: str, candidates: list[Recipient]) -> None:
        ids = [r.id for r in candidates]
        if self._strict:
            raise MatchAmbiguityError(
                f"Filename '{filename}' matches several recipients: {ids}"
            )
        Log.warning(
            f"Filename '{filename}' matches recipients {ids}; using {ids[0]}"
        )
