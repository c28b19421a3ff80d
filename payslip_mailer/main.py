import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from payslip_mailer.config.settings import Settings
from payslip_mailer.database.connection import apply_schema, close_pool, init_pool
from payslip_mailer.database.repositories.attempt_repository import AttemptRepository
from payslip_mailer.database.repositories.recipient_repository import RecipientRepository
from payslip_mailer.distribution.coordinator import build_coordinator
from payslip_mailer.distribution.exceptions import InvalidPeriodError
from payslip_mailer.distribution.matcher import Matcher
from payslip_mailer.distribution.models import MatchResult, Period, UploadedFile
from payslip_mailer.logging.logger import Log
from payslip_mailer.roster.exceptions import RosterImportError
from payslip_mailer.roster.importer import RosterImporter
from payslip_mailer.transport.factory import TransportFactory


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="payslip-mailer",
        description="Send password-protected payslips to employees by email.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="create database tables")

    match = commands.add_parser("match", help="preview which files map to which recipients")
    match.add_argument("files", nargs="+", type=Path)
    match.add_argument("--strict", action="store_true", help="fail on duplicate filenames")

    batch = commands.add_parser("send-batch", help="match files and send them all")
    _add_period_arguments(batch)
    batch.add_argument("files", nargs="+", type=Path)
    batch.add_argument("--strict", action="store_true", help="fail on duplicate filenames")

    one = commands.add_parser("send-one", help="send one file to one recipient")
    _add_period_arguments(one)
    one.add_argument("--recipient-id", type=int, required=True)
    one.add_argument("file", type=Path)

    roster = commands.add_parser("import-roster", help="upsert recipients from an .xlsx file")
    roster.add_argument("file", type=Path)

    report = commands.add_parser("report", help="list distribution attempts")
    report.add_argument("--year", type=int)
    report.add_argument("--month", type=int)
    return parser


def _add_period_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--year", type=int, required=True)
    parser.add_argument("--month", type=int, required=True)


def _load_files(paths: Sequence[Path]) -> list[UploadedFile]:
    return [UploadedFile(filename=path.name, content=path.read_bytes()) for path in paths]


def _print_match(result: MatchResult) -> None:
    for item in result.matched:
        print(f"matched: {item.filename} -> {item.recipient_name} (#{item.recipient_id})")
    for filename in result.unmatched:
        print(f"unmatched file: {filename}")
    for missing in result.missing_recipients:
        print(
            f"no file for: {missing.recipient_name} (#{missing.recipient_id}, "
            f"expects {missing.document_filename})"
        )


def _match(args: argparse.Namespace) -> MatchResult:
    recipients = RecipientRepository().list_all()
    return Matcher(strict=args.strict).match(_load_files(args.files), recipients)


def run(args: argparse.Namespace, settings: Settings) -> int:
    """Execute one sub-command against an initialized pool. Returns the exit code."""
    if args.command == "init-db":
        apply_schema()
        print("schema applied")
        return 0

    if args.command == "match":
        result = _match(args)
        _print_match(result)
        return 0 if not result.unmatched else 1

    if args.command == "import-roster":
        try:
            imported = RosterImporter(RecipientRepository()).import_workbook(
                args.file.read_bytes()
            )
        except RosterImportError as exc:
            print(f"import failed: {exc}", file=sys.stderr)
            return 1
        print(f"saved: {imported.created}, failed: {imported.failed}")
        for error in imported.errors:
            print(f"  {error}")
        return 0 if not imported.errors else 1

    if args.command == "report":
        for attempt in AttemptRepository().find_by_period(args.year, args.month):
            sent_at = attempt.sent_at.isoformat() if attempt.sent_at else "-"
            print(
                f"{sent_at}  {attempt.year}/{attempt.month:02d}  "
                f"{attempt.status.value:<6}  {attempt.recipient_name}  {attempt.filename}"
            )
        return 0

    try:
        period = Period(year=args.year, month=args.month)
    except InvalidPeriodError as exc:
        print(f"invalid period: {exc}", file=sys.stderr)
        return 2
    transport = TransportFactory.create(settings)
    try:
        coordinator = build_coordinator(settings, transport=transport)
        if args.command == "send-one":
            result = coordinator.send_one(args.recipient_id, args.file.read_bytes(), period)
            if result.ok:
                print("sent: 1, failed: 0")
                return 0
            print(f"sent: 0, failed: 1\n  {result.error}")
            return 1

        match_result = _match(args)
        _print_match(match_result)
        outcome = coordinator.send_batch(match_result.matched, period)
        print(f"sent: {outcome.sent}, failed: {outcome.failed}")
        for error in outcome.errors:
            print(f"  {error}")
        return 0 if outcome.failed == 0 else 1
    finally:
        transport.close()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point: parse args -> initialize pool -> run command."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings, max_size=max(10, settings.batch_max_workers + 1))
    try:
        return run(args, settings)
    finally:
        close_pool()


if __name__ == "__main__":
    sys.exit(main())
