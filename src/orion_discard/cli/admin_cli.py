"""
Admin CLI for the discard station.

Usage:
    orion-discard-admin check-status --barcode <code> [scope options]
    orion-discard-admin validate --barcode <code> [--actor <id>] [scope options]
    orion-discard-admin unmark --barcode <code> [scope options]
    orion-discard-admin bulk-validate --file <path> | --barcodes <a,b,c> [scope options]
    orion-discard-admin stats [--field <field>] [scope options]
    orion-discard-admin entries [--limit <n>]
    orion-discard-admin init-schema
"""

import argparse
import json
import sys
from pathlib import Path

from orion_discard.app import open_postgres
from orion_discard.config import Settings, load_settings
from orion_discard.core.barcodes import clean_barcode, validate_barcode_format
from orion_discard.core.errors import DiscardError
from orion_discard.observability.logger import configure_logging, get_logger
from orion_discard.service import DiscardService
from orion_discard.store import DatabaseConnectionPool, SchemaManager

logger = get_logger(__name__)


def load_cli_settings(args) -> Settings:
    """Settings from file and environment, with command-line database overrides applied."""
    settings = load_settings(args.config)
    configure_logging(settings.log_level, settings.log_format)
    db = settings.database
    overrides = {
        "host": args.db_host,
        "port": args.db_port,
        "name": args.db_name,
        "user": args.db_user,
        "password": args.db_password,
    }
    settings.database = db.model_copy(update={k: v for k, v in overrides.items() if v is not None})
    return settings


def connect(args) -> tuple[DatabaseConnectionPool, DiscardService]:
    """Open the database and build a service on it; the caller closes the pool."""
    settings = load_cli_settings(args)
    pool, store, entry_log = open_postgres(settings, ensure_schema=False)
    return pool, DiscardService(store, entry_log, settings=settings)


def scope_payload(args, service: DiscardService) -> dict:
    scope = service.scope_from({"site": args.site, "year": args.year, "record_type": args.record_type})
    return scope.model_dump()


def print_record(record: dict) -> None:
    print(f"  Record ID:    {record.get('id')}")
    print(f"  Barcode:      {record.get('barcd', '')}")
    print(f"  Field:        {record.get('field', '')}")
    print(f"  Range / Row:  {record.get('range_val', '')} / {record.get('row_val', '')}")
    print(f"  Plot:         {record.get('plot_id', '')} ({record.get('subplot_id', '')})")
    print(f"  MATID:        {record.get('matid', '')}")
    print(f"  Status:       {record.get('status', '')}")
    if record.get("discarded_at"):
        print(f"  Discarded at: {record['discarded_at']} by {record.get('discarded_by') or 'unknown'}")


def unwrap(envelope: dict):
    """Return an envelope's data, or raise the DiscardError it carries."""
    if envelope.get("success"):
        return envelope.get("data")
    error = envelope.get("error") or {}
    raise DiscardError(error.get("message") or "Operation failed", error.get("details") or {})


def check_status_command(args, service: DiscardService):
    """
    Show whether a barcode exists in scope and whether it is discarded.
    """
    data = unwrap(service.handle("check_duplicate", {**scope_payload(args, service), "barcode": args.barcode}))

    print(f"\nBarcode: {data['barcode']}")
    if not data["exists"]:
        print("  Not found in scope")
        return
    print(f"  Discarded: {'yes' if data['discarded'] else 'no'}")
    if data.get("record"):
        print_record(data["record"])


def validate_command(args, service: DiscardService):
    """
    Mark one barcode as discarded.
    """
    code = clean_barcode(args.barcode)
    if not validate_barcode_format(code) and not args.force:
        raise DiscardError(f"Invalid barcode format: {code!r} (use --force to submit anyway)")

    record = unwrap(
        service.handle(
            "validate_and_discard",
            {**scope_payload(args, service), "barcode": code, "actor": args.actor},
        )
    )
    print(f"\nDiscarded {code}")
    print_record(record)


def unmark_command(args, service: DiscardService):
    record = unwrap(
        service.handle("unmark_discard", {**scope_payload(args, service), "barcode": args.barcode})
    )
    print(f"\nCleared discard flag for {args.barcode}")
    print_record(record)


def read_barcodes(args) -> list[str]:
    if args.file:
        lines = Path(args.file).read_text().splitlines()
        return [clean_barcode(line) for line in lines if line.strip()]
    return [clean_barcode(code) for code in args.barcodes.split(",") if code.strip()]


def bulk_validate_command(args, service: DiscardService):
    """
    Discard every barcode of a file (one per line) or a comma-separated list.
    """
    barcodes = read_barcodes(args)
    result = unwrap(
        service.handle(
            "bulk_validate",
            {**scope_payload(args, service), "barcodes": barcodes, "actor": args.actor},
        )
    )

    summary = result["summary"]
    print(f"\n{'=' * 60}")
    print("BULK VALIDATION")
    print(f"{'=' * 60}\n")
    print(f"  Total:             {summary['total']}")
    print(f"  Discarded:         {summary['success_count']}")
    print(f"  Already discarded: {len(result['already_discarded'])}")
    print(f"  Not found:         {len(result['not_found'])}")
    print(f"  Other errors:      {len(result['other_errors'])}")

    if result["not_found"]:
        print("\nNot found:")
        for code in result["not_found"]:
            print(f"  {code}")
    if result["other_errors"]:
        print("\nErrors:")
        for item in result["other_errors"]:
            print(f"  {item['barcode']:<20} {item['error']}")
    print(f"\n{'=' * 60}\n")

    if args.output:
        Path(args.output).write_text(json.dumps(result, indent=2))
        print(f"Results written to {args.output}")


def stats_command(args, service: DiscardService):
    """
    Show discarded / pending counts for the scope (optionally one field).
    """
    payload = scope_payload(args, service)
    stats = unwrap(service.handle("statistics", {**payload, "field": args.field}))

    print(f"\n{'=' * 60}")
    print("DISCARD STATISTICS")
    print(f"Scope: {payload['site']} / {payload['year']} / {payload['record_type']}")
    if args.field:
        print(f"Field: {args.field}")
    print(f"{'=' * 60}\n")
    print(f"  Total records: {stats['total']}")
    print(f"  Discarded:     {stats['discarded']}")
    print(f"  Pending:       {stats['pending']}")
    print(f"  Progress:      {stats['percentage']:.2f}%")
    print(f"\n{'=' * 60}\n")


def entries_command(args, service: DiscardService):
    entries = service.entry_log.list_entries(limit=args.limit)
    if not entries:
        print("\nNo discard entries recorded.")
        return

    print(f"\n{'Created':<20} {'Code':<20} {'Field':<15} {'User'}")
    print(f"{'-' * 70}")
    for entry in entries:
        print(
            f"{entry.created_at.strftime('%Y-%m-%d %H:%M:%S'):<20} "
            f"{entry.scanned_code:<20} {entry.field_name or entry.field_id:<15} {entry.user_id}"
        )


COMMANDS = {
    "check-status": check_status_command,
    "validate": validate_command,
    "unmark": unmark_command,
    "bulk-validate": bulk_validate_command,
    "stats": stats_command,
    "entries": entries_command,
}


def init_schema_command(args):
    """Create the record and entry tables if they do not exist."""
    settings = load_cli_settings(args)
    pool, _, _ = open_postgres(settings, ensure_schema=False)
    try:
        SchemaManager(pool).ensure_schema()
        print("\nSchema is up to date.")
    finally:
        pool.close()


def run_command(args) -> int:
    """
    Run one service-backed subcommand.

    Returns:
        Process exit code
    """
    pool, service = connect(args)
    try:
        COMMANDS[args.command](args, service)
        return 0
    except DiscardError as e:
        logger.error(f"{args.command} failed: {e.message}", extra={"details": e.details})
        print(f"\nError: {e.message}")
        return 1
    finally:
        pool.close()


def add_scope_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--site", help="Site code (default: configured site)")
    parser.add_argument("--year", help="Season year (default: configured year)")
    parser.add_argument("--record-type", help="Record type (default: configured record type)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Admin CLI for the discard station",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--config", help="YAML configuration file (default: $ORION_CONFIG)")
    parser.add_argument("--db-host", help="Database host")
    parser.add_argument("--db-port", type=int, help="Database port")
    parser.add_argument("--db-name", help="Database name")
    parser.add_argument("--db-user", help="Database user")
    parser.add_argument("--db-password", help="Database password")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    status_parser = subparsers.add_parser("check-status", help="Show the discard status of a barcode")
    status_parser.add_argument("--barcode", required=True, help="Barcode to look up")
    add_scope_arguments(status_parser)

    validate_parser = subparsers.add_parser("validate", help="Mark a barcode as discarded")
    validate_parser.add_argument("--barcode", required=True, help="Barcode to discard")
    validate_parser.add_argument("--actor", help="Operator id stamped on the record")
    validate_parser.add_argument(
        "--force",
        action="store_true",
        help="Submit even if the barcode format looks wrong",
    )
    add_scope_arguments(validate_parser)

    unmark_parser = subparsers.add_parser("unmark", help="Clear the discard flag of a barcode")
    unmark_parser.add_argument("--barcode", required=True, help="Barcode to restore")
    add_scope_arguments(unmark_parser)

    bulk_parser = subparsers.add_parser("bulk-validate", help="Discard many barcodes")
    source = bulk_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", help="File with one barcode per line")
    source.add_argument("--barcodes", help="Comma-separated barcodes")
    bulk_parser.add_argument("--actor", help="Operator id stamped on the records")
    bulk_parser.add_argument("--output", help="Write the full result as JSON to this path")
    add_scope_arguments(bulk_parser)

    stats_parser = subparsers.add_parser("stats", help="Show discard progress")
    stats_parser.add_argument("--field", help="Restrict to one field")
    add_scope_arguments(stats_parser)

    entries_parser = subparsers.add_parser("entries", help="List recent discard entries")
    entries_parser.add_argument(
        "--limit",
        type=int,
        default=50,
        help="Maximum number of entries to show (default: 50)",
    )

    subparsers.add_parser("init-schema", help="Create database tables")

    return parser


def main(argv: list[str] | None = None):
    """Main entry point for admin CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == "init-schema":
            init_schema_command(args)
            exit_code = 0
        else:
            exit_code = run_command(args)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Error running {args.command}: {e}", exc_info=True)
        print(f"\nError: {e}")
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
