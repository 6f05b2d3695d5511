import argparse
import json
import logging
from pathlib import Path

from rma_import.config import get_settings
from rma_import.database import build_session_factory
from rma_import.pipeline import IngestionRunner
from rma_import.scheduler import start_scheduler


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Bulk import RMA records")
    subparsers = parser.add_subparsers(dest="command", required=True)

    csv_parser = subparsers.add_parser("import-csv", help="import RMA rows from a CSV export")
    csv_parser.add_argument("path", help="CSV file to import")

    json_parser = subparsers.add_parser("import-json", help="import a JSON array of RMA objects")
    json_parser.add_argument("path", help="JSON file holding an array or an {\"rmas\": [...]} body")

    template_parser = subparsers.add_parser("template", help="write the import template CSV")
    template_parser.add_argument(
        "--output",
        default="rma-import-template.csv",
        help="where to write the template (use - for stdout)",
    )

    subparsers.add_parser("status", help="show record counts and recent imports")

    schedule_parser = subparsers.add_parser("schedule", help="start the daily inbox import")
    schedule_parser.add_argument("--run-now", action="store_true", help="also sweep the inbox once immediately")

    return parser.parse_args()


def main() -> None:
    args = parse_args()
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    session_factory = build_session_factory(settings.database_url)
    if args.command == "schedule":
        start_scheduler(settings, session_factory, run_now=args.run_now)
        return

    runner = IngestionRunner(settings, session_factory)
    if args.command == "template":
        content = runner.template_csv()
        if args.output == "-":
            print(content, end="")
        else:
            Path(args.output).write_text(content, encoding="utf-8")
            print(f"template={args.output}")
        return

    if args.command == "status":
        print(json.dumps(runner.status(), indent=2))
        return

    path = Path(args.path)
    if args.command == "import-csv":
        result = runner.run_file(path)
    else:
        result = runner.run_json_file(path)

    print(json.dumps(result.to_json(), indent=2, default=str))
    if result.status == "aborted":
        raise SystemExit(1)


if __name__ == "__main__":
    main()
