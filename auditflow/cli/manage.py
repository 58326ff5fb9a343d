#!/usr/bin/env python3
"""
AuditFlow maintenance CLI
Usage: auditflow-admin <command> [options]

Commands:
  init-db                            Create database tables
  import-standards TEMPLATE_ID FILE  Import a JSON list of standards into a draft template
  audit-stats AUDIT_ID               Print live score, maturity and progress for an audit
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional
from uuid import UUID

from pydantic import TypeAdapter, ValidationError

from ..config import get_settings
from ..database import SessionLocal, create_tables
from ..exceptions import AuditFlowError
from ..models.standard_models import ImportStandard
from ..services import AuditLifecycleService, StandardImportService
from ..utils.logging_security import configure_logging

logger = logging.getLogger(__name__)

_import_rows = TypeAdapter(List[ImportStandard])


def cmd_init_db(args: argparse.Namespace) -> int:
    create_tables()
    print("Database tables created")
    return 0


def cmd_import_standards(args: argparse.Namespace) -> int:
    """Load a JSON array of standard rows and import it atomically."""
    source = Path(args.file)
    if not source.exists():
        logger.error(f"Import file not found: {source}")
        return 1

    try:
        items = _import_rows.validate_python(json.loads(source.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Invalid import file {source}: {e}")
        return 1

    db = SessionLocal()
    try:
        created = StandardImportService(db).import_standards(args.template_id, items)
    except AuditFlowError as e:
        logger.error(f"Import failed: {e}")
        for issue in getattr(e, "issues", []):
            print(f"  row {issue['row']} [{issue['field']}] {issue['message']}")
        return 1
    finally:
        db.close()

    print(f"Imported {len(created)} standard(s) into template {args.template_id}")
    return 0


def cmd_audit_stats(args: argparse.Namespace) -> int:
    db = SessionLocal()
    try:
        stats = AuditLifecycleService(db).get_audit_stats(args.audit_id)
    except AuditFlowError as e:
        logger.error(f"Cannot compute statistics: {e}")
        return 1
    finally:
        db.close()

    if args.json:
        print(stats.model_dump_json(indent=2))
        return 0

    print(f"\n=== Audit {stats.audit_id} ===")
    print(f"Overall score: {stats.overall_score}")
    print(f"Average maturity: {stats.average_maturity_level if stats.average_maturity_level is not None else 'n/a'}")
    print(f"Evaluation progress: {stats.evaluation_progress}%")
    print(f"\nProgress ({stats.progress.percentage_complete}% complete):")
    print(f"  not started: {stats.progress.not_started}")
    print(f"  in progress: {stats.progress.in_progress}")
    print(f"  completed: {stats.progress.completed}")
    print(f"  reviewed: {stats.progress.reviewed}")
    print("\nCompliance:")
    print(f"  compliant: {stats.compliance.compliant} ({stats.compliance.compliant_percent}%)")
    print(f"  partial: {stats.compliance.partial} ({stats.compliance.partial_percent}%)")
    print(f"  non compliant: {stats.compliance.non_compliant} ({stats.compliance.non_compliant_percent}%)")
    print(f"  not applicable: {stats.compliance.not_applicable} ({stats.compliance.not_applicable_percent}%)")
    print(f"  not evaluated: {stats.compliance.not_evaluated} ({stats.compliance.not_evaluated_percent}%)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="auditflow-admin", description="AuditFlow maintenance tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_db = subparsers.add_parser("init-db", help="Create database tables")
    init_db.set_defaults(handler=cmd_init_db)

    import_cmd = subparsers.add_parser("import-standards", help="Import standards from a JSON file")
    import_cmd.add_argument("template_id", type=UUID, help="Draft template receiving the standards")
    import_cmd.add_argument("file", help="JSON array of {code, title, parent_code, ...} rows")
    import_cmd.set_defaults(handler=cmd_import_standards)

    stats_cmd = subparsers.add_parser("audit-stats", help="Show live statistics for an audit")
    stats_cmd.add_argument("audit_id", type=UUID)
    stats_cmd.add_argument("--json", action="store_true", help="Print JSON instead of text")
    stats_cmd.set_defaults(handler=cmd_audit_stats)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI interface"""
    configure_logging(get_settings())
    args = build_parser().parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
