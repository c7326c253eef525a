"""
Drive the vessel normalization migration from a shell.

Usage:
  python scripts/run_vessel_migration.py analyze
  python scripts/run_vessel_migration.py execute [--dry-run]
  python scripts/run_vessel_migration.py verify
  python scripts/run_vessel_migration.py rollback [--confirm]
  python scripts/run_vessel_migration.py cleanup [--confirm] [--skip-verify]

Each command prints the same JSON envelope the HTTP API returns.
Exit code is 0 on success, 1 when verify finds issues or a phase is refused.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from app.db.session import SessionLocal
from app.services import migration_report
from app.services.migration_run_service import MigrationFailure
from app.services.vessel_identity_service import MIGRATION_ACTOR
from app.services.vessel_migration_service import VERIFY_PASSED, VesselMigrationService


def _print(envelope) -> None:
    print(json.dumps(envelope.model_dump(by_alias=True, mode="json"), indent=2))


def _run(args: argparse.Namespace, service: VesselMigrationService) -> int:
    if args.command == "analyze":
        _print(migration_report.analyze_response(service.analyze()))
        return 0

    if args.command == "execute":
        if args.dry_run:
            _print(migration_report.dry_run_response(service.dry_run()))
            return 0
        log = service.execute()
        _print(migration_report.execute_response(log))
        return 1 if log.errors else 0

    if args.command == "verify":
        result = service.verify()
        _print(migration_report.verify_response(result))
        return 0 if result.status == VERIFY_PASSED else 1

    if args.command == "rollback":
        if not args.confirm:
            _print(migration_report.rollback_preview_response(service.rollback_preview()))
            return 0
        count, run = service.rollback()
        _print(migration_report.rollback_response(count, run))
        return 0

    if args.command == "cleanup":
        if not args.confirm:
            if not args.skip_verify:
                service.ensure_cleanup_allowed()
            _print(migration_report.cleanup_preview_response(service.cleanup_preview()))
            return 0
        count, run = service.cleanup(verify_first=not args.skip_verify)
        _print(migration_report.cleanup_response(count, run))
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Normalize embedded shipment vessel fields into Vessel records."
    )
    parser.add_argument(
        "--actor",
        default=MIGRATION_ACTOR,
        help="Email recorded on created vessels and migration runs.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("analyze", help="Count unmigrated shipments and list vessel combinations.")

    execute = sub.add_parser("execute", help="Create vessels and link shipments.")
    execute.add_argument("--dry-run", action="store_true", help="Report the plan without writing.")

    sub.add_parser("verify", help="Check completeness and referential integrity.")

    rollback = sub.add_parser("rollback", help="Clear vessel_id on every shipment.")
    rollback.add_argument("--confirm", action="store_true", help="Apply instead of preview.")

    cleanup = sub.add_parser("cleanup", help="Remove legacy vessel columns from shipments.")
    cleanup.add_argument("--confirm", action="store_true", help="Apply instead of preview.")
    cleanup.add_argument(
        "--skip-verify",
        action="store_true",
        help="Do not require every shipment to be migrated first.",
    )

    args = parser.parse_args()

    db = SessionLocal()
    try:
        return _run(args, VesselMigrationService(db, actor_email=args.actor))
    except MigrationFailure as exc:
        print(json.dumps({"success": False, **exc.to_detail()}, indent=2))
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
