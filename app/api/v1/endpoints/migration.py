from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps.request_identity import require_authenticated_identity
from app.db.session import get_db
from app.schemas.base import ApiResponse
from app.schemas.migration import (
    AnalyzeReport,
    MigrationRunView,
    VerifyReport,
)
from app.schemas.request_identity import RequestIdentity
from app.services import migration_report
from app.services.migration_run_service import MigrationFailure
from app.services.vessel_migration_service import VesselMigrationService

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_authenticated_identity)])


def _internal_error(phase: str, exc: Exception) -> MigrationFailure:
    logger.exception("vessel_migration_phase_error phase=%s", phase)
    return MigrationFailure(
        code="INTERNAL_ERROR",
        message=f"Migration failed: {exc}",
        status_code=500,
    )


@router.get("/analyze", response_model=ApiResponse[AnalyzeReport])
def analyze_migration(db: Session = Depends(get_db)):
    service = VesselMigrationService(db)
    try:
        result = service.analyze()
    except SQLAlchemyError as exc:
        raise _internal_error("analyze", exc) from exc
    return migration_report.analyze_response(result)


@router.post("/execute", response_model=None)
def execute_migration(
    dry_run: bool = Query(False, alias="dryRun"),
    identity: RequestIdentity = Depends(require_authenticated_identity),
    db: Session = Depends(get_db),
):
    service = VesselMigrationService(db, actor_email=identity.email)
    try:
        if dry_run:
            return migration_report.dry_run_response(service.dry_run())
        log = service.execute()
    except SQLAlchemyError as exc:
        raise _internal_error("execute", exc) from exc
    return migration_report.execute_response(log)


@router.get("/verify", response_model=ApiResponse[VerifyReport])
def verify_migration(db: Session = Depends(get_db)):
    service = VesselMigrationService(db)
    try:
        result = service.verify()
    except SQLAlchemyError as exc:
        raise _internal_error("verify", exc) from exc
    return migration_report.verify_response(result)


@router.post("/rollback", response_model=None)
def rollback_migration(
    confirm: bool = Query(False),
    identity: RequestIdentity = Depends(require_authenticated_identity),
    db: Session = Depends(get_db),
):
    service = VesselMigrationService(db, actor_email=identity.email)
    try:
        if not confirm:
            return migration_report.rollback_preview_response(service.rollback_preview())
        count, run = service.rollback()
    except SQLAlchemyError as exc:
        raise _internal_error("rollback", exc) from exc
    return migration_report.rollback_response(count, run)


@router.post("/cleanup", response_model=None)
def cleanup_legacy_fields(
    confirm: bool = Query(False),
    verify_first: bool = Query(True, alias="verifyFirst"),
    identity: RequestIdentity = Depends(require_authenticated_identity),
    db: Session = Depends(get_db),
):
    service = VesselMigrationService(db, actor_email=identity.email)
    try:
        if not confirm:
            if verify_first:
                service.ensure_cleanup_allowed()
            return migration_report.cleanup_preview_response(service.cleanup_preview())
        count, run = service.cleanup(verify_first=verify_first)
    except SQLAlchemyError as exc:
        raise _internal_error("cleanup", exc) from exc
    return migration_report.cleanup_response(count, run)


@router.get("/runs", response_model=ApiResponse[list[MigrationRunView]])
def list_migration_runs(
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    service = VesselMigrationService(db)
    runs = service.runs.list_recent(limit=limit)
    return ApiResponse[list[MigrationRunView]](
        message="Migration runs retrieved",
        data=[migration_report.run_view(run) for run in runs],
    )
