"""Shapes migration phase results into the API envelope models."""

from __future__ import annotations

import json

from app.models.migration_run import MigrationRun
from app.schemas.base import ApiResponse
from app.schemas.migration import (
    AnalyzeReport,
    CleanupPreview,
    CleanupResult,
    DryRunDetail,
    DryRunReport,
    MigrationGroupError,
    MigrationLog,
    MigrationRunView,
    RollbackPreview,
    RollbackResult,
    SampleCheck,
    VerifyReport,
    VerifySample,
    VesselCombination,
)
from app.services.vessel_migration_service import (
    AnalysisResult,
    CleanupPreviewData,
    DryRunResult,
    MigrationLogData,
    VerificationResult,
    VesselGroup,
)


def _combination(group: VesselGroup) -> VesselCombination:
    return VesselCombination(
        vessel_name=group.vessel_name,
        job_number=group.job_number or None,
        pod=group.pod or None,
        shipment_count=group.shipment_count,
    )


def analyze_response(result: AnalysisResult) -> ApiResponse[AnalyzeReport]:
    return ApiResponse[AnalyzeReport](
        message="Migration analysis completed",
        data=AnalyzeReport(
            unmigrated_shipments=result.unmigrated_shipments,
            migrated_shipments=result.migrated_shipments,
            unique_vessel_combinations=len(result.groups),
            existing_vessels=result.existing_vessels,
            vessel_combinations=[_combination(g) for g in result.groups],
        ),
    )


def dry_run_response(result: DryRunResult) -> ApiResponse[DryRunReport]:
    details = []
    for group in result.groups:
        existing_id = result.existing_vessel_ids.get(group.identity_key)
        details.append(
            DryRunDetail(
                **_combination(group).model_dump(),
                existing_vessel_id=existing_id,
                will_create_vessel=existing_id is None,
            )
        )
    return ApiResponse[DryRunReport](
        message="Dry run completed - no changes made",
        data=DryRunReport(
            vessel_combinations=len(result.groups),
            vessels_to_create=result.vessels_to_create,
            total_shipments_to_migrate=result.total_shipments,
            details=details,
        ),
    )


def execute_response(log: MigrationLogData) -> ApiResponse[MigrationLog]:
    message = "Migration completed"
    if log.errors:
        message = f"Migration completed with {len(log.errors)} failed vessel group(s)"
    return ApiResponse[MigrationLog](
        message=message,
        data=MigrationLog(
            vessels_created=log.vessels_created,
            shipments_updated=log.shipments_updated,
            errors=[MigrationGroupError(**err) for err in log.errors],
            vessel_map=dict(log.vessel_map),
            run_id=log.run_id,
        ),
    )


def verify_response(result: VerificationResult) -> ApiResponse[VerifyReport]:
    return ApiResponse[VerifyReport](
        message="Migration verification completed",
        data=VerifyReport(
            unmigrated_shipments=result.unmigrated_shipments,
            migrated_shipments=result.migrated_shipments,
            orphaned_vessel_ids=len(result.orphaned_vessel_ids),
            orphaned_vessel_id_list=list(result.orphaned_vessel_ids),
            sample_check=SampleCheck(
                samples_checked=len(result.samples),
                mismatches=result.mismatches,
                samples=[VerifySample(**s) for s in result.samples],
            ),
            status=result.status,
        ),
    )


def rollback_preview_response(count: int) -> ApiResponse[RollbackPreview]:
    return ApiResponse[RollbackPreview](
        message="Rollback preview - add ?confirm=true to execute",
        data=RollbackPreview(shipments_to_rollback=count),
    )


def rollback_response(count: int, run: MigrationRun) -> ApiResponse[RollbackResult]:
    return ApiResponse[RollbackResult](
        message="Rollback completed",
        data=RollbackResult(shipments_rolled_back=count, run_id=run.id),
    )


def cleanup_preview_response(preview: CleanupPreviewData) -> ApiResponse[CleanupPreview]:
    return ApiResponse[CleanupPreview](
        message="Cleanup preview - add ?confirm=true to execute",
        data=CleanupPreview(
            shipments_with_vessel_name=preview.with_vessel_name,
            shipments_with_pod=preview.with_pod,
            shipments_with_job_number=preview.with_job_number,
        ),
    )


def cleanup_response(count: int, run: MigrationRun) -> ApiResponse[CleanupResult]:
    return ApiResponse[CleanupResult](
        message="Cleanup completed",
        data=CleanupResult(shipments_updated=count, run_id=run.id),
    )


def run_view(run: MigrationRun) -> MigrationRunView:
    summary = None
    if run.summary_json:
        try:
            summary = json.loads(run.summary_json)
        except ValueError:
            summary = {"raw": run.summary_json}
    return MigrationRunView(
        id=run.id,
        phase=run.phase,
        status=run.status,
        actor_email=run.actor_email,
        started_at=run.started_at,
        finished_at=run.finished_at,
        summary=summary,
        error_message=run.error_message,
    )
