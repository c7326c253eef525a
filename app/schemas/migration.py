from __future__ import annotations

from datetime import datetime

from pydantic import Field

from app.schemas.base import CamelSchema


class VesselCombination(CamelSchema):
    vessel_name: str
    job_number: str | None = None
    pod: str | None = None
    shipment_count: int


class AnalyzeReport(CamelSchema):
    unmigrated_shipments: int
    migrated_shipments: int
    unique_vessel_combinations: int
    existing_vessels: int
    vessel_combinations: list[VesselCombination] = Field(default_factory=list)


class DryRunDetail(VesselCombination):
    existing_vessel_id: int | None = None
    will_create_vessel: bool


class DryRunReport(CamelSchema):
    dry_run: bool = True
    vessel_combinations: int
    vessels_to_create: int
    total_shipments_to_migrate: int
    details: list[DryRunDetail] = Field(default_factory=list)


class MigrationGroupError(CamelSchema):
    vessel_name: str
    job_number: str | None = None
    pod: str | None = None
    error: str


class MigrationLog(CamelSchema):
    dry_run: bool = False
    vessels_created: int = 0
    shipments_updated: int = 0
    errors: list[MigrationGroupError] = Field(default_factory=list)
    vessel_map: dict[str, int] = Field(default_factory=dict)
    run_id: int | None = None


class VerifySample(CamelSchema):
    shipment_id: int
    shipment_vessel_name: str | None = None
    vessel_id: int
    vessel_vessel_name: str | None = None
    match: bool


class SampleCheck(CamelSchema):
    samples_checked: int
    mismatches: int
    # Random sample only; a clean sample does not prove every row matches.
    exhaustive: bool = False
    note: str = "Sample check is probabilistic; only the listed shipments were compared."
    samples: list[VerifySample] = Field(default_factory=list)


class VerifyReport(CamelSchema):
    unmigrated_shipments: int
    migrated_shipments: int
    orphaned_vessel_ids: int
    orphaned_vessel_id_list: list[int] = Field(default_factory=list)
    sample_check: SampleCheck
    status: str


class RollbackPreview(CamelSchema):
    preview: bool = True
    shipments_to_rollback: int
    message: str = (
        "This will remove vesselId references from shipments but keep Vessel records."
    )


class RollbackResult(CamelSchema):
    shipments_rolled_back: int
    message: str = "Vessel records were not deleted. You can re-run migration."
    run_id: int | None = None


class CleanupPreview(CamelSchema):
    preview: bool = True
    shipments_with_vessel_name: int
    shipments_with_pod: int
    shipments_with_job_number: int
    warning: str = (
        "This will permanently remove vesselName, pod, and jobNumber from shipments. "
        "This action is IRREVERSIBLE!"
    )


class CleanupResult(CamelSchema):
    shipments_updated: int
    message: str = (
        "Old fields (vesselName, pod, jobNumber) have been removed from shipments."
    )
    run_id: int | None = None


class MigrationRunView(CamelSchema):
    id: int
    phase: str
    status: str
    actor_email: str | None = None
    started_at: datetime
    finished_at: datetime | None = None
    summary: dict | None = None
    error_message: str | None = None
