"""
Vessel normalization migration.

Moves the vessel description embedded in each shipment (vessel_name,
job_number, pod) into first-class Vessel rows referenced by shipment.vessel_id.

Phases are independent, stateless calls over the current table contents:

- analyze:  read-only counts and the distinct vessel combinations still to migrate
- dry run:  same grouping, plus which vessels would be created; zero writes
- execute:  find-or-create a vessel per group, then link that group's shipments
- verify:   completeness, dangling vessel_id references, random name sample
- rollback: clear vessel_id everywhere (vessels are kept)
- cleanup:  irreversibly strip the legacy columns from every shipment

Shipment states: Unmigrated (vessel_name set, vessel_id NULL), Migrated
(vessel_id set), VesselFree (no vessel_name). Only Unmigrated rows are touched
by execute, so re-running it after a crash or a rollback is safe.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.flow_logging import flow_info
from app.core.vessel_keys import vessel_identity_key, vessel_map_key
from app.models.migration_run import MigrationRun
from app.models.shipment import Shipment
from app.models.vessel import Vessel
from app.services.migration_run_service import MigrationFailure, MigrationRunService
from app.services.vessel_identity_service import find_vessel, resolve_vessel

logger = logging.getLogger(__name__)

VERIFY_PASSED = "PASSED"
VERIFY_ISSUES_FOUND = "ISSUES_FOUND"


def _norm(column):
    return func.upper(func.trim(column))


def _norm_optional(column):
    return func.coalesce(func.upper(func.trim(column)), "")


def unmigrated_filter():
    return and_(
        Shipment.vessel_name.is_not(None),
        func.trim(Shipment.vessel_name) != "",
        Shipment.vessel_id.is_(None),
    )


def migrated_filter():
    return Shipment.vessel_id.is_not(None)


@dataclass
class VesselGroup:
    vessel_name: str
    job_number: str
    pod: str
    shipment_count: int = 0
    shipment_ids: list[int] = field(default_factory=list)

    @property
    def identity_key(self) -> str:
        return vessel_identity_key(self.vessel_name, self.job_number)


@dataclass
class AnalysisResult:
    unmigrated_shipments: int
    migrated_shipments: int
    existing_vessels: int
    groups: list[VesselGroup]


@dataclass
class DryRunResult:
    groups: list[VesselGroup]
    # identity_key -> existing vessel id, only for groups that would match
    existing_vessel_ids: dict[str, int]

    @property
    def vessels_to_create(self) -> int:
        return len({g.identity_key for g in self.groups if g.identity_key not in self.existing_vessel_ids})

    @property
    def total_shipments(self) -> int:
        return sum(g.shipment_count for g in self.groups)


@dataclass
class MigrationLogData:
    vessels_created: int = 0
    shipments_updated: int = 0
    errors: list[dict] = field(default_factory=list)
    vessel_map: dict[str, int] = field(default_factory=dict)
    run_id: int | None = None

    def summary(self) -> dict:
        return {
            "vessels_created": self.vessels_created,
            "shipments_updated": self.shipments_updated,
            "errors": len(self.errors),
            "groups": len(self.vessel_map),
        }


@dataclass
class VerificationResult:
    unmigrated_shipments: int
    migrated_shipments: int
    orphaned_vessel_ids: list[int]
    samples: list[dict]

    @property
    def mismatches(self) -> int:
        return sum(1 for s in self.samples if not s["match"])

    @property
    def status(self) -> str:
        if self.unmigrated_shipments == 0 and not self.orphaned_vessel_ids and self.mismatches == 0:
            return VERIFY_PASSED
        return VERIFY_ISSUES_FOUND


@dataclass
class CleanupPreviewData:
    with_vessel_name: int
    with_pod: int
    with_job_number: int


class VesselMigrationService:
    def __init__(self, db: Session, actor_email: str | None = None):
        self.db = db
        self.actor_email = actor_email
        self.runs = MigrationRunService(db)

    # ------------------------------------------------------------------
    # Counting / grouping
    # ------------------------------------------------------------------

    def _count(self, *criteria) -> int:
        stmt = select(func.count(Shipment.id))
        if criteria:
            stmt = stmt.where(*criteria)
        return int(self.db.execute(stmt).scalar_one())

    def count_unmigrated(self) -> int:
        return self._count(unmigrated_filter())

    def count_migrated(self) -> int:
        return self._count(migrated_filter())

    def count_vessels(self) -> int:
        return int(self.db.execute(select(func.count(Vessel.id))).scalar_one())

    def group_unmigrated_counts(self) -> list[VesselGroup]:
        name_col = _norm(Shipment.vessel_name)
        job_col = _norm_optional(Shipment.job_number)
        pod_col = _norm_optional(Shipment.pod)
        count_col = func.count(Shipment.id)
        stmt = (
            select(
                name_col.label("vessel_name"),
                job_col.label("job_number"),
                pod_col.label("pod"),
                count_col.label("shipment_count"),
            )
            .where(unmigrated_filter())
            .group_by(name_col, job_col, pod_col)
            .order_by(count_col.desc(), name_col.asc(), job_col.asc(), pod_col.asc())
        )
        return [
            VesselGroup(
                vessel_name=row.vessel_name,
                job_number=row.job_number or "",
                pod=row.pod or "",
                shipment_count=int(row.shipment_count),
            )
            for row in self.db.execute(stmt)
        ]

    def group_unmigrated_ids(self) -> list[VesselGroup]:
        stmt = (
            select(
                Shipment.id,
                _norm(Shipment.vessel_name).label("vessel_name"),
                _norm_optional(Shipment.job_number).label("job_number"),
                _norm_optional(Shipment.pod).label("pod"),
            )
            .where(unmigrated_filter())
            .order_by(Shipment.id.asc())
        )
        groups: dict[tuple[str, str, str], VesselGroup] = {}
        for row in self.db.execute(stmt):
            key = (row.vessel_name, row.job_number or "", row.pod or "")
            group = groups.get(key)
            if group is None:
                group = VesselGroup(vessel_name=key[0], job_number=key[1], pod=key[2])
                groups[key] = group
            group.shipment_ids.append(row.id)
            group.shipment_count += 1
        return list(groups.values())

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def analyze(self) -> AnalysisResult:
        groups = self.group_unmigrated_counts()
        result = AnalysisResult(
            unmigrated_shipments=self.count_unmigrated(),
            migrated_shipments=self.count_migrated(),
            existing_vessels=self.count_vessels(),
            groups=groups,
        )
        logger.info(
            "vessel_migration_analyze unmigrated=%s migrated=%s combinations=%s existing_vessels=%s",
            result.unmigrated_shipments,
            result.migrated_shipments,
            len(groups),
            result.existing_vessels,
        )
        return result

    def dry_run(self) -> DryRunResult:
        groups = self.group_unmigrated_counts()
        existing: dict[str, int] = {}
        for group in groups:
            if group.identity_key in existing:
                continue
            vessel = find_vessel(self.db, group.vessel_name, group.job_number)
            if vessel is not None:
                existing[group.identity_key] = vessel.id
        result = DryRunResult(groups=groups, existing_vessel_ids=existing)
        logger.info(
            "vessel_migration_dry_run combinations=%s vessels_to_create=%s shipments=%s",
            len(groups),
            result.vessels_to_create,
            result.total_shipments,
        )
        return result

    def _link_shipments(self, shipment_ids: list[int], vessel_id: int) -> int:
        chunk_size = max(1, int(settings.MIGRATION_UPDATE_CHUNK_SIZE))
        updated = 0
        for start in range(0, len(shipment_ids), chunk_size):
            chunk = shipment_ids[start:start + chunk_size]
            # vessel_id IS NULL guard: rows linked by a concurrent run are skipped
            result = self.db.execute(
                update(Shipment)
                .where(Shipment.id.in_(chunk), Shipment.vessel_id.is_(None))
                .values(vessel_id=vessel_id)
                .execution_options(synchronize_session=False)
            )
            updated += int(result.rowcount or 0)
        return updated

    def _migrate_group(self, group: VesselGroup, log: MigrationLogData) -> None:
        resolution = resolve_vessel(
            self.db,
            group.vessel_name,
            group.job_number,
            group.pod,
            actor_email=self.actor_email,
        )
        vessel_id = resolution.vessel.id
        updated = self._link_shipments(group.shipment_ids, vessel_id)
        self.db.commit()

        if resolution.created:
            log.vessels_created += 1
        log.shipments_updated += updated
        log.vessel_map[vessel_map_key(group.vessel_name, group.job_number, group.pod)] = vessel_id
        flow_info(
            logger,
            "vessel_migration_group_done vessel_name=%s job_number=%s pod=%s vessel_id=%s created=%s updated=%s",
            group.vessel_name,
            group.job_number or "-",
            group.pod or "-",
            vessel_id,
            resolution.created,
            updated,
            category="migration",
        )

    def execute(self) -> MigrationLogData:
        run = self.runs.start("execute", self.actor_email)
        log = MigrationLogData(run_id=run.id)
        try:
            groups = self.group_unmigrated_ids()
        except Exception as exc:
            self.db.rollback()
            self.runs.fail(run, exc)
            raise

        for group in groups:
            try:
                self._migrate_group(group, log)
            except Exception as exc:
                # One bad group must not abort the rest of the run.
                self.db.rollback()
                logger.exception(
                    "vessel_migration_group_failed vessel_name=%s job_number=%s pod=%s",
                    group.vessel_name,
                    group.job_number or "-",
                    group.pod or "-",
                )
                log.errors.append(
                    {
                        "vessel_name": group.vessel_name,
                        "job_number": group.job_number or None,
                        "pod": group.pod or None,
                        "error": str(exc),
                    }
                )

        self.runs.finish(run, log.summary())
        logger.info(
            "vessel_migration_execute_done run_id=%s groups=%s vessels_created=%s shipments_updated=%s errors=%s",
            run.id,
            len(groups),
            log.vessels_created,
            log.shipments_updated,
            len(log.errors),
        )
        return log

    def verify(self) -> VerificationResult:
        unmigrated = self.count_unmigrated()
        migrated = self.count_migrated()

        referenced_ids = [
            row[0]
            for row in self.db.execute(
                select(Shipment.vessel_id).where(migrated_filter()).distinct()
            )
        ]
        existing_ids: set[int] = set()
        chunk_size = max(1, int(settings.MIGRATION_UPDATE_CHUNK_SIZE))
        for start in range(0, len(referenced_ids), chunk_size):
            chunk = referenced_ids[start:start + chunk_size]
            existing_ids.update(
                self.db.execute(select(Vessel.id).where(Vessel.id.in_(chunk))).scalars().all()
            )
        orphaned = sorted(vid for vid in referenced_ids if vid not in existing_ids)

        sample_size = min(max(0, int(settings.MIGRATION_VERIFY_SAMPLE_SIZE)), migrated)
        samples: list[dict] = []
        if sample_size > 0:
            stmt = (
                select(
                    Shipment.id,
                    Shipment.vessel_name,
                    Shipment.vessel_id,
                    Vessel.vessel_name.label("linked_vessel_name"),
                )
                .outerjoin(Vessel, Vessel.id == Shipment.vessel_id)
                .where(migrated_filter(), Shipment.vessel_name.is_not(None))
                .order_by(func.random())
                .limit(sample_size)
            )
            for row in self.db.execute(stmt):
                shipment_name = (row.vessel_name or "").strip().upper()
                linked_name = (row.linked_vessel_name or "").strip().upper()
                samples.append(
                    {
                        "shipment_id": row.id,
                        "shipment_vessel_name": row.vessel_name,
                        "vessel_id": row.vessel_id,
                        "vessel_vessel_name": row.linked_vessel_name,
                        "match": row.linked_vessel_name is not None and shipment_name == linked_name,
                    }
                )

        result = VerificationResult(
            unmigrated_shipments=unmigrated,
            migrated_shipments=migrated,
            orphaned_vessel_ids=orphaned,
            samples=samples,
        )
        logger.info(
            "vessel_migration_verify status=%s unmigrated=%s orphaned=%s samples=%s mismatches=%s",
            result.status,
            unmigrated,
            len(orphaned),
            len(samples),
            result.mismatches,
        )
        return result

    def rollback_preview(self) -> int:
        return self.count_migrated()

    def rollback(self) -> tuple[int, MigrationRun]:
        run = self.runs.start("rollback", self.actor_email)
        try:
            result = self.db.execute(
                update(Shipment)
                .where(migrated_filter())
                .values(vessel_id=None)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except Exception as exc:
            self.db.rollback()
            self.runs.fail(run, exc)
            raise
        rolled_back = int(result.rowcount or 0)
        self.runs.finish(run, {"shipments_rolled_back": rolled_back})
        logger.warning("vessel_migration_rollback_done run_id=%s shipments=%s", run.id, rolled_back)
        return rolled_back, run

    def ensure_cleanup_allowed(self) -> None:
        unmigrated = self.count_unmigrated()
        if unmigrated > 0:
            raise MigrationFailure(
                code="PRECONDITION_FAILED",
                message=(
                    f"Cannot cleanup: {unmigrated} shipments are not yet migrated. "
                    "Run migration first."
                ),
                status_code=400,
                extra={"unmigratedShipments": unmigrated},
            )

    def cleanup_preview(self) -> CleanupPreviewData:
        return CleanupPreviewData(
            with_vessel_name=self._count(Shipment.vessel_name.is_not(None)),
            with_pod=self._count(Shipment.pod.is_not(None)),
            with_job_number=self._count(Shipment.job_number.is_not(None)),
        )

    def cleanup(self, verify_first: bool = True) -> tuple[int, MigrationRun]:
        run = self.runs.start("cleanup", self.actor_email)
        # Completeness is checked inside the guarded run.
        if verify_first:
            try:
                self.ensure_cleanup_allowed()
            except MigrationFailure as exc:
                self.runs.fail(run, exc)
                raise
        try:
            result = self.db.execute(
                update(Shipment)
                .where(
                    or_(
                        Shipment.vessel_name.is_not(None),
                        Shipment.job_number.is_not(None),
                        Shipment.pod.is_not(None),
                    )
                )
                .values(vessel_name=None, job_number=None, pod=None)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except Exception as exc:
            self.db.rollback()
            self.runs.fail(run, exc)
            raise
        cleaned = int(result.rowcount or 0)
        self.runs.finish(run, {"shipments_updated": cleaned})
        logger.warning("vessel_migration_cleanup_done run_id=%s shipments=%s", run.id, cleaned)
        return cleaned, run
