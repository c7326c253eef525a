from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
import json
import logging
from typing import Any

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.migration_run import MigrationRun

logger = logging.getLogger(__name__)

RUN_STATUS_RUNNING = "RUNNING"
RUN_STATUS_SUCCEEDED = "SUCCEEDED"
RUN_STATUS_FAILED = "FAILED"


@dataclass
class MigrationFailure(Exception):
    code: str
    message: str
    status_code: int = 400
    extra: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message

    def to_detail(self) -> dict:
        detail = {"code": self.code, "message": self.message}
        detail.update(self.extra)
        return detail


class MigrationRunService:
    """
    Persists one MigrationRun row per mutating phase call and refuses to start a
    new one while another is still RUNNING. Rows older than
    MIGRATION_RUN_STALE_SECONDS are treated as abandoned.
    """

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _now() -> datetime:
        return datetime.utcnow()

    @staticmethod
    def _stale_after() -> timedelta:
        return timedelta(seconds=max(30, int(settings.MIGRATION_RUN_STALE_SECONDS)))

    def _expire_stale(self, run: MigrationRun) -> bool:
        now = self._now()
        if run.started_at is not None and run.started_at + self._stale_after() <= now:
            run.status = RUN_STATUS_FAILED
            run.finished_at = now
            run.error_message = "stale"
            return True
        return False

    def _ensure_no_active_run(self) -> None:
        active = (
            self.db.query(MigrationRun)
            .filter(MigrationRun.status == RUN_STATUS_RUNNING)
            .order_by(MigrationRun.id.asc())
            .all()
        )
        for run in active:
            if self._expire_stale(run):
                logger.warning("migration_run_marked_stale run_id=%s phase=%s", run.id, run.phase)
                continue
            raise MigrationFailure(
                code="RUN_CONFLICT",
                message=f"Migration phase '{run.phase}' is already running.",
                status_code=409,
                extra={
                    "runId": run.id,
                    "phase": run.phase,
                    "startedBy": run.actor_email,
                    "startedAt": run.started_at.isoformat() if run.started_at else None,
                },
            )

    def start(self, phase: str, actor_email: str | None = None) -> MigrationRun:
        if settings.MIGRATION_RUN_GUARD_ENABLED:
            self._ensure_no_active_run()
        run = MigrationRun(
            phase=phase,
            status=RUN_STATUS_RUNNING,
            actor_email=actor_email,
            started_at=self._now(),
        )
        self.db.add(run)
        self.db.commit()
        self.db.refresh(run)
        logger.info("migration_run_started run_id=%s phase=%s actor=%s", run.id, phase, actor_email or "-")
        return run

    def finish(self, run: MigrationRun, summary: dict[str, Any]) -> MigrationRun:
        run.status = RUN_STATUS_SUCCEEDED
        run.finished_at = self._now()
        run.summary_json = json.dumps(summary, default=str)
        self.db.commit()
        logger.info("migration_run_finished run_id=%s phase=%s summary=%s", run.id, run.phase, run.summary_json)
        return run

    def fail(self, run: MigrationRun, error: Exception | str) -> MigrationRun:
        run.status = RUN_STATUS_FAILED
        run.finished_at = self._now()
        run.error_message = str(error)
        self.db.commit()
        logger.warning("migration_run_failed run_id=%s phase=%s error=%s", run.id, run.phase, run.error_message)
        return run

    def list_recent(self, limit: int = 20) -> list[MigrationRun]:
        return (
            self.db.query(MigrationRun)
            .order_by(MigrationRun.id.desc())
            .limit(limit)
            .all()
        )
