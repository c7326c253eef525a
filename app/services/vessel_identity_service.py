from __future__ import annotations

from dataclasses import dataclass
import logging

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.vessel_keys import normalize_token, vessel_identity_key
from app.models.vessel import Vessel

logger = logging.getLogger(__name__)

MIGRATION_ACTOR = "vessel-migration@system"


@dataclass
class VesselResolution:
    vessel: Vessel
    created: bool


def find_vessel(db: Session, vessel_name: str, job_number: str) -> Vessel | None:
    """
    Lookup by already-normalized name / job number.
    A blank job number matches vessels whose job_number is NULL or ''.
    """
    stmt = select(Vessel).where(Vessel.vessel_name == vessel_name)
    if job_number:
        stmt = stmt.where(Vessel.job_number == job_number)
    else:
        stmt = stmt.where(or_(Vessel.job_number.is_(None), Vessel.job_number == ""))
    return db.execute(stmt.order_by(Vessel.id.asc()).limit(1)).scalars().first()


def resolve_vessel(
    db: Session,
    vessel_name: str | None,
    job_number: str | None = None,
    pod: str | None = None,
    *,
    actor_email: str | None = None,
) -> VesselResolution:
    """
    Find-or-create the canonical Vessel for a (vessel_name, job_number, pod) tuple.

    Inputs are trimmed and upper-cased. pod is stored on a new vessel but is not
    part of the lookup. Blank optional values are stored as NULL.

    The insert runs in a SAVEPOINT; if a concurrent writer inserted the same
    identity first, the unique identity_key constraint fires and the existing
    row is returned instead. Nothing is committed here; the caller owns the
    outer transaction.
    """
    name = normalize_token(vessel_name)
    if not name:
        raise ValueError("vessel_name is required to resolve a vessel.")
    job = normalize_token(job_number)
    pod_value = normalize_token(pod)

    existing = find_vessel(db, name, job)
    if existing is not None:
        return VesselResolution(vessel=existing, created=False)

    actor = actor_email or MIGRATION_ACTOR
    vessel = Vessel(
        vessel_name=name,
        job_number=job or None,
        pod=pod_value or None,
        identity_key=vessel_identity_key(name, job),
        created_by=actor,
        last_changed_by=actor,
    )
    try:
        with db.begin_nested():
            db.add(vessel)
    except IntegrityError:
        existing = find_vessel(db, name, job)
        if existing is None:
            raise
        logger.info(
            "vessel_resolve_insert_conflict vessel_name=%s job_number=%s vessel_id=%s",
            name,
            job or "-",
            existing.id,
        )
        return VesselResolution(vessel=existing, created=False)

    return VesselResolution(vessel=vessel, created=True)
