from __future__ import annotations

import math

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.vessel_keys import optional_token, vessel_identity_key
from app.models.vessel import Vessel
from app.schemas.vessel import VesselCreate, VesselUpdate

SORT_COLUMNS = {
    "vesselName": Vessel.vessel_name,
    "jobNumber": Vessel.job_number,
    "etd": Vessel.etd,
    "createdAt": Vessel.created_at,
}


class DuplicateError(Exception):
    """Raised when a vessel with the same name and job number already exists."""


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _search_clause(term: str, *columns):
    pattern = f"%{_escape_like(term.strip().lower())}%"
    return or_(*(func.lower(col).like(pattern, escape="\\") for col in columns))


def find_by_identity(
    db: Session,
    vessel_name: str,
    job_number: str | None,
    exclude_id: int | None = None,
) -> Vessel | None:
    stmt = select(Vessel).where(
        Vessel.identity_key == vessel_identity_key(vessel_name, job_number)
    )
    if exclude_id is not None:
        stmt = stmt.where(Vessel.id != exclude_id)
    return db.execute(stmt.limit(1)).scalars().first()


def create_vessel(db: Session, data: VesselCreate, actor_email: str | None = None) -> Vessel:
    vessel_name = optional_token(data.vessel_name)
    if not vessel_name:
        raise ValueError("Vessel name is required")
    job_number = optional_token(data.job_number)

    if find_by_identity(db, vessel_name, job_number) is not None:
        raise DuplicateError("A vessel with this name and job number already exists")

    obj = Vessel(
        vessel_name=vessel_name,
        job_number=job_number,
        etd=data.etd,
        shipping_line=optional_token(data.shipping_line),
        pod=optional_token(data.pod),
        identity_key=vessel_identity_key(vessel_name, job_number),
        created_by=actor_email or "system@local",
        last_changed_by=actor_email or "system@local",
    )
    db.add(obj)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateError("A vessel with this name and job number already exists") from e
    db.refresh(obj)
    return obj


def get_vessel(db: Session, vessel_id: int) -> Vessel | None:
    return db.get(Vessel, vessel_id)


def list_vessels(
    db: Session,
    page: int = 1,
    limit: int = 50,
    search: str | None = None,
    sort_by: str = "createdAt",
    sort_order: str = "desc",
) -> tuple[list[Vessel], dict]:
    safe_sort_by = sort_by if sort_by in SORT_COLUMNS else "createdAt"
    sort_col = SORT_COLUMNS[safe_sort_by]
    order = sort_col.asc() if sort_order == "asc" else sort_col.desc()

    base = select(Vessel)
    if search and search.strip():
        base = base.where(
            _search_clause(
                search,
                Vessel.vessel_name,
                Vessel.job_number,
                Vessel.shipping_line,
                Vessel.pod,
            )
        )

    total_items = db.execute(
        select(func.count()).select_from(base.subquery())
    ).scalar_one()

    stmt = base.order_by(order, Vessel.id.desc()).offset((page - 1) * limit).limit(limit)
    rows = list(db.execute(stmt).scalars().all())

    pagination = {
        "current_page": page,
        "total_pages": math.ceil(total_items / limit) if total_items else 0,
        "total_items": total_items,
        "items_per_page": limit,
        "has_next_page": page * limit < total_items,
        "has_prev_page": page > 1,
        "sort_by": safe_sort_by,
        "sort_order": sort_order,
    }
    return rows, pagination


def search_vessels(db: Session, q: str | None, limit: int = 20) -> list[Vessel]:
    if not q or not q.strip():
        return []
    stmt = (
        select(Vessel)
        .where(_search_clause(q, Vessel.vessel_name, Vessel.job_number, Vessel.shipping_line))
        .order_by(Vessel.vessel_name.asc(), Vessel.id.asc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def update_vessel(
    db: Session,
    vessel_id: int,
    data: VesselUpdate,
    actor_email: str | None = None,
) -> Vessel | None:
    obj = db.get(Vessel, vessel_id)
    if not obj:
        return None

    patch = data.model_dump(exclude_unset=True)

    if "vessel_name" in patch:
        vessel_name = optional_token(patch["vessel_name"])
        if not vessel_name:
            raise ValueError("Vessel name cannot be empty")
        obj.vessel_name = vessel_name
    # An explicit empty string clears the optional field.
    if "job_number" in patch:
        obj.job_number = optional_token(patch["job_number"])
    if "shipping_line" in patch:
        obj.shipping_line = optional_token(patch["shipping_line"])
    if "pod" in patch:
        obj.pod = optional_token(patch["pod"])
    if "etd" in patch:
        obj.etd = patch["etd"]

    if find_by_identity(db, obj.vessel_name, obj.job_number, exclude_id=obj.id) is not None:
        db.rollback()
        raise DuplicateError("A vessel with this name and job number already exists")

    obj.identity_key = vessel_identity_key(obj.vessel_name, obj.job_number)
    if actor_email:
        obj.last_changed_by = actor_email

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateError("A vessel with this name and job number already exists") from e

    db.refresh(obj)
    return obj
