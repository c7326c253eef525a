from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.deps.request_identity import require_admin_identity
from app.crud.vessel import (
    DuplicateError,
    create_vessel,
    get_vessel,
    list_vessels,
    search_vessels,
    update_vessel,
)
from app.db.session import get_db
from app.schemas.base import ApiResponse
from app.schemas.request_identity import RequestIdentity
from app.schemas.vessel import Pagination, VesselCreate, VesselOut, VesselPage, VesselUpdate

router = APIRouter()


@router.get("/list", response_model=VesselPage)
def list_vessels_api(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    search: str | None = Query(None),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
):
    rows, pagination = list_vessels(
        db,
        page=page,
        limit=limit,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return VesselPage(
        data=[VesselOut.model_validate(row) for row in rows],
        pagination=Pagination(**pagination),
    )


@router.get("/search", response_model=ApiResponse[list[VesselOut]])
def search_vessels_api(
    q: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    rows = search_vessels(db, q, limit=limit)
    return ApiResponse[list[VesselOut]](
        message="Vessels retrieved",
        data=[VesselOut.model_validate(row) for row in rows],
    )


@router.get("/{vessel_id}", response_model=ApiResponse[VesselOut])
def get_vessel_api(vessel_id: int, db: Session = Depends(get_db)):
    obj = get_vessel(db, vessel_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Vessel not found")
    return ApiResponse[VesselOut](
        message="Vessel retrieved successfully",
        data=VesselOut.model_validate(obj),
    )


@router.post(
    "/create",
    response_model=ApiResponse[VesselOut],
    status_code=status.HTTP_201_CREATED,
)
def create_vessel_api(
    payload: VesselCreate,
    identity: RequestIdentity = Depends(require_admin_identity),
    db: Session = Depends(get_db),
):
    try:
        obj = create_vessel(db, payload, actor_email=identity.email)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return ApiResponse[VesselOut](
        message="Vessel created successfully",
        data=VesselOut.model_validate(obj),
    )


@router.put("/update/{vessel_id}", response_model=ApiResponse[VesselOut])
def update_vessel_api(
    vessel_id: int,
    payload: VesselUpdate,
    identity: RequestIdentity = Depends(require_admin_identity),
    db: Session = Depends(get_db),
):
    try:
        obj = update_vessel(db, vessel_id, payload, actor_email=identity.email)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if not obj:
        raise HTTPException(status_code=404, detail="Vessel not found")
    return ApiResponse[VesselOut](
        message="Vessel updated successfully",
        data=VesselOut.model_validate(obj),
    )
