from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.crud.shipment import effective_vessel, get_shipment
from app.db.session import get_db
from app.schemas.base import ApiResponse
from app.schemas.shipment import EffectiveVessel, ShipmentOut

router = APIRouter()


@router.get("/{shipment_id}", response_model=ApiResponse[ShipmentOut])
def get_shipment_api(shipment_id: int, db: Session = Depends(get_db)):
    shipment = get_shipment(db, shipment_id)
    if not shipment:
        raise HTTPException(status_code=404, detail="Shipment not found")

    vessel = effective_vessel(db, shipment)
    payload = ShipmentOut.model_validate(shipment)
    payload.effective_vessel = EffectiveVessel(**vessel) if vessel else None
    return ApiResponse[ShipmentOut](
        message="Shipment retrieved successfully",
        data=payload,
    )
