from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.shipment import Shipment
from app.models.vessel import Vessel


def get_shipment(db: Session, shipment_id: int) -> Shipment | None:
    return db.get(Shipment, shipment_id)


def effective_vessel(db: Session, shipment: Shipment) -> dict | None:
    """
    Vessel details for display.
    Prefers the linked Vessel; falls back to the legacy embedded fields until
    cleanup strips them. A dangling vessel_id also falls back.
    """
    if shipment.vessel_id is not None:
        vessel = db.get(Vessel, shipment.vessel_id)
        if vessel is not None:
            return {
                "source": "vessel",
                "vessel_id": vessel.id,
                "vessel_name": vessel.vessel_name,
                "job_number": vessel.job_number,
                "pod": vessel.pod,
                "etd": vessel.etd,
                "shipping_line": vessel.shipping_line,
            }

    if (shipment.vessel_name or "").strip():
        return {
            "source": "legacy",
            "vessel_id": None,
            "vessel_name": shipment.vessel_name,
            "job_number": shipment.job_number,
            "pod": shipment.pod,
        }
    return None
