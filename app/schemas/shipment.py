from __future__ import annotations

from datetime import datetime

from app.schemas.base import CamelSchema


class EffectiveVessel(CamelSchema):
    # "vessel" when resolved through vessel_id, "legacy" when read from the
    # shipment's own vessel_name / job_number / pod columns.
    source: str
    vessel_id: int | None = None
    vessel_name: str | None = None
    job_number: str | None = None
    pod: str | None = None
    etd: datetime | None = None
    shipping_line: str | None = None


class ShipmentOut(CamelSchema):
    id: int
    client_id: int | None = None
    chassis_number: str
    make_model: str | None = None
    gate_in_date: datetime
    gate_out_date: datetime | None = None
    yard: str | None = None
    storage_days: int = 0
    export_status: str
    remarks: str | None = None
    vessel_id: int | None = None
    effective_vessel: EffectiveVessel | None = None
