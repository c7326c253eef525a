from __future__ import annotations

from datetime import datetime

from pydantic import Field

from app.schemas.base import CamelSchema


class VesselCreate(CamelSchema):
    vessel_name: str = Field(max_length=120)
    job_number: str | None = Field(default=None, max_length=60)
    etd: datetime | None = None
    shipping_line: str | None = Field(default=None, max_length=120)
    pod: str | None = Field(default=None, max_length=80)


class VesselUpdate(CamelSchema):
    vessel_name: str | None = Field(default=None, max_length=120)
    job_number: str | None = Field(default=None, max_length=60)
    etd: datetime | None = None
    shipping_line: str | None = Field(default=None, max_length=120)
    pod: str | None = Field(default=None, max_length=80)


class VesselOut(CamelSchema):
    id: int
    vessel_name: str
    job_number: str | None = None
    etd: datetime | None = None
    shipping_line: str | None = None
    pod: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Pagination(CamelSchema):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool
    sort_by: str
    sort_order: str


class VesselPage(CamelSchema):
    success: bool = True
    message: str = "Vessels retrieved successfully"
    data: list[VesselOut] = Field(default_factory=list)
    pagination: Pagination
