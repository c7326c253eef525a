from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import TimestampMixin


class Shipment(TimestampMixin, Base):
    """
    A vehicle held in the yard between gate-in and gate-out.

    vessel_name / job_number / pod are the legacy embedded vessel description.
    vessel_id replaces them after the vessel migration; it carries no FK
    constraint so dangling references stay representable and detectable.
    """
    __tablename__ = "shipment"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    client_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    chassis_number: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    make_model: Mapped[str | None] = mapped_column(String(120), nullable=True)

    gate_in_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    gate_out_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    yard: Mapped[str | None] = mapped_column(String(80), nullable=True, index=True)
    storage_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    export_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
        server_default="pending",
        index=True,
    )
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Legacy vessel description (pre-migration)
    vessel_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    job_number: Mapped[str | None] = mapped_column(String(60), nullable=True)
    pod: Mapped[str | None] = mapped_column(String(80), nullable=True)

    vessel_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<Shipment(id={self.id}, chassis={self.chassis_number}, vessel_id={self.vessel_id})>"
