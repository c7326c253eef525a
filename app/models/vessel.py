from datetime import datetime

from sqlalchemy import DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import AuditMixin


class Vessel(AuditMixin, Base):
    """
    Canonical vessel voyage record.
    Shipments point here through shipment.vessel_id once migrated.
    """
    __tablename__ = "vessel"
    __table_args__ = (
        UniqueConstraint("identity_key", name="uq_vessel_identity_key"),
        Index("ix_vessel_name_job_number", "vessel_name", "job_number"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vessel_name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    job_number: Mapped[str | None] = mapped_column(String(60), nullable=True)
    pod: Mapped[str | None] = mapped_column(String(80), nullable=True)
    etd: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    shipping_line: Mapped[str | None] = mapped_column(String(120), nullable=True)

    # "<VESSEL_NAME>|<JOB_NUMBER>" with blank job numbers collapsed to ''.
    # Built from app.core.vessel_keys.vessel_identity_key on every write.
    identity_key: Mapped[str] = mapped_column(String(200), nullable=False)

    def __repr__(self) -> str:
        return f"<Vessel(id={self.id}, name={self.vessel_name}, job={self.job_number})>"
