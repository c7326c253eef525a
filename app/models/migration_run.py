from __future__ import annotations

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class MigrationRun(Base):
    """Audit row for one mutating migration phase invocation."""
    __tablename__ = "migration_run"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    phase: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    actor_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    started_at: Mapped[object] = mapped_column(DateTime, nullable=False, server_default=func.now())
    finished_at: Mapped[object | None] = mapped_column(DateTime, nullable=True)
    summary_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
