from sqlalchemy import Float, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.core.database import Base


class UsageRecord(Base):
    """Record of filament consumed from a Spoolman spool.

    Rows are only ever inserted, after Spoolman accepted the matching
    remaining-weight update. spool_id references Spoolman and is not enforced.
    """

    __tablename__ = "usage"
    __table_args__ = (Index("ix_usage_spool_id_used_at", "spool_id", "used_at"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    spool_id: Mapped[str] = mapped_column(String(50))
    used_at: Mapped[str] = mapped_column(String(40))  # ISO 8601, UTC
    weight: Mapped[float] = mapped_column(Float)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
