from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.core.database import Base


class Settings(Base):
    """Persisted key/value application setting."""

    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text)
