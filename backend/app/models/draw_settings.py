from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.db.base import Base
from backend.app.models.enums import DrawType


class DrawSettings(Base):
    __tablename__ = "draw_settings"

    draw_type: Mapped[DrawType] = mapped_column(
        Enum(DrawType, name="draw_type"), primary_key=True
    )
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
