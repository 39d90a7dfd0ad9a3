from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.db.base import Base
from backend.app.models.enums import DrawType


class EligibilityWindow(Base):
    __tablename__ = "eligibility_windows"
    __table_args__ = (
        UniqueConstraint("participant_id", "draw_type", name="uq_eligibility_participant_draw"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    participant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    draw_type: Mapped[DrawType] = mapped_column(
        Enum(DrawType, name="draw_type"), nullable=False
    )
    last_drawn_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    draw_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
