from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.db.base import Base
from backend.app.models.enums import DrawType, PrizeCategory


class SpinRecord(Base):
    """A won draw.

    Prize fields are copied at draw time so that later edits or deletion of
    the prize leave the history intact.
    """

    __tablename__ = "spin_records"
    __table_args__ = (
        UniqueConstraint(
            "participant_id", "draw_type", "period_key", name="uq_spin_participant_period"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    participant_id: Mapped[str] = mapped_column(String(64), nullable=False)
    draw_type: Mapped[DrawType] = mapped_column(
        Enum(DrawType, name="draw_type"), nullable=False
    )
    prize_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("prizes.id", ondelete="SET NULL")
    )
    prize_name: Mapped[str] = mapped_column(Text, nullable=False)
    prize_description: Mapped[str | None] = mapped_column(Text)
    prize_category: Mapped[PrizeCategory] = mapped_column(
        Enum(PrizeCategory, name="prize_category"), nullable=False
    )
    prize_glyph: Mapped[str | None] = mapped_column(String(16))
    period_key: Mapped[str] = mapped_column(String(10), nullable=False)
    drawn_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


Index("ix_spin_records_participant", SpinRecord.participant_id, SpinRecord.draw_type)
Index("ix_spin_records_drawn_at", SpinRecord.drawn_at)
