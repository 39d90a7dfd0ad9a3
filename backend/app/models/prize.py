import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.db.base import Base
from backend.app.models.enums import DrawType, PrizeCategory


def new_prize_id() -> str:
    return str(uuid.uuid4())


class Prize(Base):
    __tablename__ = "prizes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_prize_id)
    draw_type: Mapped[DrawType] = mapped_column(
        Enum(DrawType, name="draw_type"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    category: Mapped[PrizeCategory] = mapped_column(
        Enum(PrizeCategory, name="prize_category"), nullable=False
    )
    # wheel-only presentation
    color: Mapped[str | None] = mapped_column(String(16))
    icon: Mapped[str | None] = mapped_column(String(16))
    # jackpot-only presentation
    emoji: Mapped[str | None] = mapped_column(String(16))
    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    inventory: Mapped["PrizeInventory"] = relationship(
        back_populates="prize",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def glyph(self) -> str:
        return self.emoji or self.icon or ("🎲" if self.category == PrizeCategory.no_win else "🎁")


Index("ix_prizes_draw_type_created_at", Prize.draw_type, Prize.created_at)
