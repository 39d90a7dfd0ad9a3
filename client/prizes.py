from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import ClassVar

NO_WIN = "no_win"
DEFAULT_GLYPH = "🎁"


class DrawType(str, Enum):
    wheel = "wheel"
    jackpot = "jackpot"


@dataclass(frozen=True, slots=True)
class PrizeBase:
    id: str
    name: str
    category: str
    description: str | None = None

    kind: ClassVar[DrawType]

    @property
    def is_consolation(self) -> bool:
        return self.category == NO_WIN

    @property
    def symbol(self) -> str | None:
        return None

    @property
    def glyph(self) -> str:
        return self.symbol or DEFAULT_GLYPH


@dataclass(frozen=True, slots=True)
class WheelPrize(PrizeBase):
    color: str | None = None
    icon: str | None = None

    kind: ClassVar[DrawType] = DrawType.wheel

    @property
    def symbol(self) -> str | None:
        return self.icon


@dataclass(frozen=True, slots=True)
class JackpotPrize(PrizeBase):
    emoji: str | None = None
    weight: int = 1

    kind: ClassVar[DrawType] = DrawType.jackpot

    @property
    def symbol(self) -> str | None:
        return self.emoji


@dataclass(frozen=True, slots=True)
class DrawResult:
    """What the server decided. Always authoritative over any cached prize."""

    spin_id: int
    prize_id: str | None
    prize_name: str
    prize_category: str
    prize_description: str | None
    prize_glyph: str | None
    drawn_at: datetime

    @classmethod
    def from_payload(cls, data: Mapping) -> "DrawResult":
        return cls(
            spin_id=int(data["spin_id"]),
            prize_id=data.get("prize_id"),
            prize_name=data["prize_name"],
            prize_category=data["prize_category"],
            prize_description=data.get("prize_description"),
            prize_glyph=data.get("prize_glyph"),
            drawn_at=datetime.fromisoformat(data["drawn_at"]),
        )


def prize_from_payload(draw_type: DrawType | str, data: Mapping) -> PrizeBase:
    base = {
        "id": str(data["id"]),
        "name": data["name"],
        "category": data["category"],
        "description": data.get("description"),
    }
    if DrawType(draw_type) == DrawType.wheel:
        return WheelPrize(**base, color=data.get("color"), icon=data.get("icon"))
    return JackpotPrize(
        **base,
        emoji=data.get("emoji") or data.get("icon"),
        weight=int(data.get("weight") or 1),
    )


def with_server_snapshot(prize: PrizeBase, result: DrawResult) -> PrizeBase:
    """Overlay the server's snapshot (name, copy, category) on the rendered prize."""
    return replace(
        prize,
        name=result.prize_name,
        description=result.prize_description,
        category=result.prize_category,
    )
