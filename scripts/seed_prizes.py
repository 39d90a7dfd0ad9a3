#!/usr/bin/env python
"""Load a starter prize table for both draws. Skips draws that already have prizes."""
import argparse
import asyncio
import logging

from backend.app.core.logging import setup_logging
from backend.app.db.session import SessionLocal
from backend.app.models.enums import DrawType, PrizeCategory
from backend.app.services.prize_service import create_prize, list_prizes

log = logging.getLogger("seed_prizes")

WHEEL_PRIZES = [
    {"name": "Free court hour", "category": PrizeCategory.physical, "icon": "🎾", "quantity": 5},
    {"name": "10% off next booking", "category": PrizeCategory.digital, "icon": "💸", "quantity": 50},
    {"name": "Padel balls", "category": PrizeCategory.physical, "icon": "🟡", "quantity": 20},
    {"name": "Try again", "category": PrizeCategory.no_win, "icon": "🎲"},
    {"name": "Energy drink", "category": PrizeCategory.physical, "icon": "🥤", "quantity": 30},
    {"name": "No luck", "category": PrizeCategory.no_win, "icon": "🙃"},
]

JACKPOT_PRIZES = [
    {"name": "Racket", "category": PrizeCategory.physical, "emoji": "🏆", "weight": 1, "quantity": 1},
    {"name": "Free month", "category": PrizeCategory.digital, "emoji": "💎", "weight": 3, "quantity": 3},
    {"name": "Free court hour", "category": PrizeCategory.physical, "emoji": "🎾", "weight": 10, "quantity": 10},
    {"name": "Nothing this time", "category": PrizeCategory.no_win, "emoji": "🍋", "weight": 40},
]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the wheel and jackpot prize tables")
    parser.add_argument(
        "--draw-type",
        choices=[d.value for d in DrawType],
        help="seed a single draw only",
    )
    return parser.parse_args()


async def main() -> None:
    setup_logging()
    args = parse_args()
    seeds = {DrawType.wheel: WHEEL_PRIZES, DrawType.jackpot: JACKPOT_PRIZES}
    if args.draw_type:
        seeds = {DrawType(args.draw_type): seeds[DrawType(args.draw_type)]}

    async with SessionLocal() as session:
        for draw_type, prizes in seeds.items():
            if await list_prizes(session, draw_type):
                log.info("Skipping %s: prizes already configured", draw_type.value)
                continue
            for data in prizes:
                await create_prize(session, draw_type=draw_type, **data)
            log.info("Seeded %s %s prizes", len(prizes), draw_type.value)
        await session.commit()


if __name__ == "__main__":
    asyncio.run(main())
