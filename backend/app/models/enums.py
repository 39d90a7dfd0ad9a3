from enum import Enum


class DrawType(str, Enum):
    wheel = "wheel"
    jackpot = "jackpot"


class PrizeCategory(str, Enum):
    physical = "physical"
    digital = "digital"
    no_win = "no_win"
