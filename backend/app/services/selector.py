"""Weighted random choice used by the server-side draw.

``P(candidate_i) = weight_i / sum(weights)`` over the candidates whose weight
is positive. Integer arithmetic keeps the distribution exact.
"""
from collections.abc import Callable, Sequence
from random import Random, SystemRandom
from typing import TypeVar

from backend.app.services.errors import NoPrizeAvailableError

T = TypeVar("T")

system_rng = SystemRandom()


def pick_weighted(
    candidates: Sequence[T],
    weight: Callable[[T], int],
    rng: Random | None = None,
) -> T:
    rng = rng or system_rng
    pool = [(candidate, int(weight(candidate))) for candidate in candidates]
    pool = [(candidate, w) for candidate, w in pool if w > 0]
    if not pool:
        raise NoPrizeAvailableError("No prize is available for this draw")

    total = sum(w for _, w in pool)
    roll = rng.randrange(total)
    upto = 0
    for candidate, w in pool:
        upto += w
        if roll < upto:
            return candidate
    # unreachable: roll < total == upto after the loop
    return pool[-1][0]
