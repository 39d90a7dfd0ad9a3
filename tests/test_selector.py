from collections import Counter
from random import Random

import pytest

from backend.app.services.errors import NoPrizeAvailableError
from backend.app.services.selector import pick_weighted


def test_roll_maps_onto_cumulative_weights(stub_rng):
    candidates = ["a", "b", "c"]
    weights = {"a": 2, "b": 3, "c": 1}
    picks = [
        pick_weighted(candidates, weights.get, stub_rng(roll)) for roll in range(6)
    ]
    assert picks == ["a", "a", "b", "b", "b", "c"]


def test_zero_weight_candidates_are_never_picked(stub_rng):
    weights = {"a": 0, "b": 4}
    rng = stub_rng(0)
    assert pick_weighted(["a", "b"], weights.get, rng) == "b"
    assert rng.totals == [4]


@pytest.mark.parametrize("candidates", [[], ["a"]])
def test_empty_pool_raises(candidates):
    with pytest.raises(NoPrizeAvailableError):
        pick_weighted(candidates, lambda _: 0)


def test_distribution_follows_weights():
    rng = Random(1234)
    weights = {"rare": 1, "common": 3, "filler": 6}
    counts = Counter(pick_weighted(list(weights), weights.get, rng) for _ in range(20000))
    assert counts["rare"] / 20000 == pytest.approx(0.1, abs=0.015)
    assert counts["common"] / 20000 == pytest.approx(0.3, abs=0.015)
    assert counts["filler"] / 20000 == pytest.approx(0.6, abs=0.015)


def test_equal_weights_are_uniform():
    rng = Random(99)
    counts = Counter(pick_weighted(["a", "b", "c", "d"], lambda _: 1, rng) for _ in range(8000))
    for name in "abcd":
        assert counts[name] / 8000 == pytest.approx(0.25, abs=0.02)
