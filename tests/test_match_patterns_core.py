from __future__ import annotations

from typing import Sequence, TypeVar

import pytest

from nback_trainer.match_patterns import (
    JAEGGI_MIN_ELIGIBLE,
    generate_jaeggi_match_pattern,
    generate_match_pattern,
    generate_random_match_pattern,
)
from nback_trainer.nback_core import Channel, SeededRng

T = TypeVar("T")


class ConstantRng:
    """Always returns the same draw."""

    def __init__(self, value: float) -> None:
        self._value = value

    def random(self) -> float:
        return self._value

    def randint(self, a: int, b: int) -> int:
        return a

    def choice(self, seq: Sequence[T]) -> T:
        return seq[0]

    def sample(self, seq: Sequence[T], k: int) -> list[T]:
        return list(seq)[:k]


DUAL = (Channel.POSITION, Channel.SOUND)


def test_random_pattern_never_matches_before_lag() -> None:
    pattern = generate_random_match_pattern(20, 3, DUAL, rng=ConstantRng(0.0))

    for channel in DUAL:
        row = pattern.flags[channel]
        assert len(row) == 20
        assert row[:3] == (False, False, False)
        # A draw of 0.0 is always below the match probability.
        assert all(row[3:])


def test_random_pattern_high_draws_give_no_matches() -> None:
    pattern = generate_random_match_pattern(20, 2, DUAL, rng=ConstantRng(0.99))
    assert pattern.match_indices(Channel.POSITION) == ()
    assert pattern.match_indices(Channel.SOUND) == ()


def test_random_pattern_density_is_about_a_quarter() -> None:
    pattern = generate_random_match_pattern(4002, 2, DUAL, rng=SeededRng(99))
    for channel in DUAL:
        rate = len(pattern.match_indices(channel)) / 4000
        assert 0.20 < rate < 0.30


def test_random_pattern_skips_arithmetic() -> None:
    pattern = generate_random_match_pattern(
        10,
        1,
        (Channel.SOUND, Channel.ARITHMETIC),
        rng=ConstantRng(0.0),
    )
    assert set(pattern.flags) == {Channel.SOUND}
    assert pattern.is_match(Channel.ARITHMETIC, 5) is False


def test_interference_level_does_not_change_pattern() -> None:
    plain = generate_random_match_pattern(30, 2, DUAL, rng=SeededRng(5), interference_level=0.0)
    noisy = generate_random_match_pattern(30, 2, DUAL, rng=SeededRng(5), interference_level=0.9)
    assert plain == noisy


@pytest.mark.parametrize("seed", range(25))
def test_jaeggi_pattern_quotas(seed: int) -> None:
    n = 2
    pattern = generate_jaeggi_match_pattern(20, n, DUAL, rng=SeededRng(seed))

    position = set(pattern.match_indices(Channel.POSITION))
    sound = set(pattern.match_indices(Channel.SOUND))

    assert len(position & sound) == 2
    assert len(position - sound) == 2
    assert len(sound - position) == 2
    assert all(i >= n for i in position | sound)


def test_jaeggi_pattern_leaves_other_channels_empty() -> None:
    channels = (Channel.POSITION, Channel.COLOR, Channel.SOUND)
    pattern = generate_jaeggi_match_pattern(20, 2, channels, rng=SeededRng(3))
    assert pattern.flags[Channel.COLOR] == (False,) * 20


def test_jaeggi_pattern_fits_exactly_six_eligible_trials() -> None:
    pattern = generate_jaeggi_match_pattern(JAEGGI_MIN_ELIGIBLE + 3, 3, DUAL, rng=SeededRng(11))
    position = set(pattern.match_indices(Channel.POSITION))
    sound = set(pattern.match_indices(Channel.SOUND))
    assert position | sound == set(range(3, JAEGGI_MIN_ELIGIBLE + 3))


def test_jaeggi_pattern_rejects_short_sessions() -> None:
    with pytest.raises(ValueError):
        generate_jaeggi_match_pattern(7, 2, DUAL, rng=SeededRng(1))


def test_dispatch_and_argument_checks() -> None:
    jaeggi = generate_match_pattern(20, 2, DUAL, rng=SeededRng(4), jaeggi_mode=True)
    assert len(jaeggi.match_indices(Channel.POSITION)) == 4
    assert len(jaeggi.match_indices(Channel.SOUND)) == 4

    with pytest.raises(ValueError):
        generate_match_pattern(20, 0, DUAL, rng=SeededRng(4))


def test_is_match_out_of_range_is_false() -> None:
    pattern = generate_random_match_pattern(5, 1, DUAL, rng=ConstantRng(0.0))
    assert pattern.is_match(Channel.POSITION, 4) is True
    assert pattern.is_match(Channel.POSITION, 5) is False
    assert pattern.is_match(Channel.POSITION, -1) is False
