from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from .nback_core import MATCH_CHANNELS, Channel, RandomSource

logger = logging.getLogger(__name__)

MATCH_PROBABILITY = 0.25

# Fixed quotas for a Jaeggi session.
JAEGGI_DUAL_MATCHES = 2
JAEGGI_POSITION_ONLY_MATCHES = 2
JAEGGI_SOUND_ONLY_MATCHES = 2
JAEGGI_MIN_ELIGIBLE = JAEGGI_DUAL_MATCHES + JAEGGI_POSITION_ONLY_MATCHES + JAEGGI_SOUND_ONLY_MATCHES


@dataclass(frozen=True, slots=True)
class MatchPattern:
    """Planned match flags per channel, one per trial index."""

    num_trials: int
    flags: dict[Channel, tuple[bool, ...]]

    def is_match(self, channel: Channel, index: int) -> bool:
        row = self.flags.get(channel)
        if row is None or not (0 <= index < len(row)):
            return False
        return row[index]

    def match_indices(self, channel: Channel) -> tuple[int, ...]:
        row = self.flags.get(channel, ())
        return tuple(i for i, flag in enumerate(row) if flag)


def _match_channels(channels: Iterable[Channel]) -> tuple[Channel, ...]:
    wanted = {Channel(c) for c in channels}
    return tuple(c for c in MATCH_CHANNELS if c in wanted)


def generate_random_match_pattern(
    num_trials: int,
    n_back_level: int,
    channels: Iterable[Channel],
    *,
    rng: RandomSource,
    interference_level: float = 0.0,
) -> MatchPattern:
    """Each eligible (index, channel) is a match with probability MATCH_PROBABILITY.

    Channels are independent of each other. ``interference_level`` does not
    change the distribution.
    """

    active = _match_channels(channels)
    rows = {c: [False] * num_trials for c in active}

    for i in range(max(0, n_back_level), num_trials):
        for channel in active:
            if rng.random() < MATCH_PROBABILITY:
                rows[channel][i] = True

    if interference_level > 0.0:
        logger.debug("interference_level=%.2f is not applied to match generation", interference_level)

    return MatchPattern(num_trials=num_trials, flags={c: tuple(r) for c, r in rows.items()})


def generate_jaeggi_match_pattern(
    num_trials: int,
    n_back_level: int,
    channels: Iterable[Channel],
    *,
    rng: RandomSource,
) -> MatchPattern:
    """Fixed quotas on position and sound; every other channel never matches.

    Picks, without replacement from ``[n_back_level, num_trials)``: dual matches,
    then position-only, then sound-only.
    """

    active = _match_channels(channels)
    eligible = list(range(max(0, n_back_level), num_trials))
    if len(eligible) < JAEGGI_MIN_ELIGIBLE:
        raise ValueError(
            f"Jaeggi mode needs at least {JAEGGI_MIN_ELIGIBLE} trials after the n-back lag "
            f"(num_trials={num_trials}, n_back_level={n_back_level})"
        )

    picked = rng.sample(eligible, JAEGGI_MIN_ELIGIBLE)
    dual = picked[:JAEGGI_DUAL_MATCHES]
    position_only = picked[JAEGGI_DUAL_MATCHES : JAEGGI_DUAL_MATCHES + JAEGGI_POSITION_ONLY_MATCHES]
    sound_only = picked[JAEGGI_DUAL_MATCHES + JAEGGI_POSITION_ONLY_MATCHES :]

    rows = {c: [False] * num_trials for c in active}
    if Channel.POSITION in rows:
        for idx in (*dual, *position_only):
            rows[Channel.POSITION][idx] = True
    if Channel.SOUND in rows:
        for idx in (*dual, *sound_only):
            rows[Channel.SOUND][idx] = True

    logger.debug(
        "Jaeggi pattern: dual=%s position_only=%s sound_only=%s",
        sorted(dual),
        sorted(position_only),
        sorted(sound_only),
    )
    return MatchPattern(num_trials=num_trials, flags={c: tuple(r) for c, r in rows.items()})


def generate_match_pattern(
    num_trials: int,
    n_back_level: int,
    channels: Iterable[Channel],
    *,
    rng: RandomSource,
    jaeggi_mode: bool = False,
    interference_level: float = 0.0,
) -> MatchPattern:
    if num_trials < 0:
        raise ValueError("num_trials must be >= 0")
    if n_back_level < 1:
        raise ValueError("n_back_level must be >= 1")

    if jaeggi_mode:
        return generate_jaeggi_match_pattern(num_trials, n_back_level, channels, rng=rng)
    return generate_random_match_pattern(
        num_trials,
        n_back_level,
        channels,
        rng=rng,
        interference_level=interference_level,
    )
