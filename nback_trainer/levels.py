from __future__ import annotations

import logging
from dataclasses import dataclass

from .nback_core import GameConfig

logger = logging.getLogger(__name__)

MIN_N_BACK_LEVEL = 1


@dataclass(frozen=True, slots=True)
class LevelDecision:
    next_level: int
    new_strike_count: int


def determine_next_level(
    current_level: int,
    score: float,
    strike_count: int,
    config: GameConfig,
) -> LevelDecision:
    """Next n-back level from a session's total score.

    At or above the increase threshold the level goes up and strikes reset. Below
    the maintain threshold a strike is added, and the level drops (never below 1)
    once strikes reach ``decrease_strikes``. In between nothing changes, strikes
    included.
    """

    next_level = current_level
    new_strikes = strike_count

    if score >= config.increase_threshold:
        next_level = current_level + 1
        new_strikes = 0
    elif score < config.maintain_threshold:
        new_strikes += 1
        if new_strikes >= config.decrease_strikes:
            next_level = max(MIN_N_BACK_LEVEL, current_level - 1)
            new_strikes = 0

    if next_level != current_level:
        logger.info("N-back level %d -> %d (score %.1f)", current_level, next_level, score)
    else:
        logger.debug("N-back level stays at %d (score %.1f, strikes %d)", current_level, score, new_strikes)
    return LevelDecision(next_level=next_level, new_strike_count=new_strikes)
