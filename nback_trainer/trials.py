from __future__ import annotations

import logging
import math
from typing import Sequence

from .match_patterns import generate_match_pattern
from .nback_core import (
    GAME_MODE_SPECS,
    MATCH_CHANNELS,
    Channel,
    GameConfig,
    GameMode,
    RandomSource,
    SeededRng,
    Trial,
)
from .stimuli import COLORS, POSITIONS, SHAPES, ArithmeticOperation, sound_set

logger = logging.getLogger(__name__)


def round_to_cents(x: float) -> float:
    # Halves round towards +inf.
    return math.floor(x * 100.0 + 0.5) / 100.0


def calculate_arithmetic(
    n_back_number: int,
    current_number: int,
    operation: ArithmeticOperation | str,
) -> int | float:
    """Combine the n-back operand with the current one.

    Subtraction and division take the n-back number as the left operand.
    Division by zero yields 0.
    """

    op = ArithmeticOperation(operation)
    if op is ArithmeticOperation.PLUS:
        return n_back_number + current_number
    if op is ArithmeticOperation.MINUS:
        return n_back_number - current_number
    if op is ArithmeticOperation.TIMES:
        return n_back_number * current_number
    if current_number == 0:
        return 0
    return round_to_cents(n_back_number / current_number)


def format_arithmetic_answer(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def channel_pool(channel: Channel, sounds: Sequence[str]) -> Sequence[object]:
    if channel is Channel.POSITION:
        return range(POSITIONS)
    if channel is Channel.COLOR:
        return COLORS
    if channel is Channel.SHAPE:
        return SHAPES
    if channel in (Channel.SOUND, Channel.VISUAL):
        return sounds
    raise ValueError(f"Channel {channel.value} has no stimulus pool")


def generate_trials(
    game_mode: GameMode | str,
    n_back_level: int,
    config: GameConfig,
    *,
    rng: RandomSource | None = None,
) -> list[Trial]:
    """Build the ordered trial list for one session.

    Flagged trials copy the channel value from ``index - trial.n_back_level``.
    Unflagged trials keep their own draw, even if it happens to repeat.
    """

    mode = GameMode(game_mode)
    if n_back_level < 1:
        raise ValueError("n_back_level must be >= 1")
    rng = SeededRng() if rng is None else rng

    channels = GAME_MODE_SPECS[mode].channels
    match_channels = tuple(c for c in channels if c in MATCH_CHANNELS)
    arithmetic = Channel.ARITHMETIC in channels
    num_trials = int(config.trials_per_session)

    sounds = sound_set(config.primary_sound_set)
    pools = {c: channel_pool(c, sounds) for c in match_channels}
    operations = config.arithmetic_operations.enabled()

    pattern = generate_match_pattern(
        num_trials,
        n_back_level,
        match_channels,
        rng=rng,
        jaeggi_mode=config.jaeggi_mode,
        interference_level=config.interference_level,
    )

    trials: list[Trial] = []
    for i in range(num_trials):
        lag = rng.randint(1, n_back_level) if config.variable_n_back else n_back_level
        trial = Trial(index=i, n_back_level=lag)

        for channel in match_channels:
            trial.set_value(channel, rng.choice(pools[channel]))
            trial.should_match[channel] = False

        if arithmetic:
            trial.arithmetic_operation = rng.choice(operations)
            trial.arithmetic_number = rng.randint(0, config.arithmetic_max_number)

        if i >= lag:
            previous = trials[i - lag]
            for channel in match_channels:
                if pattern.is_match(channel, i):
                    trial.set_value(channel, previous.value(channel))
                    trial.should_match[channel] = True

            if arithmetic:
                assert previous.arithmetic_number is not None
                assert trial.arithmetic_number is not None
                assert trial.arithmetic_operation is not None
                answer = calculate_arithmetic(
                    previous.arithmetic_number,
                    trial.arithmetic_number,
                    trial.arithmetic_operation,
                )
                trial.arithmetic_correct_answer = format_arithmetic_answer(answer)

        trials.append(trial)

    logger.debug(
        "Generated %d trials for %s at n=%d (jaeggi=%s, variable=%s)",
        len(trials),
        mode.value,
        n_back_level,
        config.jaeggi_mode,
        config.variable_n_back,
    )
    return trials
