from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol, Sequence, TypeVar

from .stimuli import DEFAULT_SOUND_SET, ArithmeticOperation

T = TypeVar("T")


class RandomSource(Protocol):
    """Uniform randomness used by pattern generation and trial synthesis."""

    def random(self) -> float:
        ...

    def randint(self, a: int, b: int) -> int:
        ...

    def choice(self, seq: Sequence[T]) -> T:
        ...

    def sample(self, seq: Sequence[T], k: int) -> list[T]:
        ...


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit.

    ``seed=None`` draws the seed from OS entropy, which is what production sessions use.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._seed = None if seed is None else int(seed)
        self._rng = random.Random(self._seed)

    @property
    def seed(self) -> int | None:
        return self._seed

    def random(self) -> float:
        return self._rng.random()

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def choice(self, seq: Sequence[T]) -> T:
        return self._rng.choice(seq)

    def sample(self, seq: Sequence[T], k: int) -> list[T]:
        return self._rng.sample(list(seq), k)


class Channel(StrEnum):
    POSITION = "position"
    SOUND = "sound"
    COLOR = "color"
    VISUAL = "visual"
    SHAPE = "shape"
    ARITHMETIC = "arithmetic"


# Channels that carry match flags. Arithmetic is answered, not matched.
MATCH_CHANNELS: tuple[Channel, ...] = (
    Channel.POSITION,
    Channel.SOUND,
    Channel.COLOR,
    Channel.VISUAL,
    Channel.SHAPE,
)

_VALUE_ATTRS: dict[Channel, str] = {
    Channel.POSITION: "position",
    Channel.SOUND: "sound",
    Channel.COLOR: "color",
    Channel.VISUAL: "visual_cue",
    Channel.SHAPE: "shape",
    Channel.ARITHMETIC: "arithmetic_number",
}


class MatchState(StrEnum):
    UNANSWERED = "unanswered"
    AFFIRMED = "affirmed"
    REJECTED = "rejected"


class GameMode(StrEnum):
    POSITION_NBACK = "position-nback"
    AUDIO_NBACK = "audio-nback"
    DUAL_NBACK = "dual-nback"
    TRIPLE_NBACK = "triple-nback"
    DUAL_COMBINATION = "dual-combination"
    TRIPLE_COMBINATION = "triple-combination"
    QUADRUPLE_COMBINATION = "quadruple-combination"
    ARITHMETIC_NBACK = "arithmetic-nback"
    DUAL_ARITHMETIC = "dual-arithmetic"
    TRIPLE_ARITHMETIC = "triple-arithmetic"


@dataclass(frozen=True, slots=True)
class GameModeSpec:
    name: str
    description: str
    channels: tuple[Channel, ...]
    starting_n_back: int
    supports_jaeggi: bool = False


GAME_MODE_SPECS: dict[GameMode, GameModeSpec] = {
    GameMode.POSITION_NBACK: GameModeSpec(
        name="Position N-Back",
        description="Visual position matching only",
        channels=(Channel.POSITION,),
        starting_n_back=1,
    ),
    GameMode.AUDIO_NBACK: GameModeSpec(
        name="Audio N-Back",
        description="Audio sound matching only",
        channels=(Channel.SOUND,),
        starting_n_back=1,
    ),
    GameMode.DUAL_NBACK: GameModeSpec(
        name="Dual N-Back",
        description="Position and sound matching",
        channels=(Channel.POSITION, Channel.SOUND),
        starting_n_back=2,
        supports_jaeggi=True,
    ),
    GameMode.TRIPLE_NBACK: GameModeSpec(
        name="Triple N-Back",
        description="Position, color, and sound matching",
        channels=(Channel.POSITION, Channel.COLOR, Channel.SOUND),
        starting_n_back=2,
    ),
    GameMode.DUAL_COMBINATION: GameModeSpec(
        name="Dual Combination N-Back",
        description="Visual and auditory cues with cross-matching",
        channels=(Channel.VISUAL, Channel.SOUND),
        starting_n_back=1,
    ),
    GameMode.TRIPLE_COMBINATION: GameModeSpec(
        name="Triple Combination N-Back",
        description="Position, visual, and auditory with cross-matching",
        channels=(Channel.POSITION, Channel.VISUAL, Channel.SOUND),
        starting_n_back=1,
    ),
    GameMode.QUADRUPLE_COMBINATION: GameModeSpec(
        name="Quad N-Back",
        description="Position, sound, color, and shape matching",
        channels=(Channel.POSITION, Channel.SOUND, Channel.COLOR, Channel.SHAPE),
        starting_n_back=1,
    ),
    GameMode.ARITHMETIC_NBACK: GameModeSpec(
        name="Arithmetic N-Back",
        description="Mathematical operations on n-back numbers",
        channels=(Channel.SOUND, Channel.ARITHMETIC),
        starting_n_back=1,
    ),
    GameMode.DUAL_ARITHMETIC: GameModeSpec(
        name="Dual Arithmetic N-Back",
        description="Position and arithmetic operations",
        channels=(Channel.POSITION, Channel.SOUND, Channel.ARITHMETIC),
        starting_n_back=1,
    ),
    GameMode.TRIPLE_ARITHMETIC: GameModeSpec(
        name="Triple Arithmetic N-Back",
        description="Position, color, and arithmetic operations",
        channels=(Channel.POSITION, Channel.COLOR, Channel.SOUND, Channel.ARITHMETIC),
        starting_n_back=1,
    ),
}


def game_mode_channels(game_mode: GameMode | str) -> tuple[Channel, ...]:
    return GAME_MODE_SPECS[GameMode(game_mode)].channels


@dataclass(frozen=True, slots=True)
class ArithmeticOperations:
    addition: bool = True
    subtraction: bool = True
    multiplication: bool = True
    division: bool = True

    def enabled(self) -> tuple[ArithmeticOperation, ...]:
        """Enabled operations in a fixed order; addition alone when none are enabled."""

        ops: list[ArithmeticOperation] = []
        if self.addition:
            ops.append(ArithmeticOperation.PLUS)
        if self.subtraction:
            ops.append(ArithmeticOperation.MINUS)
        if self.multiplication:
            ops.append(ArithmeticOperation.TIMES)
        if self.division:
            ops.append(ArithmeticOperation.DIVIDE)
        return tuple(ops) if ops else (ArithmeticOperation.PLUS,)


@dataclass(frozen=True, slots=True)
class GameConfig:
    trials_per_session: int = 20
    time_per_trial_ms: int = 3000
    stimulus_duration_ms: int = 1000

    jaeggi_mode: bool = False

    # Percentages.
    increase_threshold: float = 80.0
    maintain_threshold: float = 50.0
    decrease_strikes: int = 3

    variable_n_back: bool = False
    # Accepted and validated, but not applied to match generation.
    interference_level: float = 0.0

    # Only the first entry is used.
    sound_sets: tuple[str, ...] = (DEFAULT_SOUND_SET,)

    arithmetic_max_number: int = 12
    arithmetic_use_negatives: bool = False
    arithmetic_operations: ArithmeticOperations = field(default_factory=ArithmeticOperations)

    def __post_init__(self) -> None:
        if self.trials_per_session < 1:
            raise ValueError("trials_per_session must be >= 1")
        if self.time_per_trial_ms <= 0:
            raise ValueError("time_per_trial_ms must be > 0")
        if self.stimulus_duration_ms <= 0:
            raise ValueError("stimulus_duration_ms must be > 0")
        if self.decrease_strikes < 1:
            raise ValueError("decrease_strikes must be >= 1")
        if not (0.0 <= self.interference_level <= 1.0):
            raise ValueError("interference_level must be in [0.0, 1.0]")
        if self.arithmetic_max_number < 0:
            raise ValueError("arithmetic_max_number must be >= 0")

    @property
    def primary_sound_set(self) -> str:
        return self.sound_sets[0] if self.sound_sets else DEFAULT_SOUND_SET


@dataclass(slots=True)
class Trial:
    """One stimulus presentation.

    Channel values are None for channels the game mode does not use. ``should_match``
    is ground truth fixed at generation; ``user_match`` is filled in during play.
    """

    index: int
    n_back_level: int

    position: int | None = None
    sound: str | None = None
    color: str | None = None
    visual_cue: str | None = None
    shape: str | None = None
    arithmetic_number: int | None = None
    arithmetic_operation: ArithmeticOperation | None = None

    should_match: dict[Channel, bool] = field(default_factory=dict)
    user_match: dict[Channel, MatchState] = field(default_factory=dict)

    arithmetic_correct_answer: str | None = None
    arithmetic_answer: str | None = None

    timestamp: float = 0.0

    def value(self, channel: Channel) -> object | None:
        return getattr(self, _VALUE_ATTRS[channel])

    def set_value(self, channel: Channel, value: object) -> None:
        setattr(self, _VALUE_ATTRS[channel], value)

    def channels(self) -> tuple[Channel, ...]:
        return tuple(c for c in Channel if self.value(c) is not None)

    def should_match_for(self, channel: Channel) -> bool:
        return bool(self.should_match.get(channel, False))

    def response(self, channel: Channel) -> MatchState:
        return self.user_match.get(channel, MatchState.UNANSWERED)


@dataclass(slots=True)
class Session:
    session_id: str
    game_mode: GameMode
    n_back_level: int
    trials: list[Trial]
    config: GameConfig

    profile_id: str | None = None
    is_manual_mode: bool = False

    started_at_s: float = 0.0
    ended_at_s: float | None = None

    # Populated when the session is scored.
    total_score: float = 0.0
    channel_scores: dict[Channel, float] = field(default_factory=dict)

    @property
    def channels(self) -> tuple[Channel, ...]:
        return game_mode_channels(self.game_mode)

    @property
    def duration_s(self) -> float | None:
        if self.ended_at_s is None:
            return None
        return max(0.0, self.ended_at_s - self.started_at_s)
