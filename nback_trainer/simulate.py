from __future__ import annotations

import argparse
import logging
import random
from dataclasses import dataclass
from typing import Callable, Sequence

from .clock import WallClock
from .match_patterns import JAEGGI_MIN_ELIGIBLE
from .nback_core import MATCH_CHANNELS, GameConfig, GameMode, SeededRng, Trial
from .results import apply_session_to_profile, create_profile
from .session import NBackSession, Phase, start_session

logger = logging.getLogger(__name__)


@dataclass
class SimulatedClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


class SimulatedPlayer:
    """Answers each trial correctly with probability ``accuracy``, per channel."""

    def __init__(self, *, rng: SeededRng, accuracy: float) -> None:
        if not (0.0 <= accuracy <= 1.0):
            raise ValueError("accuracy must be in [0.0, 1.0]")
        self._rng = rng
        self._accuracy = float(accuracy)

    def respond(self, engine: NBackSession, trial: Trial) -> None:
        for channel in engine.session.channels:
            if channel not in MATCH_CHANNELS:
                continue
            says_match = trial.should_match_for(channel)
            if self._rng.random() >= self._accuracy:
                says_match = not says_match
            # No key press at all is the usual way of saying "no match".
            if says_match:
                engine.record_response(channel)

        if trial.arithmetic_correct_answer is not None:
            if self._rng.random() < self._accuracy:
                engine.record_arithmetic_answer(trial.arithmetic_correct_answer)
            else:
                engine.record_arithmetic_answer("-1")


def _new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nback_trainer",
        description="Run a headless N-back session with a simulated player.",
    )
    parser.add_argument("--mode", default=GameMode.DUAL_NBACK.value, choices=[m.value for m in GameMode])
    parser.add_argument("--level", type=int, default=2, help="n-back level (default: 2)")
    parser.add_argument("--trials", type=int, default=20, help="trials per session (default: 20)")
    parser.add_argument("--sessions", type=int, default=1, help="sessions to play back to back")
    parser.add_argument("--accuracy", type=float, default=0.85, help="simulated player accuracy")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--jaeggi", action="store_true")
    parser.add_argument("--variable-n-back", action="store_true")
    parser.add_argument("--manual", action="store_true", help="keep the level fixed")
    parser.add_argument("--sound-set", default="letters", choices=["letters", "numbers", "nato"])
    parser.add_argument("--log-level", default="WARNING")
    return parser


def run(argv: Sequence[str] | None = None, *, emit: Callable[[str], None] = print) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    if args.level < 1:
        emit("error: --level must be >= 1")
        return 2
    if args.jaeggi and args.trials - args.level < JAEGGI_MIN_ELIGIBLE:
        emit(f"error: Jaeggi mode needs --trials >= --level + {JAEGGI_MIN_ELIGIBLE}")
        return 2

    seed = _new_seed() if args.seed is None else int(args.seed)
    rng = SeededRng(seed)
    config = GameConfig(
        trials_per_session=args.trials,
        jaeggi_mode=args.jaeggi,
        variable_n_back=args.variable_n_back,
        sound_sets=(args.sound_set,),
    )
    profile = create_profile("simulated", clock=WallClock(), config=config)
    profile.current_n_back_level = args.level
    profile.current_game_mode = GameMode(args.mode)
    player = SimulatedPlayer(rng=SeededRng(seed + 1), accuracy=args.accuracy)
    clock = SimulatedClock()

    emit(f"seed={seed}")
    for number in range(1, args.sessions + 1):
        if args.jaeggi and args.trials - profile.current_n_back_level < JAEGGI_MIN_ELIGIBLE:
            logger.warning("Stopping before session %d: n=%d is too high for Jaeggi quotas", number, profile.current_n_back_level)
            break
        engine = start_session(profile, manual=args.manual, clock=clock, rng=rng)
        engine.start()
        step_s = config.time_per_trial_ms / 1000.0
        while engine.phase is Phase.RUNNING:
            trial = engine.current_trial()
            assert trial is not None
            player.respond(engine, trial)
            clock.advance(step_s)
            engine.update()

        score = engine.finish()
        parts = [f"{k}={v:.1f}" for k, v in score.as_dict().items()]
        decision = apply_session_to_profile(profile, engine.session)
        line = f"session {number}: {engine.session.game_mode.value} n={engine.session.n_back_level} " + " ".join(parts)
        if decision is not None:
            line += f" -> next n={decision.next_level} strikes={decision.new_strike_count}"
        emit(line)
    return 0
