from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from enum import StrEnum

from .clock import Clock
from .nback_core import (
    Channel,
    GameConfig,
    GameMode,
    MatchState,
    RandomSource,
    Session,
    Trial,
)
from .results import Profile
from .scoring import SessionScore, TrialCheck, apply_score, calculate_session_score, check_trial_response
from .trials import generate_trials

logger = logging.getLogger(__name__)


class Phase(StrEnum):
    READY = "ready"
    RUNNING = "running"
    PAUSED = "paused"
    RESULTS = "results"


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """View model for the presentation layer (pure data)."""

    game_mode: GameMode
    n_back_level: int
    phase: Phase
    trial_index: int
    trials_total: int
    trial: Trial | None
    time_remaining_s: float | None
    stimulus_visible: bool
    total_score: float | None = None


class NBackSession:
    """Drives one play-through: ready -> running (one trial at a time) -> results.

    - Running and paused alternate; the trial clock is frozen while paused.

    - Trials are generated up front; the driver only records responses and advances.
    - Time is entirely via injected Clock.
    """

    def __init__(self, *, session: Session, clock: Clock) -> None:
        if not session.trials:
            raise ValueError("session has no trials")
        self._session = session
        self._clock = clock
        self._phase = Phase.READY
        self._index = 0
        self._score: SessionScore | None = None
        self._paused_at: float | None = None

    @property
    def session(self) -> Session:
        return self._session

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def trial_index(self) -> int:
        return self._index

    @property
    def config(self) -> GameConfig:
        return self._session.config

    def current_trial(self) -> Trial | None:
        if self._phase not in (Phase.RUNNING, Phase.PAUSED):
            return None
        return self._session.trials[self._index]

    def start(self) -> None:
        if self._phase is not Phase.READY:
            raise RuntimeError("Session already started")
        self._phase = Phase.RUNNING
        self._session.started_at_s = self._clock.now()
        self._present()
        logger.info(
            "Session %s started: %s at n=%d, %d trials",
            self._session.session_id,
            self._session.game_mode.value,
            self._session.n_back_level,
            len(self._session.trials),
        )

    def record_response(self, channel: Channel | str, *, affirmed: bool = True) -> bool:
        """Record a match / no-match response for the current trial. Returns True if accepted."""

        channel = Channel(channel)
        if channel is Channel.ARITHMETIC:
            raise ValueError("Use record_arithmetic_answer for the arithmetic channel")
        if channel not in self._session.channels:
            raise ValueError(f"Channel {channel.value} is not active in {self._session.game_mode.value}")

        trial = self.current_trial()
        if trial is None or self._phase is Phase.PAUSED:
            return False
        trial.user_match[channel] = MatchState.AFFIRMED if affirmed else MatchState.REJECTED
        return True

    def record_arithmetic_answer(self, raw: str) -> bool:
        if Channel.ARITHMETIC not in self._session.channels:
            raise ValueError(f"{self._session.game_mode.value} has no arithmetic channel")

        trial = self.current_trial()
        if trial is None or self._phase is Phase.PAUSED:
            return False
        raw = raw.strip()
        if raw == "":
            return False
        trial.arithmetic_answer = raw
        return True

    def live_feedback(self) -> TrialCheck | None:
        trial = self.current_trial()
        if trial is None or trial.index < self._session.n_back_level:
            return None
        return check_trial_response(trial, self._session.channels)

    def time_remaining_s(self) -> float | None:
        trial = self.current_trial()
        if trial is None:
            return None
        elapsed = self._elapsed_s(trial)
        return max(0.0, self.config.time_per_trial_ms / 1000.0 - elapsed)

    def stimulus_visible(self) -> bool:
        trial = self.current_trial()
        if trial is None or self._phase is Phase.PAUSED:
            return False
        return self._elapsed_s(trial) < self.config.stimulus_duration_ms / 1000.0

    def update(self) -> None:
        """Advance when the current trial's time is up. Does nothing while paused."""

        if self._phase is not Phase.RUNNING:
            return
        remaining = self.time_remaining_s()
        if remaining is not None and remaining <= 0.0:
            self.advance()

    def pause(self) -> bool:
        if self._phase is not Phase.RUNNING:
            return False
        self._phase = Phase.PAUSED
        self._paused_at = self._clock.now()
        logger.debug("Session %s paused at trial %d", self._session.session_id, self._index)
        return True

    def resume(self) -> bool:
        """Continue a paused session; the current trial's timer restarts from zero."""

        if self._phase is not Phase.PAUSED:
            return False
        self._phase = Phase.RUNNING
        self._paused_at = None
        self._present()
        logger.debug("Session %s resumed at trial %d", self._session.session_id, self._index)
        return True

    def advance(self) -> None:
        if self._phase is not Phase.RUNNING:
            return
        if self._index + 1 >= len(self._session.trials):
            self.finish()
            return
        self._index += 1
        self._present()

    def finish(self) -> SessionScore:
        """End the session and score it.

        Finishing early drops the trials that were never presented, so only what
        was played is scored.
        """

        if self._phase is Phase.RESULTS:
            assert self._score is not None
            return self._score
        if self._phase is Phase.READY:
            raise RuntimeError("Session has not started")

        del self._session.trials[self._index + 1 :]
        self._phase = Phase.RESULTS
        self._paused_at = None
        self._session.ended_at_s = self._clock.now()
        self._score = calculate_session_score(self._session)
        apply_score(self._session, self._score)
        logger.info(
            "Session %s finished: total %.1f%%",
            self._session.session_id,
            self._score.total_score,
        )
        return self._score

    def score(self) -> SessionScore | None:
        return self._score

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            game_mode=self._session.game_mode,
            n_back_level=self._session.n_back_level,
            phase=self._phase,
            trial_index=self._index,
            trials_total=len(self._session.trials),
            trial=self.current_trial(),
            time_remaining_s=self.time_remaining_s(),
            stimulus_visible=self.stimulus_visible(),
            total_score=None if self._score is None else self._score.total_score,
        )

    def _elapsed_s(self, trial: Trial) -> float:
        now = self._clock.now() if self._paused_at is None else self._paused_at
        return now - trial.timestamp

    def _present(self) -> None:
        self._session.trials[self._index].timestamp = self._clock.now()


def start_session(
    profile: Profile,
    game_mode: GameMode | str | None = None,
    *,
    manual: bool = False,
    clock: Clock,
    rng: RandomSource | None = None,
    session_id: str | None = None,
) -> NBackSession:
    """Build a session from a profile and return its (not yet started) driver.

    Both kinds play at the profile's current level; only adaptive sessions move it
    afterwards. The profile's config is snapshotted here.
    """

    mode = GameMode(game_mode) if game_mode is not None else profile.current_game_mode
    n_back_level = profile.current_n_back_level
    config = profile.config

    trials = generate_trials(mode, n_back_level, config, rng=rng)
    session = Session(
        session_id=session_id or f"session-{uuid.uuid4().hex[:12]}",
        game_mode=mode,
        n_back_level=n_back_level,
        trials=trials,
        config=config,
        profile_id=profile.profile_id,
        is_manual_mode=manual,
    )
    return NBackSession(session=session, clock=clock)
