from __future__ import annotations

from dataclasses import dataclass, replace

import pytest

from nback_trainer.nback_core import Channel, GameConfig, GameMode, MatchState, SeededRng
from nback_trainer.results import apply_session_to_profile, create_profile
from nback_trainer.session import NBackSession, Phase, start_session


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def _engine(
    *,
    clock: FakeClock,
    mode: GameMode = GameMode.DUAL_NBACK,
    config: GameConfig | None = None,
    manual: bool = False,
    seed: int = 21,
) -> NBackSession:
    profile = create_profile("sim", clock=clock, profile_id="profile-sim")
    if config is not None:
        profile.config = config
    return start_session(profile, mode, manual=manual, clock=clock, rng=SeededRng(seed), session_id="session-sim")


def _play_perfectly(engine: NBackSession, clock: FakeClock) -> None:
    step_s = engine.config.time_per_trial_ms / 1000.0
    while engine.phase is Phase.RUNNING:
        trial = engine.current_trial()
        assert trial is not None
        for channel in engine.session.channels:
            if channel is Channel.ARITHMETIC:
                if trial.arithmetic_correct_answer is not None:
                    assert engine.record_arithmetic_answer(trial.arithmetic_correct_answer) is True
            elif trial.should_match_for(channel):
                assert engine.record_response(channel) is True
        clock.advance(step_s)
        engine.update()


def test_phase_flow_and_timestamps() -> None:
    clock = FakeClock(t=100.0)
    engine = _engine(clock=clock)

    assert engine.phase is Phase.READY
    assert engine.current_trial() is None
    assert engine.session.n_back_level == 2
    assert engine.session.profile_id == "profile-sim"

    engine.start()
    assert engine.phase is Phase.RUNNING
    assert engine.session.started_at_s == 100.0
    assert engine.current_trial() is engine.session.trials[0]

    with pytest.raises(RuntimeError):
        engine.start()

    _play_perfectly(engine, clock)

    assert engine.phase is Phase.RESULTS
    assert engine.session.ended_at_s == pytest.approx(100.0 + 20 * 3.0)
    assert engine.session.duration_s == pytest.approx(60.0)
    assert engine.session.total_score == 100.0
    assert engine.snapshot().total_score == 100.0
    # Trials were presented one time step apart.
    stamps = [t.timestamp for t in engine.session.trials]
    assert stamps == [pytest.approx(100.0 + 3.0 * i) for i in range(20)]


def test_update_waits_for_trial_time() -> None:
    clock = FakeClock()
    engine = _engine(clock=clock, config=GameConfig(time_per_trial_ms=2000, stimulus_duration_ms=500))
    engine.start()

    assert engine.stimulus_visible() is True
    clock.advance(0.6)
    assert engine.stimulus_visible() is False
    engine.update()
    assert engine.trial_index == 0
    assert engine.time_remaining_s() == pytest.approx(1.4)

    clock.advance(1.5)
    engine.update()
    assert engine.trial_index == 1
    snap = engine.snapshot()
    assert snap.trial is engine.session.trials[1]
    assert snap.trials_total == 20
    assert snap.stimulus_visible is True


def test_responses_are_recorded_as_tri_state() -> None:
    clock = FakeClock()
    engine = _engine(clock=clock)
    engine.start()

    trial = engine.current_trial()
    assert trial is not None
    assert trial.response(Channel.POSITION) is MatchState.UNANSWERED

    engine.record_response(Channel.POSITION)
    engine.record_response("sound", affirmed=False)
    assert trial.response(Channel.POSITION) is MatchState.AFFIRMED
    assert trial.response(Channel.SOUND) is MatchState.REJECTED

    with pytest.raises(ValueError):
        engine.record_response(Channel.COLOR)
    with pytest.raises(ValueError):
        engine.record_response(Channel.ARITHMETIC)
    with pytest.raises(ValueError):
        engine.record_arithmetic_answer("3")


def test_live_feedback_starts_after_the_lag() -> None:
    clock = FakeClock()
    engine = _engine(clock=clock)
    engine.start()

    assert engine.live_feedback() is None
    engine.advance()
    engine.advance()

    trial = engine.current_trial()
    assert trial is not None and trial.index == 2
    feedback = engine.live_feedback()
    assert feedback is not None
    assert feedback.position_correct is (not trial.should_match_for(Channel.POSITION))
    assert feedback.color_correct is None


def test_arithmetic_answers_flow_through_the_session() -> None:
    clock = FakeClock()
    engine = _engine(clock=clock, mode=GameMode.DUAL_ARITHMETIC, manual=True)
    engine.start()

    assert engine.record_arithmetic_answer("   ") is False
    _play_perfectly(engine, clock)

    score = engine.score()
    assert score is not None
    assert score.arithmetic_score == 100.0
    assert score.total_score == 100.0


def test_early_finish_scores_what_was_played() -> None:
    clock = FakeClock()
    engine = _engine(clock=clock)

    with pytest.raises(RuntimeError):
        engine.finish()

    engine.start()
    engine.advance()
    score = engine.finish()

    assert engine.phase is Phase.RESULTS
    assert len(engine.session.trials) == 2
    assert score.position_score is None
    assert score.total_score == 0.0
    assert engine.finish() is score
    assert engine.record_response(Channel.POSITION) is False
    assert engine.time_remaining_s() is None


def test_config_is_snapshotted_at_start() -> None:
    clock = FakeClock()
    profile = create_profile("sim", clock=clock)
    engine = start_session(profile, clock=clock, rng=SeededRng(2))

    profile.config = replace(profile.config, jaeggi_mode=True, trials_per_session=40)

    assert engine.session.config.jaeggi_mode is False
    assert len(engine.session.trials) == 20


def test_adaptive_and_manual_sessions_against_profile() -> None:
    clock = FakeClock()
    profile = create_profile("sim", clock=clock)

    adaptive = start_session(profile, clock=clock, rng=SeededRng(4))
    adaptive.start()
    _play_perfectly(adaptive, clock)
    decision = apply_session_to_profile(profile, adaptive.session, today="2026-05-05")
    assert decision is not None
    assert profile.current_n_back_level == 3

    manual = start_session(profile, clock=clock, rng=SeededRng(5), manual=True)
    assert manual.session.n_back_level == 3
    manual.start()
    _play_perfectly(manual, clock)
    assert apply_session_to_profile(profile, manual.session, today="2026-05-05") is None
    assert profile.current_n_back_level == 3
    assert profile.daily_stats["2026-05-05"].total_sessions == 1


def test_jaeggi_session_scores_min_channel() -> None:
    clock = FakeClock()
    engine = _engine(clock=clock, config=GameConfig(jaeggi_mode=True))
    engine.start()

    step_s = engine.config.time_per_trial_ms / 1000.0
    while engine.phase is Phase.RUNNING:
        trial = engine.current_trial()
        assert trial is not None
        # Perfect on position, never presses sound.
        if trial.should_match_for(Channel.POSITION):
            engine.record_response(Channel.POSITION)
        clock.advance(step_s)
        engine.update()

    score = engine.score()
    assert score is not None
    assert score.position_score == 100.0
    # 4 of 18 scored trials are sound targets.
    assert score.sound_score == pytest.approx(14 / 18 * 100.0)
    assert score.total_score == score.sound_score


def test_pause_freezes_the_trial_clock() -> None:
    clock = FakeClock(t=10.0)
    engine = _engine(clock=clock, config=GameConfig(time_per_trial_ms=2000, stimulus_duration_ms=500))
    engine.start()

    assert engine.resume() is False
    clock.advance(0.5)
    assert engine.pause() is True
    assert engine.phase is Phase.PAUSED
    assert engine.pause() is False

    # Well past the trial time: nothing advances while paused.
    clock.advance(10.0)
    engine.update()
    assert engine.trial_index == 0
    assert engine.current_trial() is engine.session.trials[0]
    assert engine.time_remaining_s() == pytest.approx(1.5)
    assert engine.stimulus_visible() is False
    assert engine.record_response(Channel.POSITION) is False
    assert engine.snapshot().phase is Phase.PAUSED

    assert engine.resume() is True
    assert engine.phase is Phase.RUNNING
    assert engine.session.trials[0].timestamp == 20.5
    assert engine.time_remaining_s() == pytest.approx(2.0)
    assert engine.stimulus_visible() is True

    clock.advance(2.0)
    engine.update()
    assert engine.trial_index == 1


def test_finish_while_paused_scores_what_was_played() -> None:
    clock = FakeClock()
    engine = _engine(clock=clock)
    engine.start()
    engine.advance()
    engine.pause()

    engine.finish()

    assert engine.phase is Phase.RESULTS
    assert len(engine.session.trials) == 2
    assert engine.resume() is False
