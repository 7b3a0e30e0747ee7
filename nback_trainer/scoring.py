from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .nback_core import Channel, MatchState, Session, Trial

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TrialCheck:
    """Per-channel correctness of one trial; None where the channel is not tested."""

    position_correct: bool | None = None
    sound_correct: bool | None = None
    color_correct: bool | None = None
    visual_correct: bool | None = None
    shape_correct: bool | None = None
    arithmetic_correct: bool | None = None

    def for_channel(self, channel: Channel) -> bool | None:
        return getattr(self, f"{Channel(channel).value}_correct")


def is_match_response_correct(trial: Trial, channel: Channel) -> bool:
    # An unanswered trial counts as "no match".
    affirmed = trial.response(channel) is MatchState.AFFIRMED
    return affirmed == trial.should_match_for(channel)


def is_arithmetic_answer_correct(trial: Trial) -> bool | None:
    if trial.arithmetic_correct_answer is None:
        return None
    if trial.arithmetic_answer is None:
        return False
    return trial.arithmetic_answer.strip() == trial.arithmetic_correct_answer


def check_trial_response(trial: Trial, channels: Iterable[Channel] | None = None) -> TrialCheck:
    """Correctness of the responses recorded on ``trial``.

    Without ``channels``, every channel the trial carries a value for is checked.
    """

    active = trial.channels() if channels is None else tuple(Channel(c) for c in channels)
    results: dict[str, bool | None] = {}
    for channel in active:
        if channel is Channel.ARITHMETIC:
            results["arithmetic_correct"] = is_arithmetic_answer_correct(trial)
        else:
            results[f"{channel.value}_correct"] = is_match_response_correct(trial, channel)
    return TrialCheck(**results)


@dataclass(frozen=True, slots=True)
class ChannelTally:
    correct: int = 0
    counted: int = 0

    @property
    def percentage(self) -> float | None:
        if self.counted == 0:
            return None
        return (self.correct / self.counted) * 100.0


@dataclass(frozen=True, slots=True)
class SessionScore:
    total_score: float
    position_score: float | None = None
    sound_score: float | None = None
    color_score: float | None = None
    visual_score: float | None = None
    shape_score: float | None = None
    arithmetic_score: float | None = None
    tallies: dict[Channel, ChannelTally] = field(default_factory=dict)

    def score_for(self, channel: Channel) -> float | None:
        return getattr(self, f"{Channel(channel).value}_score")

    def channel_scores(self) -> dict[Channel, float]:
        """Defined per-channel scores only. A channel never tested is absent, not 0."""

        out: dict[Channel, float] = {}
        for channel in Channel:
            value = self.score_for(channel)
            if value is not None:
                out[channel] = value
        return out

    def as_dict(self) -> dict[str, float]:
        out = {f"{c.value}Score": v for c, v in self.channel_scores().items()}
        out["totalScore"] = self.total_score
        return out


def _tally_session(session: Session) -> dict[Channel, ChannelTally]:
    jaeggi = session.config.jaeggi_mode
    channels = session.channels
    correct = {c: 0 for c in channels}
    counted = {c: 0 for c in channels}

    for trial in session.trials:
        # Below the baseline no trial can be a target, even with a shorter lag.
        if trial.index < session.n_back_level:
            continue

        for channel in channels:
            if channel is Channel.ARITHMETIC:
                # Same rule in both modes: counted when an answer was due or given.
                if trial.arithmetic_correct_answer is None and trial.arithmetic_answer is None:
                    continue
                counted[channel] += 1
                if is_arithmetic_answer_correct(trial):
                    correct[channel] += 1
                continue

            affirmed = trial.response(channel) is MatchState.AFFIRMED
            if jaeggi or affirmed or trial.should_match_for(channel):
                counted[channel] += 1
                if is_match_response_correct(trial, channel):
                    correct[channel] += 1

    return {c: ChannelTally(correct=correct[c], counted=counted[c]) for c in channels}


def calculate_session_score(session: Session) -> SessionScore:
    """Score a completed session.

    Standard mode counts hits, misses and false alarms; correct rejections are left
    out and the total pools all channels. Jaeggi mode counts every trial and the
    total is the weakest matched channel.
    """

    tallies = _tally_session(session)
    per_channel = {c: t.percentage for c, t in tallies.items() if t.percentage is not None}

    if session.config.jaeggi_mode:
        bounded = [v for c, v in per_channel.items() if c is not Channel.ARITHMETIC]
        total = min(bounded) if bounded else 0.0
    else:
        pooled_correct = sum(t.correct for t in tallies.values())
        pooled_counted = sum(t.counted for t in tallies.values())
        total = 0.0 if pooled_counted == 0 else (pooled_correct / pooled_counted) * 100.0

    score = SessionScore(
        total_score=float(total),
        position_score=per_channel.get(Channel.POSITION),
        sound_score=per_channel.get(Channel.SOUND),
        color_score=per_channel.get(Channel.COLOR),
        visual_score=per_channel.get(Channel.VISUAL),
        shape_score=per_channel.get(Channel.SHAPE),
        arithmetic_score=per_channel.get(Channel.ARITHMETIC),
        tallies=tallies,
    )
    logger.debug(
        "Scored session %s (jaeggi=%s): %s",
        session.session_id,
        session.config.jaeggi_mode,
        score.as_dict(),
    )
    return score


def apply_score(session: Session, score: SessionScore) -> None:
    session.total_score = score.total_score
    session.channel_scores = score.channel_scores()
