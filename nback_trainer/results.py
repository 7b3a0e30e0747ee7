from __future__ import annotations

import copy
import logging
import time
import uuid
from dataclasses import dataclass, field, replace

from .clock import Clock
from .levels import MIN_N_BACK_LEVEL, LevelDecision, determine_next_level
from .nback_core import GameConfig, GameMode, Session

logger = logging.getLogger(__name__)

DEFAULT_N_BACK_LEVEL = 2


@dataclass(frozen=True, slots=True)
class DailyStats:
    """Aggregate of the adaptive sessions played on one day.

    Sessions are stored as copies taken when they were recorded.
    """

    date: str
    sessions: tuple[Session, ...] = ()

    @property
    def total_sessions(self) -> int:
        return len(self.sessions)

    @property
    def average_n_back(self) -> float:
        if not self.sessions:
            return 0.0
        return sum(s.n_back_level for s in self.sessions) / len(self.sessions)


@dataclass(slots=True)
class Profile:
    profile_id: str
    name: str
    created_at_s: float
    current_n_back_level: int = DEFAULT_N_BACK_LEVEL
    current_game_mode: GameMode = GameMode.DUAL_NBACK
    strike_count: int = 0
    daily_stats: dict[str, DailyStats] = field(default_factory=dict)
    config: GameConfig = field(default_factory=GameConfig)


def create_profile(
    name: str,
    *,
    clock: Clock,
    profile_id: str | None = None,
    config: GameConfig | None = None,
) -> Profile:
    name = name.strip()
    if name == "":
        raise ValueError("profile name must not be empty")
    return Profile(
        profile_id=profile_id or f"profile-{uuid.uuid4().hex[:12]}",
        name=name,
        created_at_s=float(clock.now()),
        config=GameConfig() if config is None else config,
    )


def _utc_today() -> str:
    return time.strftime("%Y-%m-%d", time.gmtime(time.time()))


def apply_session_to_profile(
    profile: Profile,
    session: Session,
    *,
    today: str | None = None,
) -> LevelDecision | None:
    """Fold a scored session into the profile.

    Manual sessions leave the profile untouched and return None. Otherwise the
    level and strikes move per ``determine_next_level`` (using the session's own
    config snapshot) and the session is appended to today's history.
    """

    if session.is_manual_mode:
        logger.debug("Session %s is manual; profile %s unchanged", session.session_id, profile.profile_id)
        return None

    decision = determine_next_level(
        session.n_back_level,
        session.total_score,
        profile.strike_count,
        session.config,
    )
    profile.current_n_back_level = decision.next_level
    profile.strike_count = decision.new_strike_count

    day = today or _utc_today()
    previous = profile.daily_stats.get(day, DailyStats(date=day))
    profile.daily_stats[day] = DailyStats(date=day, sessions=(*previous.sessions, copy.deepcopy(session)))
    return decision


def adjust_n_back_level(profile: Profile, delta: int) -> int:
    """Manual level change; never below 1."""

    profile.current_n_back_level = max(MIN_N_BACK_LEVEL, profile.current_n_back_level + int(delta))
    return profile.current_n_back_level


def update_profile_config(profile: Profile, **changes: object) -> GameConfig:
    """Replace fields of the profile's config; sessions already started keep their snapshot."""

    profile.config = replace(profile.config, **changes)
    return profile.config


def set_game_mode(profile: Profile, game_mode: GameMode | str) -> None:
    profile.current_game_mode = GameMode(game_mode)


def clear_session_history(profile: Profile) -> None:
    profile.daily_stats = {}


def export_stats(profile: Profile) -> str:
    """Tab-separated history, one line per day in date order."""

    lines = ["Date\tAverage N-Back\tSessions"]
    for day in sorted(profile.daily_stats):
        stats = profile.daily_stats[day]
        lines.append(f"{day}\t{stats.average_n_back:.2f}\t{stats.total_sessions}")
    return "\n".join(lines)
