# utils/scoring.py
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional

from utils.proofs import has_proof

RANK_BADGES = {1: "gold", 2: "silver", 3: "bronze"}


def _round_half_away(value, digits=0):
    # ties go away from zero: 12.5 -> 13, -0.25 -> -0.3
    factor = 10 ** digits
    return math.copysign(math.floor(abs(value) * factor + 0.5) / factor, value)


@dataclass
class ParticipantStats:
    total_points: int = 0
    workout_days: int = 0
    total_minutes: int = 0
    avg_minutes: int = 0
    water_days: int = 0
    friend_walks: int = 0
    proof_uploads: int = 0
    no_proof_days: int = 0
    streak_days: int = 0
    total_steps: int = 0
    total_distance: float = 0.0
    start_weight: Optional[float] = None
    latest_weight: Optional[float] = None
    weight_change: Optional[float] = None


@dataclass
class CompetitionProgress:
    day: int = 0          # clamped to [1, duration] for display
    raw_day: int = 0      # may run past the end
    percent: int = 0
    days_left: int = 0
    has_ended: bool = False


@dataclass
class ScoreboardRow:
    rank: int
    participant: object
    stats: ParticipantStats = field(default_factory=ParticipantStats)

    @property
    def badge(self):
        return RANK_BADGES.get(self.rank)


# 1. Points
def log_points(log):
    """Points for a single entry: one each for workout, water and friend walk."""
    return int(bool(log.completed)) + int(bool(log.water)) + int(bool(log.walk_with_friend))


def calculate_points(logs):
    """Total points accumulated across all days."""
    return sum(log_points(log) for log in logs or [])


# 2. Current Streak
def streak_count(logs, today=None):
    """Consecutive completed-workout days ending today.

    A missing log for today means no current streak, even if yesterday
    was part of a run.
    """
    today = today or date.today()
    completed = sorted(
        (log for log in logs or [] if log.completed),
        key=lambda log: log.date,
        reverse=True,
    )

    streak = 0
    for i, log in enumerate(completed):
        if log.date != today - timedelta(days=i):
            break
        streak += 1
    return streak


# 3. Participant Stats
def calculate_stats(participant, today=None):
    logs = participant.logs or []
    workouts = [log for log in logs if log.completed]

    total_minutes = sum(log.duration or 0 for log in workouts)
    proof_uploads = sum(1 for log in workouts if has_proof(log))

    weights = [log.weight for log in logs if log.weight is not None]
    start_weight = weights[0] if weights else None
    latest_weight = weights[-1] if weights else None
    weight_change = None
    if weights:
        weight_change = _round_half_away(latest_weight - start_weight, 1)

    return ParticipantStats(
        total_points=calculate_points(logs),
        workout_days=len(workouts),
        total_minutes=total_minutes,
        avg_minutes=int(_round_half_away(total_minutes / len(workouts))) if workouts else 0,
        water_days=sum(1 for log in logs if log.water),
        friend_walks=sum(1 for log in logs if log.walk_with_friend),
        proof_uploads=proof_uploads,
        no_proof_days=len(workouts) - proof_uploads,
        streak_days=streak_count(logs, today),
        total_steps=sum(log.steps or 0 for log in logs),
        total_distance=_round_half_away(sum(log.distance or 0 for log in logs), 1),
        start_weight=start_weight,
        latest_weight=latest_weight,
        weight_change=weight_change,
    )


# 4. Competition Progress
def competition_progress(competition, today=None):
    """Day-of-competition, percent complete and days left."""
    if competition is None:
        return CompetitionProgress()

    today = today or date.today()
    duration = competition.duration_days
    raw_day = (today - competition.start_date).days + 1

    return CompetitionProgress(
        day=min(max(raw_day, 1), duration),
        raw_day=raw_day,
        percent=int(min(100, max(0, _round_half_away(100 * raw_day / duration)))),
        days_left=max(0, duration - raw_day),
        has_ended=raw_day > duration,
    )


# 5. Scoreboard
def rank_participants(participants, today=None) -> List[ScoreboardRow]:
    """Participants by points, highest first.

    Equal scores keep their insertion order; there is no further tie-break.
    """
    rows = [
        ScoreboardRow(rank=0, participant=p, stats=calculate_stats(p, today))
        for p in participants
    ]
    rows.sort(key=lambda row: row.stats.total_points, reverse=True)
    for i, row in enumerate(rows, start=1):
        row.rank = i
    return rows


# 6. History
def sorted_logs(participant):
    """Logs newest first, as shown on the detail page."""
    return sorted(participant.logs or [], key=lambda log: log.date, reverse=True)
