"""
plan_tracking
-------------
Builds on planner_core. Tracks workout completion by (week, day index) and
turns a generated plan plus completion state into progress stats and tables.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import FrozenSet, Iterable, List, Optional, Tuple

import pandas as pd

from plan_calendar import align_to_monday, workout_date
from planner_core import DistanceUnit, TrainingPlan, Workout, WorkoutType, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_MINUTES_PER_KM = 6.0

_PACE_IN_INTENSITY_RE = re.compile(r"@ (\d+):(\d+)/km")

Coordinate = Tuple[int, int]


class WorkoutNotFoundError(LookupError):
    pass


def completion_key(week_number: int, day_index: int) -> str:
    return f"{week_number}-{day_index}"


def parse_completion_key(key: str) -> Coordinate:
    week, _, day = key.partition("-")
    return int(week), int(day)


@dataclass(frozen=True)
class CompletionLog:
    completed: FrozenSet[Coordinate] = field(default_factory=frozenset)

    @classmethod
    def from_keys(cls, keys: Iterable[str]) -> "CompletionLog":
        return cls(frozenset(parse_completion_key(key) for key in keys))

    def keys(self) -> List[str]:
        return [completion_key(week, day) for week, day in sorted(self.completed)]

    def is_completed(self, week_number: int, day_index: int) -> bool:
        return (week_number, day_index) in self.completed

    def with_status(self, week_number: int, day_index: int, completed: bool) -> "CompletionLog":
        coordinate = (week_number, day_index)
        if completed:
            return CompletionLog(self.completed | {coordinate})
        return CompletionLog(self.completed - {coordinate})


@dataclass(frozen=True)
class Activity:
    """A recorded run: the day it started and its distance in metres."""

    start_date: date
    distance_m: float


@dataclass
class PlanStats:
    total_distance_km: float
    active_hours: str
    avg_pace: str
    runs_this_week: int
    completed_runs_this_week: int
    current_week: int
    completed_runs_total: int


# -----------------------------
# Completion
# -----------------------------


def locate_workout(plan: TrainingPlan, week_number: int, day_index: int) -> Workout:
    if not 1 <= week_number <= plan.total_weeks:
        raise WorkoutNotFoundError(f"Week {week_number} not found")
    workouts = plan.week(week_number).workouts
    if not 0 <= day_index < len(workouts):
        raise WorkoutNotFoundError(f"Workout {day_index} not found in week {week_number}")
    return workouts[day_index]


def mark_workout(
    plan: TrainingPlan,
    log: CompletionLog,
    week_number: int,
    day_index: int,
    completed: bool = True,
) -> CompletionLog:
    workout = locate_workout(plan, week_number, day_index)
    logger.debug("Week %d %s marked completed=%s", week_number, workout.day, completed)
    return log.with_status(week_number, day_index, completed)


def apply_activities(
    plan: TrainingPlan,
    log: CompletionLog,
    start_date: date,
    activities: Iterable[Activity],
) -> CompletionLog:
    """
    Complete every km workout scheduled on an activity's day when the activity
    covered at least the planned distance. Minute and rest workouts never match.
    """
    week_start = align_to_monday(start_date)
    completed = set(log.completed)
    for activity in activities:
        for week in plan.weeks:
            for idx, workout in enumerate(week.workouts):
                if (week.week_number, idx) in completed:
                    continue
                if workout.distance.unit is not DistanceUnit.KILOMETERS or workout.distance.amount <= 0:
                    continue
                if workout_date(week_start, week.week_number, workout.day) != activity.start_date:
                    continue
                if activity.distance_m >= workout.distance.amount * 1000:
                    completed.add((week.week_number, idx))
    matched = len(completed) - len(log.completed)
    if matched:
        logger.info("Activities completed %d planned workout(s)", matched)
    return CompletionLog(frozenset(completed))


def current_week_number(plan: TrainingPlan, log: CompletionLog) -> int:
    """First week with an unfinished workout, or the last week once all are done."""
    for week in plan.weeks:
        if any(not log.is_completed(week.week_number, idx) for idx in range(len(week.workouts))):
            return week.week_number
    return plan.total_weeks


# -----------------------------
# Stats
# -----------------------------


def estimate_workout_hours(workout: Workout) -> float:
    distance = workout.distance
    if distance.unit is DistanceUnit.MINUTES:
        return distance.amount / 60
    if distance.unit is DistanceUnit.KILOMETERS:
        match = _PACE_IN_INTENSITY_RE.search(workout.intensity)
        if match:
            pace_seconds = int(match.group(1)) * 60 + int(match.group(2))
            return distance.amount * pace_seconds / 3600
        return distance.amount * DEFAULT_MINUTES_PER_KM / 60
    return 0.0


def format_hours(hours: float) -> str:
    whole, minutes = divmod(round_half_up(hours * 60), 60)
    return f"{whole}h {minutes}m"


def format_pace_label(seconds_per_km: float) -> str:
    minutes, seconds = divmod(round_half_up(seconds_per_km), 60)
    return f"{minutes}'{seconds:02d}\" /km"


def summarize_progress(plan: TrainingPlan, log: CompletionLog) -> PlanStats:
    current = current_week_number(plan, log)
    total_km = 0.0
    active_hours = 0.0
    run_km = 0.0
    run_seconds = 0.0
    planned_runs_this_week = 0
    completed_runs_this_week = 0
    completed_runs = 0

    for week in plan.weeks:
        for idx, workout in enumerate(week.workouts):
            is_run = workout.type.is_run
            if week.week_number == current and is_run:
                planned_runs_this_week += 1
            if not log.is_completed(week.week_number, idx):
                continue
            hours = estimate_workout_hours(workout)
            active_hours += hours
            if workout.distance.unit is DistanceUnit.KILOMETERS:
                total_km += workout.distance.amount
            if is_run:
                completed_runs += 1
                if week.week_number == current:
                    completed_runs_this_week += 1
                if workout.distance.unit is DistanceUnit.KILOMETERS:
                    run_km += workout.distance.amount
                    run_seconds += hours * 3600

    avg_pace = format_pace_label(run_seconds / run_km) if run_km > 0 else "0'00\" /km"
    return PlanStats(
        total_distance_km=round(total_km, 1),
        active_hours=format_hours(active_hours),
        avg_pace=avg_pace,
        runs_this_week=planned_runs_this_week,
        completed_runs_this_week=completed_runs_this_week,
        current_week=current,
        completed_runs_total=completed_runs,
    )


def calculate_pace(distance_km: float, hours: int = 0, minutes: int = 0, seconds: int = 0) -> Optional[str]:
    """Pace calculator: finish time over a distance as m'ss" /km."""
    if not distance_km or distance_km <= 0:
        return None
    total_seconds = hours * 3600 + minutes * 60 + seconds
    if total_seconds <= 0:
        return None
    return format_pace_label(total_seconds / distance_km)


# -----------------------------
# Tables
# -----------------------------


PLAN_COLUMNS = [
    "week",
    "phase",
    "day_index",
    "day",
    "type",
    "distance",
    "intensity",
    "completed",
    "long_run_km",
]


def plan_to_frame(plan: TrainingPlan, log: Optional[CompletionLog] = None) -> pd.DataFrame:
    log = log or CompletionLog()
    rows = [
        {
            "week": week.week_number,
            "phase": week.phase.value,
            "day_index": idx,
            "day": workout.day,
            "type": workout.type.value,
            "distance": workout.distance_label,
            "intensity": workout.intensity,
            "completed": log.is_completed(week.week_number, idx),
            "long_run_km": week.long_run_km,
        }
        for week in plan.weeks
        for idx, workout in enumerate(week.workouts)
    ]
    return pd.DataFrame(rows, columns=PLAN_COLUMNS)


def weekly_long_run_frame(plan: TrainingPlan) -> pd.DataFrame:
    rows = [
        {"week": week.week_number, "phase": week.phase.value, "long_run_km": round(week.long_run_km, 2)}
        for week in plan.weeks
    ]
    frame = pd.DataFrame(rows, columns=["week", "phase", "long_run_km"])
    frame["long_run_km"] = frame["long_run_km"].astype(float)
    return frame


def weekly_progress_frame(plan: TrainingPlan, log: CompletionLog) -> pd.DataFrame:
    """Per week: completion rate of non-rest workouts and planned vs completed km."""
    rows = []
    for week in plan.weeks:
        total = done = 0
        planned_km = completed_km = 0.0
        for idx, workout in enumerate(week.workouts):
            is_done = log.is_completed(week.week_number, idx)
            if workout.type is not WorkoutType.REST:
                total += 1
                done += int(is_done)
            if workout.distance.unit is DistanceUnit.KILOMETERS:
                planned_km += workout.distance.amount
                if is_done:
                    completed_km += workout.distance.amount
        rows.append(
            {
                "week": week.week_number,
                "label": f"Week {week.week_number}",
                "completion_rate": round_half_up(done / total * 100) if total else 0,
                "planned_km": round_half_up(planned_km * 10) / 10,
                "completed_km": round_half_up(completed_km * 10) / 10,
            }
        )
    return pd.DataFrame(rows, columns=["week", "label", "completion_rate", "planned_km", "completed_km"])


__all__ = [
    "Activity",
    "apply_activities",
    "CompletionLog",
    "PlanStats",
    "WorkoutNotFoundError",
    "calculate_pace",
    "completion_key",
    "current_week_number",
    "estimate_workout_hours",
    "locate_workout",
    "mark_workout",
    "plan_to_frame",
    "summarize_progress",
    "weekly_long_run_frame",
    "weekly_progress_frame",
]
