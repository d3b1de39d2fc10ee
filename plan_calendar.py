"""
plan_calendar
-------------
Maps a generated plan onto calendar dates and all-day event payloads.
Delivering the events to a calendar service is left to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Union

from planner_core import WEEKDAY_NAMES, DistanceUnit, TrainingPlan, WeekPlan, Workout, WorkoutType

logger = logging.getLogger(__name__)

APP_SIGNATURE = "Generated by Race Planner"
DEFAULT_COLOR_ID = "1"
REMINDER_MINUTES = 60

WORKOUT_COLORS: Dict[WorkoutType, str] = {
    WorkoutType.REST: "8",
    WorkoutType.REST_RECOVERY: "8",
    WorkoutType.REST_CROSS_TRAIN: "8",
    WorkoutType.EASY_RUN: "2",
    WorkoutType.LONG_RUN: "11",
    WorkoutType.INTERVALS: "6",
    WorkoutType.LIGHT_INTERVALS: "7",
    WorkoutType.TEMPO_RUN: "5",
    WorkoutType.STRENGTH: "3",
}


@dataclass(frozen=True)
class CalendarEvent:
    date: date
    summary: str
    description: str
    color_id: str
    week_number: int
    day_index: int

    def to_payload(self) -> Dict[str, Any]:
        day = self.date.isoformat()
        return {
            "summary": self.summary,
            "description": self.description,
            "start": {"date": day},
            "end": {"date": day},
            "colorId": self.color_id,
            "reminders": {
                "useDefault": False,
                "overrides": [{"method": "popup", "minutes": REMINDER_MINUTES}],
            },
        }


def align_to_monday(start: date) -> date:
    """Week 1 starts on `start` when it is a Monday, otherwise the next Monday."""
    weekday = start.weekday()
    if weekday == 0:
        return start
    return start + timedelta(days=7 - weekday)


def weekday_offset(day: Union[str, int]) -> int:
    if isinstance(day, int):
        return day if 0 <= day < 7 else 0
    try:
        return WEEKDAY_NAMES.index(day)
    except ValueError:
        return 0


def workout_date(week_start: date, week_number: int, day: Union[str, int]) -> date:
    return week_start + timedelta(days=(week_number - 1) * 7 + weekday_offset(day))


def _is_plain_rest(workout: Workout) -> bool:
    return workout.type is WorkoutType.REST and workout.distance.unit is DistanceUnit.NONE


def build_event(week: WeekPlan, day_index: int, workout: Workout, week_start: date) -> CalendarEvent:
    summary = "Rest Day" if "Rest" in workout.type.value else workout.type.value
    description = "\n".join(
        [
            f"Week {week.week_number} - {week.phase.value} Phase",
            "",
            f"Distance: {workout.distance_label}",
            f"Intensity: {workout.intensity}",
            "",
            APP_SIGNATURE,
        ]
    )
    return CalendarEvent(
        date=workout_date(week_start, week.week_number, workout.day),
        summary=summary,
        description=description,
        color_id=WORKOUT_COLORS.get(workout.type, DEFAULT_COLOR_ID),
        week_number=week.week_number,
        day_index=day_index,
    )


def build_calendar_events(
    plan: TrainingPlan,
    start_date: date,
    *,
    include_rest: bool = False,
) -> List[CalendarEvent]:
    week_start = align_to_monday(start_date)
    events: List[CalendarEvent] = []
    skipped = 0
    for week in plan.weeks:
        for idx, workout in enumerate(week.workouts):
            if not include_rest and _is_plain_rest(workout):
                skipped += 1
                continue
            events.append(build_event(week, idx, workout, week_start))
    logger.debug("Built %d calendar events from %s (%d rest days skipped)", len(events), week_start, skipped)
    return events


__all__ = [
    "CalendarEvent",
    "align_to_monday",
    "build_calendar_events",
    "workout_date",
]
