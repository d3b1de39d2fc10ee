from datetime import date, timedelta
from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from plan_tracking import (
    PLAN_COLUMNS,
    Activity,
    CompletionLog,
    WorkoutNotFoundError,
    apply_activities,
    calculate_pace,
    current_week_number,
    estimate_workout_hours,
    locate_workout,
    mark_workout,
    plan_to_frame,
    summarize_progress,
    weekly_long_run_frame,
    weekly_progress_frame,
)
from planner_core import Distance, PlanRequest, Workout, WorkoutType, generate_training_plan


BASE_START = date(2025, 1, 6)


def build_plan():
    request = PlanRequest(
        target_distance="5k",
        race_date=BASE_START + timedelta(days=42),
        fitness_level="beginner",
        current_distance_km=3.0,
        recent_time="00:18:00",
    )
    return generate_training_plan(request, today=BASE_START)


def test_mark_workout_returns_new_log() -> None:
    plan = build_plan()
    empty = CompletionLog()
    log = mark_workout(plan, empty, 1, 0)

    assert log.is_completed(1, 0)
    assert not empty.is_completed(1, 0)
    assert not mark_workout(plan, log, 1, 0, completed=False).is_completed(1, 0)


@pytest.mark.parametrize("week, day", [(0, 0), (7, 0), (1, 7), (1, -1)])
def test_mark_workout_outside_plan_raises(week, day) -> None:
    plan = build_plan()

    with pytest.raises(WorkoutNotFoundError):
        mark_workout(plan, CompletionLog(), week, day)


def test_locate_workout_by_position() -> None:
    workout = locate_workout(build_plan(), 1, 4)

    assert workout.day == "Friday"
    assert workout.type is WorkoutType.LONG_RUN


def test_completion_keys_round_trip() -> None:
    log = CompletionLog.from_keys(["2-3", "1-0"])

    assert log.keys() == ["1-0", "2-3"]
    assert log.is_completed(2, 3)


def test_current_week_moves_after_full_week() -> None:
    plan = build_plan()
    log = CompletionLog()
    assert current_week_number(plan, log) == 1

    for idx in range(7):
        log = mark_workout(plan, log, 1, idx)
    assert current_week_number(plan, log) == 2


def test_current_week_stays_on_last_when_done() -> None:
    plan = build_plan()
    log = CompletionLog(frozenset((week.week_number, idx) for week in plan for idx in range(7)))

    assert current_week_number(plan, log) == plan.total_weeks


def test_estimate_hours_uses_embedded_pace() -> None:
    run = Workout("Monday", WorkoutType.EASY_RUN, Distance.km(10), "Easy pace @ 6:00/km")
    plain = Workout("Monday", WorkoutType.EASY_RUN, Distance.km(10), "Easy")
    strength = Workout("Thursday", WorkoutType.STRENGTH, Distance.minutes(45), "Leg Day")
    rest = Workout("Saturday", WorkoutType.REST, Distance.none(), "Complete Rest")

    assert estimate_workout_hours(run) == pytest.approx(1.0)
    assert estimate_workout_hours(plain) == pytest.approx(1.0)
    assert estimate_workout_hours(strength) == pytest.approx(0.75)
    assert estimate_workout_hours(rest) == 0.0


def test_summarize_progress_counts_completed_runs() -> None:
    plan = build_plan()
    log = CompletionLog()
    for day in (0, 4):
        log = mark_workout(plan, log, 1, day)
    stats = summarize_progress(plan, log)

    assert stats.current_week == 1
    assert stats.total_distance_km == pytest.approx(5.0)
    assert stats.runs_this_week == 3
    assert stats.completed_runs_this_week == 2
    assert stats.completed_runs_total == 2
    assert stats.active_hours == "0h 35m"
    # (2 km @ 6:45 + 3 km @ 7:15) / 5 km
    assert stats.avg_pace == "7'03\" /km"


def test_summarize_progress_empty_log() -> None:
    stats = summarize_progress(build_plan(), CompletionLog())

    assert stats.total_distance_km == 0.0
    assert stats.active_hours == "0h 0m"
    assert stats.avg_pace == "0'00\" /km"


def test_strength_counts_toward_hours_not_runs() -> None:
    plan = build_plan()
    log = mark_workout(plan, CompletionLog(), 1, 3)
    stats = summarize_progress(plan, log)

    assert stats.active_hours == "0h 30m"
    assert stats.completed_runs_total == 0


@pytest.mark.parametrize(
    "distance, h, m, s, expected",
    [(10.0, 0, 55, 0, "5'30\" /km"), (5.0, 0, 25, 0, "5'00\" /km"), (42.195, 3, 30, 0, "4'59\" /km")],
)
def test_calculate_pace(distance, h, m, s, expected) -> None:
    assert calculate_pace(distance, h, m, s) == expected


def test_calculate_pace_rejects_empty_input() -> None:
    assert calculate_pace(0.0, 0, 30, 0) is None
    assert calculate_pace(5.0) is None


def test_plan_to_frame_has_row_per_workout() -> None:
    plan = build_plan()
    log = mark_workout(plan, CompletionLog(), 2, 4)
    frame = plan_to_frame(plan, log)

    assert list(frame.columns) == PLAN_COLUMNS
    assert len(frame) == plan.total_weeks * 7
    assert int(frame["completed"].sum()) == 1
    done = frame[frame["completed"]].iloc[0]
    assert done["week"] == 2
    assert done["type"] == "Long Run"


def test_weekly_long_run_frame() -> None:
    frame = weekly_long_run_frame(build_plan())

    assert frame["week"].tolist() == [1, 2, 3, 4, 5, 6]
    assert frame["long_run_km"].tolist() == pytest.approx([3.0, 3.5, 4.0, 4.5, 3.5, 3.5])
    assert frame["phase"].tolist() == ["Base", "Peak", "Peak", "Peak", "Taper", "Taper"]


def test_weekly_progress_frame_rates_and_km() -> None:
    plan = build_plan()
    log = CompletionLog()
    for day in (0, 4):
        log = mark_workout(plan, log, 1, day)
    frame = weekly_progress_frame(plan, log)

    assert list(frame.columns) == ["week", "label", "completion_rate", "planned_km", "completed_km"]
    assert frame["label"].tolist()[:2] == ["Week 1", "Week 2"]
    first = frame.iloc[0]
    # six of seven beginner days are not plain rest
    assert first["completion_rate"] == 33
    assert first["planned_km"] == pytest.approx(6.0)
    assert first["completed_km"] == pytest.approx(5.0)
    assert frame.iloc[1]["completion_rate"] == 0
    assert frame.iloc[1]["planned_km"] == pytest.approx(7.0)


def test_weekly_progress_frame_full_week() -> None:
    plan = build_plan()
    log = CompletionLog(frozenset((1, idx) for idx in range(7)))
    first = weekly_progress_frame(plan, log).iloc[0]

    assert first["completion_rate"] == 100
    assert first["completed_km"] == pytest.approx(first["planned_km"])


def test_activity_on_workout_day_completes_it() -> None:
    plan = build_plan()
    # week 1 Monday: 2 km easy run
    log = apply_activities(plan, CompletionLog(), BASE_START, [Activity(BASE_START, 2100.0)])

    assert log.keys() == ["1-0"]


def test_short_activity_does_not_complete() -> None:
    plan = build_plan()
    log = apply_activities(plan, CompletionLog(), BASE_START, [Activity(BASE_START, 1500.0)])

    assert log.keys() == []


def test_activity_ignores_minutes_only_workouts() -> None:
    plan = build_plan()
    # week 1 Thursday: 30 minutes of strength
    thursday = BASE_START + timedelta(days=3)
    log = apply_activities(plan, CompletionLog(), BASE_START, [Activity(thursday, 10000.0)])

    assert log.keys() == []


def test_activities_align_plan_start_to_monday() -> None:
    plan = build_plan()
    wednesday = BASE_START + timedelta(days=2)
    # plan started midweek, so week 1 begins the following Monday
    next_monday = BASE_START + timedelta(days=7)
    existing = CompletionLog.from_keys(["3-4"])
    log = apply_activities(
        plan,
        existing,
        wednesday,
        [Activity(BASE_START, 5000.0), Activity(next_monday, 5000.0)],
    )

    assert log.keys() == ["1-0", "3-4"]
    assert existing.keys() == ["3-4"]
