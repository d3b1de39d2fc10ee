from datetime import date, timedelta
from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from plan_calendar import align_to_monday, build_calendar_events, workout_date
from planner_core import PlanRequest, generate_training_plan


BASE_START = date(2025, 1, 6)  # Monday


def build_plan(level: str = "beginner"):
    request = PlanRequest(
        target_distance="10k",
        race_date=BASE_START + timedelta(weeks=8),
        fitness_level=level,
        current_distance_km=5.0,
        recent_time="00:27:30",
    )
    return generate_training_plan(request, today=BASE_START)


@pytest.mark.parametrize(
    "start, expected",
    [
        (date(2025, 1, 6), date(2025, 1, 6)),
        (date(2025, 1, 7), date(2025, 1, 13)),
        (date(2025, 1, 11), date(2025, 1, 13)),
        (date(2025, 1, 12), date(2025, 1, 13)),
    ],
)
def test_align_to_monday(start, expected) -> None:
    assert align_to_monday(start) == expected


def test_workout_date_offsets_by_week_and_day() -> None:
    week_start = date(2025, 1, 13)

    assert workout_date(week_start, 1, "Monday") == week_start
    assert workout_date(week_start, 2, "Friday") == date(2025, 1, 24)
    assert workout_date(week_start, 3, 6) == date(2025, 2, 2)
    assert workout_date(week_start, 1, "Someday") == week_start


def test_plain_rest_days_are_skipped_by_default() -> None:
    plan = build_plan()
    events = build_calendar_events(plan, BASE_START)
    all_events = build_calendar_events(plan, BASE_START, include_rest=True)

    # beginner template has one plain "Rest" day per week
    assert len(events) == plan.total_weeks * 6
    assert len(all_events) == plan.total_weeks * 7
    assert all(event.date.weekday() != 5 for event in events)


def test_event_content_for_long_run() -> None:
    plan = build_plan()
    events = build_calendar_events(plan, date(2025, 1, 8))
    long_run = next(e for e in events if e.week_number == 3 and e.day_index == 4)

    assert long_run.date == date(2025, 1, 31)
    assert long_run.summary == "Long Run"
    assert long_run.color_id == "11"
    assert long_run.description.splitlines()[0] == "Week 3 - Peak Phase"
    assert "Distance: 7 km" in long_run.description


def test_rest_type_events_use_rest_summary() -> None:
    events = build_calendar_events(build_plan("intermediate"), BASE_START)
    by_day = {(e.week_number, e.day_index): e for e in events}

    assert by_day[(1, 2)].summary == "Rest Day"  # Rest / Strength
    assert by_day[(1, 4)].summary == "Rest Day"  # Rest / Recovery
    assert by_day[(1, 4)].color_id == "8"
    assert by_day[(1, 1)].summary == "Intervals"


def test_event_payload_is_all_day() -> None:
    event = build_calendar_events(build_plan(), BASE_START)[0]
    payload = event.to_payload()

    assert payload["start"] == {"date": "2025-01-06"}
    assert payload["end"] == {"date": "2025-01-06"}
    assert payload["colorId"] == "2"
    assert payload["reminders"]["overrides"] == [{"method": "popup", "minutes": 60}]
