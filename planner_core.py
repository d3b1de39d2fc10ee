#!/usr/bin/env python3
"""
planner_core
------------
Race-goal training plan generator.

Main features:
- Base pace from a recent performance, training zone paces via fixed offsets
- Weeks until race day split into Base / Peak / Taper phases
- Long-run distance carried week to week (capped, cut by 30% on taper weeks)
- Level-specific weekly templates (beginner / intermediate / advanced)
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


MIN_PLAN_WEEKS = 4
BASE_PHASE_FRACTION = 0.3
TAPER_WEEKS = 2
TAPER_LONG_RUN_FACTOR = 0.7

DEFAULT_BASE_PACE_SEC = 360.0
DEFAULT_CURRENT_DISTANCE_KM = 5.0
DEFAULT_RECENT_TIME = "00:30:00"
DEFAULT_FITNESS_LEVEL = "beginner"
DEFAULT_DISTANCE_CATEGORY = "5k"

LEAD_TIME_MESSAGE = "Please pick a race date at least 4 weeks from now."

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


# -----------------------------
# Errors
# -----------------------------


class InvalidScheduleError(ValueError):
    """No sound schedule fits between the generation date and race day."""


class InsufficientLeadTimeError(InvalidScheduleError):
    def __init__(self, total_weeks: int, message: str = LEAD_TIME_MESSAGE):
        super().__init__(message)
        self.total_weeks = total_weeks


# -----------------------------
# Data model
# -----------------------------


class Phase(str, Enum):
    BASE = "Base"
    PEAK = "Peak"
    TAPER = "Taper"


class FitnessLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "FitnessLevel":
        value = (raw or "").strip().lower()
        if not value:
            return cls.BEGINNER
        for level in cls:
            if level.value == value:
                return level
        logger.info("Unknown fitness level %r, using the advanced template", raw)
        return cls.ADVANCED


class WorkoutType(str, Enum):
    REST = "Rest"
    EASY_RUN = "Easy Run"
    LONG_RUN = "Long Run"
    INTERVALS = "Intervals"
    LIGHT_INTERVALS = "Light Intervals"
    TEMPO_RUN = "Tempo Run"
    STRENGTH = "Rest / Strength"
    REST_RECOVERY = "Rest / Recovery"
    REST_CROSS_TRAIN = "Rest / Cross Train"

    @property
    def is_rest(self) -> bool:
        return self in (WorkoutType.REST, WorkoutType.REST_RECOVERY, WorkoutType.REST_CROSS_TRAIN)

    @property
    def is_run(self) -> bool:
        name = self.value.lower()
        return "run" in name or "interval" in name or "tempo" in name


class DistanceUnit(str, Enum):
    KILOMETERS = "km"
    MINUTES = "mins"
    NONE = "-"


_DISTANCE_LABEL_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(km|mins)\s*$")


@dataclass(frozen=True)
class Distance:
    amount: float = 0.0
    unit: DistanceUnit = DistanceUnit.NONE

    @classmethod
    def km(cls, amount: float) -> "Distance":
        return cls(amount, DistanceUnit.KILOMETERS)

    @classmethod
    def minutes(cls, amount: float) -> "Distance":
        return cls(amount, DistanceUnit.MINUTES)

    @classmethod
    def none(cls) -> "Distance":
        return cls()

    @classmethod
    def parse(cls, label: Optional[str]) -> "Distance":
        """Read back a stored label such as "5 km", "45 mins" or "-"."""
        match = _DISTANCE_LABEL_RE.match(label or "")
        if not match:
            return cls.none()
        return cls(float(match.group(1)), DistanceUnit(match.group(2)))

    @property
    def label(self) -> str:
        if self.unit is DistanceUnit.NONE:
            return "-"
        amount = float(self.amount)
        text = str(int(amount)) if amount.is_integer() else f"{amount:g}"
        return f"{text} {self.unit.value}"


@dataclass(frozen=True)
class Workout:
    day: str
    type: WorkoutType
    distance: Distance
    intensity: str

    @property
    def distance_label(self) -> str:
        return self.distance.label

    def to_dict(self) -> Dict[str, str]:
        return {
            "day": self.day,
            "type": self.type.value,
            "distance": self.distance.label,
            "intensity": self.intensity,
        }


@dataclass(frozen=True)
class WeekPlan:
    week_number: int
    phase: Phase
    long_run_km: float
    workouts: Tuple[Workout, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weekNumber": self.week_number,
            "phase": self.phase.value,
            "workouts": [workout.to_dict() for workout in self.workouts],
        }


@dataclass(frozen=True)
class DistanceCategoryConfig:
    start_km: float
    max_km: float
    weekly_increment_km: float


DISTANCE_CONFIGS: Dict[str, DistanceCategoryConfig] = {
    "5k": DistanceCategoryConfig(start_km=3.0, max_km=5.0, weekly_increment_km=0.5),
    "10k": DistanceCategoryConfig(start_km=4.0, max_km=10.0, weekly_increment_km=1.0),
    "half marathon": DistanceCategoryConfig(start_km=8.0, max_km=21.0, weekly_increment_km=1.5),
    "marathon": DistanceCategoryConfig(start_km=12.0, max_km=42.0, weekly_increment_km=2.0),
}


@dataclass(frozen=True)
class PaceSet:
    easy: float
    long_run: float
    interval: float
    tempo: float

    def formatted(self) -> Dict[str, str]:
        return {
            "easy": format_pace(self.easy),
            "long_run": format_pace(self.long_run),
            "interval": format_pace(self.interval),
            "tempo": format_pace(self.tempo),
        }


# Seconds per km added to the base pace (positive = slower).
PACE_OFFSETS: Dict[str, float] = {
    "easy": 45.0,
    "long_run": 75.0,
    "interval": -30.0,
    "tempo": -15.0,
}


@dataclass(frozen=True)
class PlanRequest:
    target_distance: str
    race_date: date
    fitness_level: str = DEFAULT_FITNESS_LEVEL
    current_distance_km: float = DEFAULT_CURRENT_DISTANCE_KM
    recent_time: Union[str, int] = DEFAULT_RECENT_TIME

    @property
    def recent_time_seconds(self) -> int:
        return parse_duration(self.recent_time)


@dataclass(frozen=True)
class TrainingPlan:
    request: PlanRequest
    generated_on: date
    category: str
    config: DistanceCategoryConfig
    base_pace_sec: float
    paces: PaceSet
    weeks: Tuple[WeekPlan, ...]

    @property
    def total_weeks(self) -> int:
        return len(self.weeks)

    def __len__(self) -> int:
        return len(self.weeks)

    def __iter__(self) -> Iterator[WeekPlan]:
        return iter(self.weeks)

    def week(self, week_number: int) -> WeekPlan:
        return self.weeks[week_number - 1]

    def to_dict(self) -> List[Dict[str, Any]]:
        return [week.to_dict() for week in self.weeks]


# -----------------------------
# Input helpers
# -----------------------------


def parse_duration(raw: Union[str, int, float, None]) -> int:
    """
    Convert "hh:mm:ss" or "mm:ss" into seconds. Anything else yields 0 so the
    caller falls back to the default pace instead of failing.
    """
    if raw is None:
        return 0
    if isinstance(raw, (int, float)):
        return int(raw) if math.isfinite(raw) and raw > 0 else 0
    parts = raw.strip().split(":")
    # isdigit alone accepts superscripts and other digits int() rejects
    if not all(part.strip().isascii() and part.strip().isdigit() for part in parts):
        return 0
    values = [int(part) for part in parts]
    if len(values) == 3:
        hours, minutes, seconds = values
        return hours * 3600 + minutes * 60 + seconds
    if len(values) == 2:
        minutes, seconds = values
        return minutes * 60 + seconds
    return 0


def normalize_category(raw: Optional[str]) -> str:
    text = (raw or "").strip().lower().replace("-", " ").replace("_", " ")
    return " ".join(text.split())


def resolve_distance_config(category: Optional[str]) -> Tuple[str, DistanceCategoryConfig]:
    key = normalize_category(category)
    config = DISTANCE_CONFIGS.get(key)
    if config is None:
        logger.info("Unknown target distance %r, falling back to %s", category, DEFAULT_DISTANCE_CATEGORY)
        key = DEFAULT_DISTANCE_CATEGORY
        config = DISTANCE_CONFIGS[key]
    return key, config


def _coerce_float(value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(result):
        return 0.0
    return result


def _coerce_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    if not value:
        raise ValueError("raceDate is required")
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as err:
        raise ValueError(f"Invalid race date: {value!r}") from err


def parse_request(payload: Dict[str, Any]) -> PlanRequest:
    """Build a PlanRequest from the camelCase payload sent by the client."""
    target = payload.get("targetDistanceCategory", payload.get("distance"))
    level = payload.get("fitnessLevel", payload.get("level"))
    current = payload.get("currentDistanceKm", payload.get("currentDistance"))
    recent = payload.get("recentTime", payload.get("recentTimeSeconds"))
    return PlanRequest(
        target_distance=str(target or ""),
        race_date=_coerce_date(payload.get("raceDate")),
        fitness_level=level or DEFAULT_FITNESS_LEVEL,
        current_distance_km=_coerce_float(current, DEFAULT_CURRENT_DISTANCE_KM),
        recent_time=recent if recent is not None else DEFAULT_RECENT_TIME,
    )


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# -----------------------------
# Pace model
# -----------------------------


def compute_base_pace(current_distance_km: float, recent_time_seconds: float) -> float:
    if recent_time_seconds <= 0:
        return DEFAULT_BASE_PACE_SEC
    distance = current_distance_km if 0 < current_distance_km < math.inf else DEFAULT_CURRENT_DISTANCE_KM
    return recent_time_seconds / distance


def derive_zone_paces(base_pace_sec: float) -> PaceSet:
    return PaceSet(
        easy=base_pace_sec + PACE_OFFSETS["easy"],
        long_run=base_pace_sec + PACE_OFFSETS["long_run"],
        interval=base_pace_sec + PACE_OFFSETS["interval"],
        tempo=base_pace_sec + PACE_OFFSETS["tempo"],
    )


def format_pace(seconds: float) -> str:
    if not math.isfinite(seconds) or seconds < 0:
        seconds = 0
    # round first so 359.6 reads 6:00, not 5:60
    minutes, secs = divmod(round_half_up(seconds), 60)
    return f"{minutes}:{secs:02d}"


# -----------------------------
# Periodization
# -----------------------------


def compute_total_weeks(today: date, race_date: date) -> int:
    days = abs((race_date - today).days)
    total_weeks = math.ceil(days / 7)
    if total_weeks < MIN_PLAN_WEEKS:
        logger.warning("Race on %s is only %d week(s) away from %s", race_date, total_weeks, today)
        raise InsufficientLeadTimeError(total_weeks)
    return total_weeks


def assign_phase(week_number: int, total_weeks: int) -> Phase:
    # Base is checked first, taper covers the final TAPER_WEEKS weeks.
    if week_number <= total_weeks * BASE_PHASE_FRACTION:
        return Phase.BASE
    if week_number > total_weeks - TAPER_WEEKS:
        return Phase.TAPER
    return Phase.PEAK


def initial_long_run_km(current_distance_km: float, config: DistanceCategoryConfig) -> float:
    if not math.isfinite(current_distance_km):
        current_distance_km = 0.0
    # a runner already past the category cap starts at the cap
    return min(max(current_distance_km or config.start_km, config.start_km), config.max_km)


def advance_long_run(state_km: float, phase: Phase, config: DistanceCategoryConfig) -> Tuple[float, float]:
    """
    One step of the long-run progression.

    Returns (long run for this week, state carried into next week). Taper weeks
    run 70% of the state and leave it untouched.
    """
    if phase is Phase.TAPER:
        return state_km * TAPER_LONG_RUN_FACTOR, state_km
    return state_km, min(state_km + config.weekly_increment_km, config.max_km)


def long_run_progression(
    total_weeks: int,
    config: DistanceCategoryConfig,
    current_distance_km: float,
) -> List[Tuple[Phase, float]]:
    state = initial_long_run_km(current_distance_km, config)
    weeks: List[Tuple[Phase, float]] = []
    for week_number in range(1, total_weeks + 1):
        phase = assign_phase(week_number, total_weeks)
        long_run_km, state = advance_long_run(state, phase, config)
        weeks.append((phase, long_run_km))
    return weeks


def speed_work_type(phase: Phase) -> WorkoutType:
    if phase is Phase.BASE:
        return WorkoutType.INTERVALS
    if phase is Phase.TAPER:
        return WorkoutType.LIGHT_INTERVALS
    return WorkoutType.TEMPO_RUN


def speed_work_intensity(workout_type: WorkoutType, paces: PaceSet) -> str:
    if "Intervals" in workout_type.value:
        return f"400m repeats @ {format_pace(paces.interval)}/km"
    return f"Steady effort @ {format_pace(paces.tempo)}/km"


# -----------------------------
# Weekly templates
# -----------------------------


@dataclass(frozen=True)
class DaySlot:
    kind: str
    fraction: float = 0.0
    minutes: int = 0
    note: str = ""


WEEKLY_TEMPLATES: Dict[FitnessLevel, Tuple[DaySlot, ...]] = {
    # 3 running days: Mon, Wed, Fri
    FitnessLevel.BEGINNER: (
        DaySlot("easy", 0.5),
        DaySlot("cross_train", note="Recovery or Light Activity"),
        DaySlot("speed", 0.4),
        DaySlot("strength", minutes=30, note="Core & Mobility Work"),
        DaySlot("long", 1.0),
        DaySlot("rest", note="Complete Rest"),
        DaySlot("cross_train", note="Recovery or Light Cycle/Walk"),
    ),
    # 4 running days: Mon, Tue, Thu, Sat
    FitnessLevel.INTERMEDIATE: (
        DaySlot("easy", 0.4),
        DaySlot("speed", 0.4),
        DaySlot("strength", minutes=45, note="Leg Day (Squats, Lunges, Calf Raises)"),
        DaySlot("easy", 0.5),
        DaySlot("recovery_rest", note="Stretching or Light Mobility"),
        DaySlot("long", 1.0),
        DaySlot("cross_train", note="Recovery or Light Cycle/Swim"),
    ),
    # 5 running days: Mon, Tue, Wed, Thu, Sat
    FitnessLevel.ADVANCED: (
        DaySlot("easy", 0.4),
        DaySlot("speed", 0.5),
        DaySlot("recovery", 0.4),
        DaySlot("tempo", 0.5),
        DaySlot("strength", minutes=45, note="Strength & Mobility"),
        DaySlot("long", 1.2),
        DaySlot("cross_train", note="Active Recovery"),
    ),
}

_REST_KINDS = {
    "rest": WorkoutType.REST,
    "recovery_rest": WorkoutType.REST_RECOVERY,
    "cross_train": WorkoutType.REST_CROSS_TRAIN,
}


def build_day_workout(
    day: str,
    slot: DaySlot,
    phase: Phase,
    paces: PaceSet,
    long_run_km: float,
) -> Workout:
    is_taper = phase is Phase.TAPER
    easy_label = f"Easy pace @ {format_pace(paces.easy)}/km"
    distance = Distance.km(round_half_up(long_run_km * slot.fraction))

    if slot.kind in _REST_KINDS:
        return Workout(day, _REST_KINDS[slot.kind], Distance.none(), slot.note)
    if slot.kind == "strength":
        return Workout(day, WorkoutType.STRENGTH, Distance.minutes(slot.minutes), slot.note)
    if slot.kind == "long":
        return Workout(
            day,
            WorkoutType.LONG_RUN,
            distance,
            f"Conversational pace @ {format_pace(paces.long_run)}/km",
        )
    if slot.kind == "recovery":
        return Workout(day, WorkoutType.EASY_RUN, distance, f"Recovery run @ {format_pace(paces.easy)}/km")
    if is_taper and slot.kind in ("speed", "tempo"):
        return Workout(day, WorkoutType.EASY_RUN, distance, easy_label)
    if slot.kind == "speed":
        kind = speed_work_type(phase)
        return Workout(day, kind, distance, speed_work_intensity(kind, paces))
    if slot.kind == "tempo":
        return Workout(day, WorkoutType.TEMPO_RUN, distance, speed_work_intensity(WorkoutType.TEMPO_RUN, paces))
    return Workout(day, WorkoutType.EASY_RUN, distance, easy_label)


def build_week_workouts(
    fitness_level: Union[FitnessLevel, str],
    phase: Phase,
    paces: PaceSet,
    long_run_km: float,
) -> Tuple[Workout, ...]:
    if not isinstance(fitness_level, FitnessLevel):
        fitness_level = FitnessLevel.parse(fitness_level)
    template = WEEKLY_TEMPLATES[fitness_level]
    return tuple(
        build_day_workout(day, slot, phase, paces, long_run_km)
        for day, slot in zip(WEEKDAY_NAMES, template)
    )


# -----------------------------
# Generator
# -----------------------------


def generate_training_plan(request: PlanRequest, *, today: Optional[date] = None) -> TrainingPlan:
    today = today or date.today()
    if request.race_date < today:
        logger.warning("Race date %s is in the past (today %s)", request.race_date, today)
        raise InsufficientLeadTimeError(0)
    total_weeks = compute_total_weeks(today, request.race_date)

    category, config = resolve_distance_config(request.target_distance)
    level = FitnessLevel.parse(request.fitness_level)
    recent_seconds = request.recent_time_seconds
    if recent_seconds <= 0:
        logger.info("No usable recent time %r, using default base pace", request.recent_time)
    base_pace = compute_base_pace(request.current_distance_km, recent_seconds)
    paces = derive_zone_paces(base_pace)

    weeks: List[WeekPlan] = []
    for week_number, (phase, long_run_km) in enumerate(
        long_run_progression(total_weeks, config, request.current_distance_km), start=1
    ):
        workouts = build_week_workouts(level, phase, paces, long_run_km)
        weeks.append(WeekPlan(week_number, phase, long_run_km, workouts))

    logger.debug(
        "Generated %d-week %s plan (%s, base pace %s/km)",
        total_weeks,
        category,
        level.value,
        format_pace(base_pace),
        extra={"ctx_weeks": total_weeks, "ctx_category": category, "ctx_level": level.value},
    )
    return TrainingPlan(
        request=request,
        generated_on=today,
        category=category,
        config=config,
        base_pace_sec=base_pace,
        paces=paces,
        weeks=tuple(weeks),
    )


def generate_plan_payload(payload: Dict[str, Any], *, today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Parse a client payload and return the JSON-ready schedule."""
    request = parse_request(payload)
    return generate_training_plan(request, today=today).to_dict()


__all__ = [
    "DISTANCE_CONFIGS",
    "Distance",
    "DistanceCategoryConfig",
    "DistanceUnit",
    "FitnessLevel",
    "InsufficientLeadTimeError",
    "InvalidScheduleError",
    "PaceSet",
    "Phase",
    "PlanRequest",
    "TrainingPlan",
    "WEEKDAY_NAMES",
    "WeekPlan",
    "Workout",
    "WorkoutType",
    "assign_phase",
    "build_week_workouts",
    "compute_base_pace",
    "compute_total_weeks",
    "derive_zone_paces",
    "format_pace",
    "generate_plan_payload",
    "generate_training_plan",
    "long_run_progression",
    "parse_duration",
    "parse_request",
]
