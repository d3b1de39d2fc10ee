from datetime import date, timedelta
from typing import List

import altair as alt
import pandas as pd
import streamlit as st

from app_config import get_settings
from logging_config import get_logger, setup_logging
from plan_calendar import build_calendar_events
from plan_tracking import (
    Activity,
    CompletionLog,
    PlanStats,
    apply_activities,
    calculate_pace,
    completion_key,
    mark_workout,
    plan_to_frame,
    summarize_progress,
    weekly_long_run_frame,
    weekly_progress_frame,
)
from planner_core import (
    DISTANCE_CONFIGS,
    FitnessLevel,
    PlanRequest,
    TrainingPlan,
    format_pace,
    generate_training_plan,
)

settings = get_settings()
setup_logging(settings.log_level)
logger = get_logger(__name__)

PHASE_COLORS = {"Base": "#2ca02c", "Peak": "#d62728", "Taper": "#1f77b4"}


def _init_state() -> None:
    st.session_state.setdefault("plan", None)
    st.session_state.setdefault("completed_keys", [])


def _completion_log() -> CompletionLog:
    return CompletionLog.from_keys(st.session_state.completed_keys)


def render_paces(plan: TrainingPlan) -> None:
    st.subheader("Training paces")
    paces = plan.paces.formatted()
    col1, col2, col3, col4, col5 = st.columns(5)
    col1.metric("Base", f"{format_pace(plan.base_pace_sec)}/km")
    col2.metric("Easy", f"{paces['easy']}/km")
    col3.metric("Long run", f"{paces['long_run']}/km")
    col4.metric("Intervals", f"{paces['interval']}/km")
    col5.metric("Tempo", f"{paces['tempo']}/km")


def render_progress(stats: PlanStats, total_weeks: int) -> None:
    st.subheader("Progress")
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Current week", f"{stats.current_week} / {total_weeks}")
    col2.metric("Runs this week", f"{stats.completed_runs_this_week} / {stats.runs_this_week}")
    col3.metric("Distance done", f"{stats.total_distance_km:.1f} km")
    col4.metric("Active time", stats.active_hours, stats.avg_pace)


def render_long_run_chart(plan: TrainingPlan) -> None:
    chart_df = weekly_long_run_frame(plan)
    chart = (
        alt.Chart(chart_df)
        .mark_line(point=True, color="#888888")
        .encode(
            x=alt.X("week:O", axis=alt.Axis(title="Week")),
            y=alt.Y("long_run_km:Q", axis=alt.Axis(title="Long run (km)")),
            tooltip=["week", "phase", alt.Tooltip("long_run_km:Q", format=".1f")],
        )
    )
    points = chart.mark_point(filled=True, size=80).encode(
        color=alt.Color(
            "phase:N",
            scale=alt.Scale(domain=list(PHASE_COLORS), range=list(PHASE_COLORS.values())),
            legend=alt.Legend(title=""),
        )
    )
    st.altair_chart((chart + points).properties(height=260), use_container_width=True)


def render_weekly_progress_chart(plan: TrainingPlan) -> None:
    progress_df = weekly_progress_frame(plan, _completion_log())
    km_df = progress_df.melt(
        id_vars=["week"], value_vars=["planned_km", "completed_km"], var_name="series", value_name="km"
    )
    km_chart = (
        alt.Chart(km_df)
        .mark_line(point=True)
        .encode(
            x=alt.X("week:O", axis=alt.Axis(title="Week")),
            y=alt.Y("km:Q", axis=alt.Axis(title="Distance (km)")),
            color=alt.Color("series:N", legend=alt.Legend(title="")),
            tooltip=["week", "series", alt.Tooltip("km:Q", format=".1f")],
        )
    )
    rate_chart = (
        alt.Chart(progress_df)
        .mark_bar(color="#2ca02c")
        .encode(
            x=alt.X("week:O", axis=alt.Axis(title="Week")),
            y=alt.Y("completion_rate:Q", axis=alt.Axis(title="Completed (%)"), scale=alt.Scale(domain=[0, 100])),
            tooltip=["label", "completion_rate"],
        )
    )
    col1, col2 = st.columns(2)
    col1.altair_chart(km_chart.properties(height=240), use_container_width=True)
    col2.altair_chart(rate_chart.properties(height=240), use_container_width=True)


def render_week(plan: TrainingPlan, week_number: int) -> None:
    week = plan.week(week_number)
    log = _completion_log()
    st.markdown(f"### Week {week.week_number} · {week.phase.value}")
    for idx, workout in enumerate(week.workouts):
        key = completion_key(week.week_number, idx)
        checked = st.checkbox(
            f"{workout.day} | {workout.type.value} | {workout.distance_label} | {workout.intensity}",
            value=log.is_completed(week.week_number, idx),
            key=f"done_{key}",
        )
        if checked != log.is_completed(week.week_number, idx):
            log = mark_workout(plan, log, week.week_number, idx, checked)
            st.session_state.completed_keys = log.keys()


def render_activity_import(plan: TrainingPlan) -> None:
    with st.expander("Log a run"):
        start = st.date_input("Plan start", value=plan.generated_on, key="activity_plan_start")
        run_date = st.date_input("Run date", value=date.today(), key="activity_date")
        run_km = st.number_input("Run distance (km)", min_value=0.0, value=5.0, step=0.1, key="activity_km")
        if st.button("Match to plan"):
            before = _completion_log()
            log = apply_activities(plan, before, start, [Activity(run_date, float(run_km) * 1000)])
            st.session_state.completed_keys = log.keys()
            for key in set(log.keys()) - set(before.keys()):
                st.session_state.pop(f"done_{key}", None)
            st.success(f"{len(log.completed) - len(before.completed)} workout(s) completed")


def render_pace_calculator() -> None:
    with st.expander("Pace calculator"):
        distance = st.number_input("Distance (km)", min_value=0.0, value=10.0, step=0.1)
        col1, col2, col3 = st.columns(3)
        hours = col1.number_input("Hr", min_value=0, value=0, step=1)
        minutes = col2.number_input("Min", min_value=0, max_value=59, value=55, step=1)
        seconds = col3.number_input("Sec", min_value=0, max_value=59, value=0, step=1)
        pace = calculate_pace(float(distance), int(hours), int(minutes), int(seconds))
        st.markdown(f"**Your pace:** {pace or '-'}")


st.set_page_config(page_title="Race Planner", layout="wide")
st.title("Race Planner")
st.caption("Periodized plan toward your race: Base → Peak → Taper")

_init_state()

category_options: List[str] = list(DISTANCE_CONFIGS)
level_options: List[str] = [level.value for level in FitnessLevel]

with st.sidebar:
    st.header("Inputs")
    target = st.selectbox(
        "Target race",
        category_options,
        index=category_options.index(settings.default_target_distance)
        if settings.default_target_distance in category_options
        else 0,
    )
    race_date = st.date_input("Race date", value=date.today() + timedelta(weeks=settings.default_weeks_out))
    level = st.radio(
        "Fitness level",
        level_options,
        index=level_options.index(settings.default_fitness_level)
        if settings.default_fitness_level in level_options
        else 0,
    )
    current_distance = st.number_input(
        "Recent run distance (km)", min_value=0.0, max_value=100.0, value=settings.default_distance_km, step=0.5
    )
    recent_time = st.text_input("Recent run time (HH:MM:SS)", value=settings.default_recent_time)
    generate = st.button("Generate plan")

if generate:
    request = PlanRequest(
        target_distance=target,
        race_date=race_date,
        fitness_level=level,
        current_distance_km=float(current_distance),
        recent_time=recent_time.strip(),
    )
    try:
        plan = generate_training_plan(request)
    except ValueError as err:
        st.error(str(err))
        st.session_state.plan = None
    else:
        logger.info("Plan generated: %d weeks toward %s", plan.total_weeks, plan.category)
        st.session_state.plan = plan
        st.session_state.completed_keys = []
        # checkbox widgets keep their own state across plans
        for key in [k for k in st.session_state if str(k).startswith("done_")]:
            del st.session_state[key]

plan_in_state = st.session_state.plan
if plan_in_state is not None:
    render_activity_import(plan_in_state)
    render_paces(plan_in_state)
    render_progress(summarize_progress(plan_in_state, _completion_log()), plan_in_state.total_weeks)
    st.subheader("Long-run progression")
    render_long_run_chart(plan_in_state)
    st.subheader("Weekly completion")
    render_weekly_progress_chart(plan_in_state)

    options = [f"Week {week.week_number} ({week.phase.value})" for week in plan_in_state.weeks]
    selected = st.selectbox("Week detail", options)
    render_week(plan_in_state, options.index(selected) + 1)

    with st.expander("Full schedule"):
        frame = plan_to_frame(plan_in_state, _completion_log())
        st.dataframe(frame.drop(columns=["day_index", "long_run_km"]), use_container_width=True, hide_index=True)

    with st.expander("Calendar export"):
        start = st.date_input("Plan start", value=plan_in_state.generated_on, key="calendar_start")
        events = build_calendar_events(plan_in_state, start)
        events_df = pd.DataFrame(
            [{"date": event.date.isoformat(), "summary": event.summary, "colorId": event.color_id} for event in events]
        )
        st.dataframe(events_df, use_container_width=True, hide_index=True)
else:
    st.info("Fill in the sidebar and press 'Generate plan'.")

render_pace_calculator()
