"""Learner progress summary: interaction averages, weekly activity, frequent errors, next exercise."""
from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone, tzinfo

from tutor_progress.analytics.streaks import compute_streak
from tutor_progress.core.vocabulary import UNKNOWN_TAG_ID
from tutor_progress.models.records import ExerciseRef, ResultRecord

WEEK_WINDOW = timedelta(days=7)
TOP_ERRORS = 3

DEFAULT_SESSION_TITLE = "Recent exercise"
DEFAULT_ANALYSIS = "Analysis not available."
DEFAULT_ADVICE = "Keep practicing."
DEFAULT_EXERCISE_TITLE = "Recommended exercise"

MOTIVE_GENERIC = "Complete an exercise so the tutor can recommend personalised practice."
MOTIVE_ERRORS_FOUND = "Recommendation based on your recent errors."
MOTIVE_ERRORS_MISSING = "Review the concept from your last session and try a similar exercise."
MOTIVE_CONCEPT_FOUND = "Strengthen this concept based on your recent activity."
MOTIVE_CONCEPT_MISSING = "Strengthen the concept: {concept}."

ExerciseLookup = Callable[[str], ExerciseRef | None]


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _concept_of(record: ResultRecord) -> str:
    return record.exercise.concept if record.exercise is not None else ""


def mean_interactions(records: Sequence[ResultRecord]) -> float:
    if not records:
        return 0.0
    return sum(r.message_count or 0 for r in records) / len(records)


def per_concept_efficiency(records: Sequence[ResultRecord]) -> list[dict]:
    totals: dict[str, list[int]] = {}
    for record in records:
        concept = _concept_of(record)
        if not concept:
            continue
        bucket = totals.setdefault(concept, [0, 0])
        bucket[0] += record.message_count or 0
        bucket[1] += 1
    return [
        {"concept": concept, "interactions": total / count}
        for concept, (total, count) in totals.items()
    ]


def weekly_summary(records: Sequence[ResultRecord], now: datetime, tz: tzinfo) -> dict:
    week_start = _as_aware(now) - WEEK_WINDOW
    in_week = [
        r for r in records
        if r.timestamp is not None and _as_aware(r.timestamp) > week_start
    ]
    concepts = {c for c in (_concept_of(r) for r in in_week) if c}
    exercises = {key for key in (r.exercise_key() for r in in_week) if key}
    return {
        "completed_exercises": len(exercises),
        "distinct_concepts": len(concepts),
        "streak_days": compute_streak((r.activity_time() for r in records), tz),
    }


def last_session(records: Sequence[ResultRecord]) -> dict:
    latest = records[0]
    title = latest.exercise.title if latest.exercise is not None else ""
    return {
        "title": title or DEFAULT_SESSION_TITLE,
        "analysis": latest.ai_analysis or DEFAULT_ANALYSIS,
        "advice": latest.ai_advice or DEFAULT_ADVICE,
    }


def frequent_errors(records: Sequence[ResultRecord], limit: int = TOP_ERRORS) -> list[dict]:
    counts: dict[str, dict] = {}
    for record in records:
        for tag in record.error_tags:
            if not tag.label:
                continue
            entry = counts.setdefault(tag.label, {"label": tag.label, "text": tag.text or tag.label, "count": 0})
            entry["count"] += 1
    # sorted() is stable, so ties keep first-seen order.
    return sorted(counts.values(), key=lambda item: item["count"], reverse=True)[:limit]


def generic_recommendation() -> dict:
    return {"title": "", "motive": MOTIVE_GENERIC, "exercise_id": None, "concept": ""}


def _recommend_for_concept(concept: str, find_exercise: ExerciseLookup, found_motive: str, missing_motive: str) -> dict:
    exercise = find_exercise(concept)
    if exercise is not None:
        return {
            "title": exercise.title or DEFAULT_EXERCISE_TITLE,
            "motive": found_motive,
            "exercise_id": exercise.id,
            "concept": exercise.concept or concept,
        }
    return {
        "title": "Recommendation",
        "motive": missing_motive,
        "exercise_id": None,
        "concept": concept,
    }


def select_recommendation(
    top_errors: Sequence[dict],
    efficiency: Sequence[dict],
    latest: ResultRecord | None,
    find_exercise: ExerciseLookup,
) -> dict:
    """
    Pick the next exercise.

    Real (non-sentinel) errors point at the concept of the latest session;
    otherwise the concept with the highest mean interaction count wins. A
    missing exercise for the target concept is a normal outcome.
    """
    has_real_errors = any(e.get("label") and e.get("label") != UNKNOWN_TAG_ID for e in top_errors)
    if has_real_errors:
        concept = _concept_of(latest) if latest is not None else ""
        if not concept:
            return generic_recommendation()
        return _recommend_for_concept(concept, find_exercise, MOTIVE_ERRORS_FOUND, MOTIVE_ERRORS_MISSING)

    if efficiency:
        # max() keeps the first maximal entry on ties.
        hardest = max(efficiency, key=lambda item: item["interactions"])
        concept = hardest["concept"]
        return _recommend_for_concept(
            concept,
            find_exercise,
            MOTIVE_CONCEPT_FOUND,
            MOTIVE_CONCEPT_MISSING.format(concept=concept),
        )

    return generic_recommendation()


def welcome_summary() -> dict:
    return {
        "mean_interactions": 0,
        "per_concept_efficiency": [],
        "weekly_summary": {"completed_exercises": 0, "distinct_concepts": 0, "streak_days": 0},
        "last_session": {
            "title": "Welcome!",
            "analysis": "You haven't completed any exercise yet.",
            "advice": "Start one to see your progress here.",
        },
        "frequent_errors": [],
        "recommendation": generic_recommendation(),
    }


def build_progress_summary(
    records: Sequence[ResultRecord],
    find_exercise: ExerciseLookup,
    now: datetime,
    tz: tzinfo,
) -> dict:
    """Summarise a learner's results; ``records`` must be sorted newest first."""
    if not records:
        return welcome_summary()
    efficiency = per_concept_efficiency(records)
    top_errors = frequent_errors(records)
    return {
        "mean_interactions": mean_interactions(records),
        "per_concept_efficiency": efficiency,
        "weekly_summary": weekly_summary(records, now, tz),
        "last_session": last_session(records),
        "frequent_errors": top_errors,
        "recommendation": select_recommendation(top_errors, efficiency, records[0], find_exercise),
    }
