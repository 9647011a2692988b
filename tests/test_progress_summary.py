from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from tutor_progress.analytics.progress import (
    MOTIVE_CONCEPT_FOUND,
    MOTIVE_ERRORS_FOUND,
    MOTIVE_GENERIC,
    build_progress_summary,
    frequent_errors,
    last_session,
    mean_interactions,
    per_concept_efficiency,
    select_recommendation,
    weekly_summary,
)
from tutor_progress.models.records import ErrorTag, ExerciseRef, ResultRecord

MADRID = ZoneInfo("Europe/Madrid")
NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _record(
    *,
    messages: int = 0,
    concept: str | None = None,
    exercise_id: str = "ex-raw",
    title: str = "",
    when: datetime | None = None,
    tags: list[str] | None = None,
    populated: bool = True,
    analysis: str | None = None,
    advice: str | None = None,
) -> ResultRecord:
    exercise = None
    if populated and concept is not None:
        exercise = ExerciseRef(id=exercise_id, title=title, concept=concept, level=1)
    return ResultRecord(
        learner_id="learner",
        exercise_id=exercise_id,
        interaction_id="interaction",
        timestamp=when,
        message_count=messages,
        ai_analysis=analysis,
        ai_advice=advice,
        error_tags=[ErrorTag(label=t, text=f"text {t}") for t in (tags or [])],
        exercise=exercise,
    )


class _Catalog:
    def __init__(self, exercises: dict[str, ExerciseRef] | None = None):
        self.exercises = exercises or {}
        self.lookups: list[str] = []

    def __call__(self, concept: str) -> ExerciseRef | None:
        self.lookups.append(concept)
        return self.exercises.get(concept)


def test_mean_interactions():
    records = [_record(messages=2), _record(messages=4), _record(messages=6)]
    assert mean_interactions(records) == 4
    assert mean_interactions([]) == 0.0


def test_per_concept_efficiency_groups_in_first_seen_order():
    records = [
        _record(messages=2, concept="loops"),
        _record(messages=3, concept="variables"),
        _record(messages=4, concept="loops"),
        _record(messages=10, concept=""),
        _record(messages=10, concept="conditionals", populated=False),
    ]
    assert per_concept_efficiency(records) == [
        {"concept": "loops", "interactions": 3.0},
        {"concept": "variables", "interactions": 3.0},
    ]


def test_weekly_summary_counts_distinct_exercises_and_concepts():
    records = [
        _record(concept="loops", exercise_id="a", when=NOW - timedelta(days=1)),
        _record(concept="loops", exercise_id="a", when=NOW - timedelta(days=2)),
        # Exercise reference not populated: falls back to the raw id.
        _record(concept="variables", exercise_id="b", when=NOW - timedelta(days=3), populated=False),
        _record(concept="functions", exercise_id="c", when=NOW - timedelta(days=8)),
        _record(concept="lists", exercise_id="d", when=None),
    ]
    summary = weekly_summary(records, NOW, MADRID)
    assert summary["completed_exercises"] == 2
    assert summary["distinct_concepts"] == 1
    assert summary["streak_days"] == 3


def test_weekly_window_lower_bound_is_exclusive():
    records = [
        _record(concept="loops", exercise_id="a", when=NOW - timedelta(days=7)),
        _record(concept="lists", exercise_id="b", when=NOW - timedelta(days=7) + timedelta(seconds=1)),
    ]
    summary = weekly_summary(records, NOW, MADRID)
    assert summary["completed_exercises"] == 1
    assert summary["distinct_concepts"] == 1


def test_weekly_summary_accepts_naive_timestamps():
    records = [_record(concept="loops", exercise_id="a", when=(NOW - timedelta(hours=3)).replace(tzinfo=None))]
    assert weekly_summary(records, NOW, MADRID)["completed_exercises"] == 1


def test_streak_falls_back_to_created_at():
    record = _record(concept="loops", when=None)
    record.created_at = NOW
    assert weekly_summary([record], NOW, MADRID)["streak_days"] == 1


def test_last_session_uses_latest_record_and_defaults():
    latest = _record(concept="loops", title="Count to ten", analysis="Good loop.", advice="Try while.")
    assert last_session([latest, _record()]) == {
        "title": "Count to ten",
        "analysis": "Good loop.",
        "advice": "Try while.",
    }
    bare = last_session([_record(populated=False)])
    assert bare == {
        "title": "Recent exercise",
        "analysis": "Analysis not available.",
        "advice": "Keep practicing.",
    }


def test_frequent_errors_top_three_with_stable_ties():
    records = (
        [_record(tags=["AC1", "AC2"]) for _ in range(5)]
        + [_record(tags=["AC3"]) for _ in range(3)]
        + [_record(tags=["AC4"]) for _ in range(9)]
    )
    top = frequent_errors(records)
    assert [e["label"] for e in top] == ["AC4", "AC1", "AC2"]
    assert [e["count"] for e in top] == [9, 5, 5]
    assert top[0]["text"] == "text AC4"


def test_frequent_errors_skip_unlabelled_tags():
    record = _record(tags=["AC1"])
    record.error_tags.append(ErrorTag(label="", text="nothing"))
    assert frequent_errors([record]) == [{"label": "AC1", "text": "text AC1", "count": 1}]


def test_recommendation_follows_real_errors_to_latest_concept():
    catalog = _Catalog({"loops": ExerciseRef(id="ex-9", title="Loop drill", concept="loops")})
    latest = _record(concept="loops")
    rec = select_recommendation([{"label": "AC13", "count": 5}], [], latest, catalog)
    assert "errors" in rec["motive"]
    assert rec == {
        "title": "Loop drill",
        "motive": MOTIVE_ERRORS_FOUND,
        "exercise_id": "ex-9",
        "concept": "loops",
    }


def test_recommendation_without_matching_exercise_is_not_an_error():
    latest = _record(concept="loops")
    rec = select_recommendation([{"label": "AC13", "count": 5}], [], latest, _Catalog())
    assert rec["exercise_id"] is None
    assert rec["concept"] == "loops"
    assert rec["title"] == "Recommendation"


def test_unknown_only_errors_fall_back_to_hardest_concept():
    catalog = _Catalog({"variables": ExerciseRef(id="ex-2", title="Swap values", concept="variables")})
    efficiency = [
        {"concept": "loops", "interactions": 3.0},
        {"concept": "variables", "interactions": 5.0},
        {"concept": "conditionals", "interactions": 5.0},
    ]
    rec = select_recommendation([{"label": "AC_UNK", "count": 5}], efficiency, _record(concept="loops"), catalog)
    assert catalog.lookups == ["variables"]
    assert rec["motive"] == MOTIVE_CONCEPT_FOUND
    assert rec["exercise_id"] == "ex-2"


def test_hardest_concept_without_exercise():
    rec = select_recommendation([], [{"concept": "lists", "interactions": 2.0}], None, _Catalog())
    assert rec == {
        "title": "Recommendation",
        "motive": "Strengthen the concept: lists.",
        "exercise_id": None,
        "concept": "lists",
    }


def test_new_learner_gets_generic_recommendation():
    rec = select_recommendation([], [], None, _Catalog())
    assert rec == {"title": "", "motive": MOTIVE_GENERIC, "exercise_id": None, "concept": ""}


def test_real_errors_but_latest_session_without_concept():
    catalog = _Catalog()
    rec = select_recommendation([{"label": "AC1", "count": 1}], [], _record(populated=False), catalog)
    assert rec["motive"] == MOTIVE_GENERIC
    assert catalog.lookups == []


def test_summary_for_empty_history_is_welcome_payload():
    summary = build_progress_summary([], _Catalog(), NOW, MADRID)
    assert summary["mean_interactions"] == 0
    assert summary["weekly_summary"] == {"completed_exercises": 0, "distinct_concepts": 0, "streak_days": 0}
    assert summary["last_session"]["title"] == "Welcome!"
    assert summary["frequent_errors"] == []
    assert summary["recommendation"]["exercise_id"] is None


def test_summary_with_history():
    catalog = _Catalog({"loops": ExerciseRef(id="ex-1", title="Loop drill", concept="loops")})
    records = [
        _record(messages=4, concept="loops", exercise_id="a", title="Sum list", when=NOW - timedelta(hours=2), tags=["AC1"]),
        _record(messages=2, concept="variables", exercise_id="b", when=NOW - timedelta(days=1)),
    ]
    summary = build_progress_summary(records, catalog, NOW, MADRID)
    assert summary["mean_interactions"] == 3
    assert summary["weekly_summary"]["completed_exercises"] == 2
    assert summary["weekly_summary"]["streak_days"] == 2
    assert summary["last_session"]["title"] == "Sum list"
    assert summary["frequent_errors"][0]["label"] == "AC1"
    assert summary["recommendation"]["exercise_id"] == "ex-1"
