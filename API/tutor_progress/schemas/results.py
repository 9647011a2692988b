from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class FinalizeResultRequest(BaseModel):
    # Presence and format are checked by the route so both surface as 400.
    learner_id: str | None = None
    exercise_id: str | None = None
    interaction_id: str | None = None
    solved_first_try: bool = False


class SavedResultSummary(BaseModel):
    message_count: int
    has_analysis: bool
    has_advice: bool
    error_labels: list[str]


class FinalizeResultResponse(BaseModel):
    message: str
    classifier_status: Literal["ok", "fail_timeout", "fail_invalid_json", "skipped"]
    saved: SavedResultSummary
