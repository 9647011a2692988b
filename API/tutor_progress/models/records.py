from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ErrorTag(BaseModel):
    label: str
    text: str


class ExerciseRef(BaseModel):
    id: str
    title: str = ""
    concept: str = ""
    level: str | int | None = None


class ConversationMessage(BaseModel):
    role: str
    content: str = ""


class ResultRecord(BaseModel):
    """One finalized tutoring session. Written once, read by the progress summary."""

    id: str | None = None
    learner_id: str
    exercise_id: str
    interaction_id: str
    timestamp: datetime | None = None
    created_at: datetime | None = None
    message_count: int = Field(default=0, ge=0)
    solved_first_try: bool = False
    ai_analysis: str | None = None
    ai_advice: str | None = None
    error_tags: list[ErrorTag] = Field(default_factory=list)
    # Populated exercise reference; only set by reads that resolve it.
    exercise: ExerciseRef | None = None

    def activity_time(self) -> datetime | None:
        return self.timestamp or self.created_at

    def exercise_key(self) -> str | None:
        if self.exercise is not None and self.exercise.id:
            return self.exercise.id
        return self.exercise_id or None

    def storage_document(self) -> dict:
        return self.model_dump(exclude={"id", "exercise"})
