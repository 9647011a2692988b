from pydantic import BaseModel, Field


class ConceptEfficiency(BaseModel):
    concept: str
    interactions: float


class WeeklySummary(BaseModel):
    completed_exercises: int
    distinct_concepts: int
    streak_days: int


class LastSession(BaseModel):
    title: str
    analysis: str
    advice: str


class FrequentError(BaseModel):
    label: str
    text: str
    count: int


class Recommendation(BaseModel):
    title: str
    motive: str
    exercise_id: str | None = None
    concept: str


class ProgressSummaryResponse(BaseModel):
    mean_interactions: float
    per_concept_efficiency: list[ConceptEfficiency] = Field(default_factory=list)
    weekly_summary: WeeklySummary
    last_session: LastSession
    frequent_errors: list[FrequentError] = Field(default_factory=list)
    recommendation: Recommendation
