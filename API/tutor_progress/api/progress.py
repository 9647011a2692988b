from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from tutor_progress.analytics.progress import build_progress_summary
from tutor_progress.api.deps import require_object_id, storage_call
from tutor_progress.core.logging import DOMAIN_PROGRESS, get_domain_logger
from tutor_progress.core.settings import settings
from tutor_progress.schemas.progress import ProgressSummaryResponse
from tutor_progress.storage.store import ProgressStore, get_progress_store

router = APIRouter(prefix="/progress", tags=["progress"])
logger = get_domain_logger(__name__, DOMAIN_PROGRESS)


@router.get("/{learner_id}", response_model=ProgressSummaryResponse)
async def get_progress(learner_id: str, store: ProgressStore = Depends(get_progress_store)):
    require_object_id(learner_id, "Invalid learner ID.")
    records = storage_call("list_results", store.list_results, learner_id)

    def find_exercise(concept: str):
        return storage_call("find_exercise_by_concept", store.find_exercise_by_concept, concept)

    summary = build_progress_summary(
        records,
        find_exercise,
        now=datetime.now(timezone.utc),
        tz=settings.timezone,
    )
    logger.info(
        "Progress summary built | learner_id=%s results=%d streak_days=%d",
        learner_id,
        len(records),
        summary["weekly_summary"]["streak_days"],
    )
    return summary
