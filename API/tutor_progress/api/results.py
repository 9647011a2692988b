from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from tutor_progress.api.deps import require_object_id, storage_call
from tutor_progress.classifier.client import BaseClassifierClient, get_classifier_client
from tutor_progress.classifier.pipeline import classify_conversation
from tutor_progress.core.errors import ClientInputError, NotFoundError
from tutor_progress.core.logging import DOMAIN_API, get_domain_logger
from tutor_progress.core.vocabulary import ACVocabulary, get_vocabulary
from tutor_progress.models.records import ResultRecord
from tutor_progress.schemas.results import FinalizeResultRequest, FinalizeResultResponse
from tutor_progress.storage.store import ProgressStore, get_progress_store

router = APIRouter(prefix="/results", tags=["results"])
logger = get_domain_logger(__name__, DOMAIN_API)


@router.get("/completed/{learner_id}", response_model=list[str])
async def completed_exercises(learner_id: str, store: ProgressStore = Depends(get_progress_store)):
    require_object_id(learner_id, "Invalid learner ID.")
    return storage_call("completed_exercise_ids", store.completed_exercise_ids, learner_id)


@router.post("/finalize", response_model=FinalizeResultResponse)
async def finalize_result(
    payload: FinalizeResultRequest,
    store: ProgressStore = Depends(get_progress_store),
    classifier: BaseClassifierClient = Depends(get_classifier_client),
    vocabulary: ACVocabulary = Depends(get_vocabulary),
):
    if not payload.learner_id or not payload.exercise_id or not payload.interaction_id:
        raise ClientInputError("Missing data to finalize the result.")
    for value in (payload.learner_id, payload.exercise_id, payload.interaction_id):
        require_object_id(value, "One of the IDs is not valid.")

    transcript = storage_call("get_transcript", store.get_transcript, payload.interaction_id)
    if transcript is None:
        raise NotFoundError("Interaction not found.")

    outcome = await classify_conversation(transcript, classifier, vocabulary)

    now = datetime.now(timezone.utc)
    record = ResultRecord(
        learner_id=payload.learner_id,
        exercise_id=payload.exercise_id,
        interaction_id=payload.interaction_id,
        timestamp=now,
        created_at=now,
        message_count=len(transcript),
        solved_first_try=payload.solved_first_try,
        ai_analysis=outcome.analysis,
        ai_advice=outcome.advice,
        error_tags=outcome.tags,
    )
    result_id = storage_call("save_result", store.save_result, record)
    logger.info(
        "Result saved | result_id=%s learner_id=%s classifier_status=%s tags=%s",
        result_id,
        payload.learner_id,
        outcome.status.value,
        [tag.label for tag in outcome.tags],
    )

    return FinalizeResultResponse(
        message="Result saved successfully.",
        classifier_status=outcome.status.value,
        saved={
            "message_count": record.message_count,
            "has_analysis": bool(record.ai_analysis),
            "has_advice": bool(record.ai_advice),
            "error_labels": [tag.label for tag in record.error_tags],
        },
    )
