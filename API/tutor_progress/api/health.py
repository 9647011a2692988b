from fastapi import APIRouter

from tutor_progress.core.settings import settings
from tutor_progress.core.vocabulary import get_vocabulary
from tutor_progress.storage.store import get_store_runtime_status

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "service": "tutor-progress-api",
        "store_backend": settings.progress_store_backend,
        "classifier_model": settings.classifier_model,
        "vocabulary_size": len(get_vocabulary()),
    }


@router.get("/health/store")
async def store_status():
    return get_store_runtime_status()
