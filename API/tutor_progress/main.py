from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from tutor_progress.api.health import router as health_router
from tutor_progress.api.progress import router as progress_router
from tutor_progress.api.results import router as results_router
from tutor_progress.core.errors import (
    ServiceError,
    http_exception_handler,
    request_id_middleware,
    service_error_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from tutor_progress.core.logging import configure_logging
from tutor_progress.core.settings import settings
from tutor_progress.core.vocabulary import get_vocabulary


configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Fail fast on a missing or malformed vocabulary; it is read-only afterwards.
    get_vocabulary()
    yield


app = FastAPI(title="Tutor Progress API", version="0.1.0", lifespan=lifespan)
app.include_router(health_router)
app.include_router(progress_router)
app.include_router(results_router)
app.middleware("http")(request_id_middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_exception_handler(ServiceError, service_error_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)
