from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from tutor_progress.core.errors import ClientInputError, StorageFailure
from tutor_progress.core.logging import DOMAIN_STORAGE, get_domain_logger
from tutor_progress.storage.store import is_valid_object_id

logger = get_domain_logger(__name__, DOMAIN_STORAGE)

T = TypeVar("T")


def require_object_id(value: str | None, message: str) -> str:
    if not is_valid_object_id(value):
        raise ClientInputError(message)
    return value  # type: ignore[return-value]


def storage_call(operation: str, func: Callable[..., T], *args, **kwargs) -> T:
    """Run a store operation; any failure becomes a generic StorageFailure."""
    try:
        return func(*args, **kwargs)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Store operation failed | operation=%s", operation)
        raise StorageFailure(operation) from exc
