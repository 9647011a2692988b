"""
Classification of a finished tutoring conversation into alternative conceptions.

Flow: prompt -> call -> extract JSON -> (one stricter retry on bad JSON) ->
validate against the closed vocabulary. Classifier failures never escape;
they are reported through ``ClassificationResult.status`` plus a sentinel tag.
"""
from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from tutor_progress.classifier.client import BaseClassifierClient
from tutor_progress.classifier.prompts import MAX_TAGS, build_prompt, build_retry_prompt
from tutor_progress.core.errors import ClassifierInvalidFormat, ClassifierTimeout
from tutor_progress.core.json_parser import Malformed, Parsed, extract_json_object
from tutor_progress.core.logging import DOMAIN_CLASSIFIER, get_domain_logger
from tutor_progress.core.vocabulary import UNKNOWN_TAG_ID, ACVocabulary
from tutor_progress.models.records import ConversationMessage, ErrorTag

logger = get_domain_logger(__name__, DOMAIN_CLASSIFIER)

UNKNOWN_TIMEOUT_TEXT = "Could not classify (timeout)"
UNKNOWN_FORMAT_TEXT = "Could not classify (invalid format)"


class ClassifierStatus(str, Enum):
    OK = "ok"
    FAIL_TIMEOUT = "fail_timeout"
    FAIL_INVALID_JSON = "fail_invalid_json"
    SKIPPED = "skipped"


@dataclass
class ClassificationResult:
    status: ClassifierStatus = ClassifierStatus.SKIPPED
    analysis: str | None = None
    advice: str | None = None
    tags: list[ErrorTag] = field(default_factory=list)


def _clean_text(value) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def filter_tag_ids(raw, vocabulary: ACVocabulary) -> list[str]:
    """Keep known IDs in order, then cap; unknown IDs never use up a slot."""
    if not isinstance(raw, list):
        return []
    known = [item.strip() for item in raw if isinstance(item, str) and item.strip() in vocabulary]
    return known[:MAX_TAGS]


def validate_payload(payload: dict, vocabulary: ACVocabulary) -> ClassificationResult:
    tag_ids = filter_tag_ids(payload.get("acs"), vocabulary)
    return ClassificationResult(
        status=ClassifierStatus.OK,
        analysis=_clean_text(payload.get("analysis")),
        advice=_clean_text(payload.get("advice")),
        tags=[ErrorTag(label=tag_id, text=vocabulary.display_name(tag_id)) for tag_id in tag_ids],
    )


def _is_timeout(exc: Exception) -> bool:
    if isinstance(exc, (ClassifierTimeout, TimeoutError, asyncio.TimeoutError)):
        return True
    return "timeout" in str(exc).lower()


async def _attempt(client: BaseClassifierClient, prompt: str, phase: str) -> Parsed | Malformed:
    content = await client.classify(prompt)
    result = extract_json_object(content)
    if isinstance(result, Malformed):
        logger.warning("Classifier returned no usable JSON | phase=%s reason=%s", phase, result.reason)
    return result


async def classify_conversation(
    messages: Sequence[ConversationMessage],
    client: BaseClassifierClient,
    vocabulary: ACVocabulary,
) -> ClassificationResult:
    result = ClassificationResult()
    try:
        parsed = await _attempt(client, build_prompt(messages, vocabulary), phase="call_1")
        if isinstance(parsed, Malformed):
            parsed = await _attempt(client, build_retry_prompt(messages, vocabulary), phase="call_2")
        if isinstance(parsed, Malformed):
            result.status = ClassifierStatus.FAIL_INVALID_JSON
            raise ClassifierInvalidFormat(f"Classifier returned non-JSON content ({parsed.reason})")
        return validate_payload(parsed.payload, vocabulary)
    except Exception as exc:  # noqa: BLE001
        timed_out = _is_timeout(exc)
        if timed_out:
            result.status = ClassifierStatus.FAIL_TIMEOUT
        logger.error(
            "Classifier failed | status=%s cause=%s error=%s",
            result.status.value,
            "timeout" if timed_out else type(exc).__name__,
            str(exc),
        )
        if messages:
            result.tags = [
                ErrorTag(
                    label=UNKNOWN_TAG_ID,
                    text=UNKNOWN_TIMEOUT_TEXT if timed_out else UNKNOWN_FORMAT_TEXT,
                )
            ]
        return result
