"""Closed vocabulary of alternative conceptions (AC) the classifier may return."""
from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from tutor_progress.core.settings import settings

UNKNOWN_TAG_ID = "AC_UNK"


class VocabularyError(RuntimeError):
    """Raised when the vocabulary file is missing or malformed."""


class ACVocabulary:
    def __init__(self, entries: Mapping[str, str]):
        self._names = MappingProxyType(dict(entries))
        self._ids = tuple(self._names.keys())

    def __contains__(self, tag_id: object) -> bool:
        return isinstance(tag_id, str) and tag_id in self._names

    def __len__(self) -> int:
        return len(self._ids)

    def ids(self) -> tuple[str, ...]:
        return self._ids

    def ids_text(self) -> str:
        return ", ".join(self._ids)

    def display_name(self, tag_id: str) -> str:
        return self._names.get(tag_id) or tag_id

    @classmethod
    def from_payload(cls, payload: dict) -> "ACVocabulary":
        raw = payload.get("alternative_conceptions") if isinstance(payload, dict) else None
        if not isinstance(raw, dict):
            raise VocabularyError("Vocabulary file has no 'alternative_conceptions' object")
        entries: dict[str, str] = {}
        for tag_id, meta in raw.items():
            tag = str(tag_id).strip()
            if not tag or tag == UNKNOWN_TAG_ID:
                continue
            name = meta.get("name") if isinstance(meta, dict) else None
            entries[tag] = str(name).strip() if name else tag
        return cls(entries)


def load_vocabulary(path: str | Path) -> ACVocabulary:
    file_path = Path(path)
    if not file_path.exists():
        raise VocabularyError(f"Vocabulary file not found: {file_path}")
    try:
        payload = json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise VocabularyError(f"Vocabulary file is not valid JSON: {file_path}") from exc
    return ACVocabulary.from_payload(payload)


@lru_cache(maxsize=1)
def get_vocabulary() -> ACVocabulary:
    return load_vocabulary(settings.ac_vocabulary_file)
