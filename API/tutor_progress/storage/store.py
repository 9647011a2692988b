from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock

from bson import ObjectId
from bson.errors import InvalidId

from tutor_progress.core.logging import DOMAIN_STORAGE, get_domain_logger
from tutor_progress.core.settings import settings
from tutor_progress.models.records import ConversationMessage, ErrorTag, ExerciseRef, ResultRecord

logger = get_domain_logger(__name__, DOMAIN_STORAGE)


def is_valid_object_id(value) -> bool:
    return isinstance(value, str) and ObjectId.is_valid(value) and len(value) == 24


def _sanitize_mongo_error(raw: str) -> str:
    if not raw:
        return raw
    # Hide credentials embedded in connection URLs.
    return re.sub(r"(mongodb(?:\+srv)?://)([^/@\s]+)@", r"\1***:***@", raw)


def _sort_key(record: ResultRecord) -> datetime:
    moment = record.timestamp or record.created_at
    if moment is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


def _exercise_from(exercise_id: str, doc: dict) -> ExerciseRef:
    return ExerciseRef(
        id=exercise_id,
        title=doc.get("title") or "",
        concept=doc.get("concept") or "",
        level=doc.get("level"),
    )


def _tags_from(raw) -> list[ErrorTag]:
    if not isinstance(raw, list):
        return []
    return [
        ErrorTag(label=str(t["label"]), text=str(t.get("text") or t["label"]))
        for t in raw
        if isinstance(t, dict) and t.get("label")
    ]


def _messages_from(raw) -> list[ConversationMessage]:
    if not isinstance(raw, list):
        return []
    return [
        ConversationMessage(role=str(m.get("role", "")), content=str(m.get("content", "")))
        for m in raw
        if isinstance(m, dict)
    ]


class ProgressStore(ABC):
    @abstractmethod
    def list_results(self, learner_id: str) -> list[ResultRecord]:
        """All results of a learner, newest first, with the exercise reference resolved."""
        raise NotImplementedError

    @abstractmethod
    def find_exercise_by_concept(self, concept: str) -> ExerciseRef | None:
        raise NotImplementedError

    @abstractmethod
    def get_transcript(self, interaction_id: str) -> list[ConversationMessage] | None:
        raise NotImplementedError

    @abstractmethod
    def save_result(self, record: ResultRecord) -> str:
        raise NotImplementedError

    @abstractmethod
    def add_exercise(self, title: str, concept: str, level: str | int | None = None) -> str:
        raise NotImplementedError

    @abstractmethod
    def add_interaction(self, learner_id: str, conversation: list[dict]) -> str:
        raise NotImplementedError

    def completed_exercise_ids(self, learner_id: str) -> list[str]:
        seen: dict[str, None] = {}
        for record in self.list_results(learner_id):
            seen.setdefault(str(record.exercise_id), None)
        return list(seen)


class FileProgressStore(ProgressStore):
    def __init__(self, base_dir: Path):
        self.base = Path(base_dir)
        self.base.mkdir(parents=True, exist_ok=True)
        self.files = {
            "results": self.base / "results.json",
            "exercises": self.base / "exercises.json",
            "interactions": self.base / "interactions.json",
        }
        for file_path in self.files.values():
            if not file_path.exists():
                file_path.write_text("{}", encoding="utf-8")
        self._lock = Lock()

    def _read(self, key: str) -> dict:
        return json.loads(self.files[key].read_text(encoding="utf-8"))

    def _write(self, key: str, payload: dict) -> None:
        self.files[key].write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def _insert(self, key: str, doc: dict) -> str:
        new_id = str(ObjectId())
        with self._lock:
            data = self._read(key)
            data[new_id] = doc
            self._write(key, data)
        return new_id

    def list_results(self, learner_id: str) -> list[ResultRecord]:
        exercises = self._read("exercises")
        records = []
        for result_id, doc in self._read("results").items():
            if doc.get("learner_id") != learner_id:
                continue
            record = ResultRecord.model_validate(
                {**doc, "id": result_id, "error_tags": _tags_from(doc.get("error_tags"))}
            )
            exercise = exercises.get(record.exercise_id)
            if isinstance(exercise, dict):
                record.exercise = _exercise_from(record.exercise_id, exercise)
            records.append(record)
        return sorted(records, key=_sort_key, reverse=True)

    def find_exercise_by_concept(self, concept: str) -> ExerciseRef | None:
        for exercise_id, doc in self._read("exercises").items():
            if doc.get("concept") == concept:
                return _exercise_from(exercise_id, doc)
        return None

    def get_transcript(self, interaction_id: str) -> list[ConversationMessage] | None:
        doc = self._read("interactions").get(interaction_id)
        if doc is None:
            return None
        return _messages_from(doc.get("conversation"))

    def save_result(self, record: ResultRecord) -> str:
        return self._insert("results", record.model_dump(mode="json", exclude={"id", "exercise"}))

    def add_exercise(self, title: str, concept: str, level: str | int | None = None) -> str:
        return self._insert("exercises", {"title": title, "concept": concept, "level": level})

    def add_interaction(self, learner_id: str, conversation: list[dict]) -> str:
        return self._insert("interactions", {"learner_id": learner_id, "conversation": conversation})


class MongoProgressStore(ProgressStore):
    def __init__(self, mongodb_url: str, db_name: str):
        from pymongo import ASCENDING, DESCENDING, MongoClient

        self._ASC = ASCENDING
        self._DESC = DESCENDING
        self._client = MongoClient(mongodb_url, serverSelectionTimeoutMS=3000, tz_aware=True)
        self._db = self._client[db_name]
        self._results = self._db["results"]
        self._exercises = self._db["exercises"]
        self._interactions = self._db["interactions"]
        self._ensure_indexes()

    def _ensure_indexes(self) -> None:
        self._results.create_index(
            [("learner_id", self._ASC), ("timestamp", self._DESC)],
            name="ix_results_learner_timestamp",
        )
        self._exercises.create_index([("concept", self._ASC)], name="ix_exercises_concept")

    @staticmethod
    def _exercise_ref(doc: dict) -> ExerciseRef:
        return _exercise_from(str(doc["_id"]), doc)

    def list_results(self, learner_id: str) -> list[ResultRecord]:
        docs = list(self._results.find({"learner_id": ObjectId(learner_id)}).sort("timestamp", self._DESC))
        exercise_ids = {doc.get("exercise_id") for doc in docs if isinstance(doc.get("exercise_id"), ObjectId)}
        exercises = {
            doc["_id"]: self._exercise_ref(doc)
            for doc in self._exercises.find(
                {"_id": {"$in": list(exercise_ids)}},
                {"title": 1, "concept": 1, "level": 1},
            )
        } if exercise_ids else {}
        records = []
        for doc in docs:
            raw_exercise = doc.get("exercise_id")
            records.append(
                ResultRecord(
                    id=str(doc["_id"]),
                    learner_id=str(doc.get("learner_id")),
                    exercise_id=str(raw_exercise) if raw_exercise is not None else "",
                    interaction_id=str(doc.get("interaction_id") or ""),
                    timestamp=doc.get("timestamp"),
                    created_at=doc.get("created_at"),
                    message_count=int(doc.get("message_count") or 0),
                    solved_first_try=bool(doc.get("solved_first_try")),
                    ai_analysis=doc.get("ai_analysis"),
                    ai_advice=doc.get("ai_advice"),
                    error_tags=_tags_from(doc.get("error_tags")),
                    exercise=exercises.get(raw_exercise),
                )
            )
        return records

    def find_exercise_by_concept(self, concept: str) -> ExerciseRef | None:
        doc = self._exercises.find_one({"concept": concept}, {"title": 1, "concept": 1, "level": 1})
        return self._exercise_ref(doc) if doc else None

    def get_transcript(self, interaction_id: str) -> list[ConversationMessage] | None:
        try:
            doc = self._interactions.find_one({"_id": ObjectId(interaction_id)}, {"conversation": 1})
        except InvalidId:
            return None
        if doc is None:
            return None
        return _messages_from(doc.get("conversation"))

    def save_result(self, record: ResultRecord) -> str:
        doc = record.storage_document()
        doc["learner_id"] = ObjectId(record.learner_id)
        doc["exercise_id"] = ObjectId(record.exercise_id)
        doc["interaction_id"] = ObjectId(record.interaction_id)
        inserted = self._results.insert_one(doc)
        return str(inserted.inserted_id)

    def add_exercise(self, title: str, concept: str, level: str | int | None = None) -> str:
        inserted = self._exercises.insert_one({"title": title, "concept": concept, "level": level})
        return str(inserted.inserted_id)

    def add_interaction(self, learner_id: str, conversation: list[dict]) -> str:
        inserted = self._interactions.insert_one(
            {"learner_id": ObjectId(learner_id), "conversation": conversation}
        )
        return str(inserted.inserted_id)


def build_progress_store() -> ProgressStore:
    backend = settings.progress_store_backend
    logger.info("Progress store selected | backend=%s", backend)
    if backend == "mongo":
        return MongoProgressStore(settings.mongodb_url, settings.mongodb_db_name)
    return FileProgressStore(Path(settings.runtime_data_dir))


_store: ProgressStore | None = None
_store_lock = Lock()


def get_progress_store() -> ProgressStore:
    global _store
    with _store_lock:
        if _store is None:
            _store = build_progress_store()
        return _store


def _mongo_ping() -> tuple[bool, str | None]:
    try:
        from pymongo import MongoClient

        client = MongoClient(settings.mongodb_url, serverSelectionTimeoutMS=3000)
        client.admin.command("ping")
        return True, None
    except Exception as exc:  # noqa: BLE001
        error = _sanitize_mongo_error(str(exc))
        logger.warning("Mongo ping failed | error=%s", error)
        return False, error


def get_store_runtime_status() -> dict:
    status = {"backend": settings.progress_store_backend}
    if settings.progress_store_backend == "mongo":
        mongo_ok, mongo_error = _mongo_ping()
        status["mongo"] = {"connected": mongo_ok, "db_name": settings.mongodb_db_name, "error": mongo_error}
    return status
