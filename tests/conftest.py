from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
API_DIR = ROOT / "API"
if str(API_DIR) not in sys.path:
    sys.path.insert(0, str(API_DIR))

# Test-mode runtime guards:
# - file-backed store, no Mongo traffic
# - classifier replaced per test, no Ollama traffic
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("PROGRESS_STORE_BACKEND", "file")
os.environ.setdefault("PROGRESS_TIMEZONE", "Europe/Madrid")

from tutor_progress.classifier.client import BaseClassifierClient, get_classifier_client  # noqa: E402
from tutor_progress.core.vocabulary import ACVocabulary, get_vocabulary  # noqa: E402
from tutor_progress.main import app  # noqa: E402
from tutor_progress.storage.store import FileProgressStore, get_progress_store  # noqa: E402


class ScriptedClassifier(BaseClassifierClient):
    """Replays canned responses; an Exception instance in the script is raised instead."""

    provider_name = "scripted"

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts: list[str] = []

    async def classify(self, prompt: str) -> str | None:
        self.prompts.append(prompt)
        if not self.responses:
            raise AssertionError("classifier called more times than scripted")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def vocabulary() -> ACVocabulary:
    return ACVocabulary(
        {
            "AC1": "Variable holds several values",
            "AC2": "Assignment as equality",
            "AC3": "Both branches execute",
            "AC13": "Function runs when defined",
        }
    )


@pytest.fixture
def store(tmp_path: Path) -> FileProgressStore:
    return FileProgressStore(tmp_path / "store")


@pytest.fixture
def classifier() -> ScriptedClassifier:
    return ScriptedClassifier()


@pytest.fixture
def client(store, classifier, vocabulary) -> TestClient:
    app.dependency_overrides[get_progress_store] = lambda: store
    app.dependency_overrides[get_classifier_client] = lambda: classifier
    app.dependency_overrides[get_vocabulary] = lambda: vocabulary
    try:
        with TestClient(app) as tc:
            yield tc
    finally:
        app.dependency_overrides.clear()
