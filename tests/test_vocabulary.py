from __future__ import annotations

import json
from pathlib import Path

import pytest

from tutor_progress.core.settings import DEFAULT_VOCABULARY_FILE
from tutor_progress.core.vocabulary import UNKNOWN_TAG_ID, VocabularyError, load_vocabulary


def _write(tmp_path: Path, payload) -> Path:
    path = tmp_path / "acs.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_bundled_vocabulary_loads():
    vocab = load_vocabulary(DEFAULT_VOCABULARY_FILE)
    assert len(vocab) == 20
    assert "AC13" in vocab
    assert UNKNOWN_TAG_ID not in vocab


def test_ids_keep_file_order_and_names(tmp_path):
    path = _write(
        tmp_path,
        {"alternative_conceptions": {"AC2": {"name": "Second"}, "AC1": {"name": "First"}, "AC9": {}}},
    )
    vocab = load_vocabulary(path)
    assert vocab.ids() == ("AC2", "AC1", "AC9")
    assert vocab.ids_text() == "AC2, AC1, AC9"
    assert vocab.display_name("AC1") == "First"
    assert vocab.display_name("AC9") == "AC9"


def test_sentinel_is_never_part_of_the_vocabulary(tmp_path):
    path = _write(tmp_path, {"alternative_conceptions": {"AC_UNK": {"name": "?"}, "AC1": {"name": "x"}}})
    vocab = load_vocabulary(path)
    assert vocab.ids() == ("AC1",)


def test_non_string_ids_are_not_members(tmp_path):
    vocab = load_vocabulary(_write(tmp_path, {"alternative_conceptions": {"AC1": {"name": "x"}}}))
    assert 1 not in vocab
    assert None not in vocab


def test_missing_file(tmp_path):
    with pytest.raises(VocabularyError):
        load_vocabulary(tmp_path / "missing.json")


def test_malformed_file(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(VocabularyError):
        load_vocabulary(bad)
    with pytest.raises(VocabularyError):
        load_vocabulary(_write(tmp_path, {"something_else": {}}))
