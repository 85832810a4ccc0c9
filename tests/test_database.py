"""Tests for the persistence client, offline cache and Firestore failure handling."""

from dataclasses import replace
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from storybuddy.database import DatabaseClient
from storybuddy.errors import PersistenceFailure
from storybuddy.models import LearnedWord, QuizRecord, VocabularyEncounter


def _connected_client():
    """Client wired to a mock Firestore."""
    client = DatabaseClient(user_id="test_user")
    client.db = MagicMock()
    client._initialized = True
    return client


def test_offline_client_is_not_connected(offline_db):
    assert not offline_db.is_connected()


def test_initialize_without_credentials(monkeypatch):
    monkeypatch.delenv("FIREBASE_CREDENTIALS_PATH", raising=False)
    assert DatabaseClient().initialize() is False


def test_initialize_missing_file(tmp_path):
    assert DatabaseClient().initialize(str(tmp_path / "nope.json")) is False


@patch("storybuddy.database.firestore")
@patch("storybuddy.database.credentials")
@patch("storybuddy.database.firebase_admin")
def test_initialize_connects(mock_admin, mock_credentials, mock_firestore, tmp_path):
    creds = tmp_path / "creds.json"
    creds.write_text("{}")
    mock_admin.get_app.side_effect = ValueError("no app")

    client = DatabaseClient()
    assert client.initialize(str(creds)) is True
    assert client.is_connected()
    mock_admin.initialize_app.assert_called_once()
    mock_firestore.client.assert_called_once()


def test_default_profile(offline_db):
    user = offline_db.get_or_create_user()
    assert user.user_id == "test_user"
    assert user.target_languages == ["de"]

    user.username = "Anna"
    assert offline_db.update_user(user)
    assert offline_db.get_or_create_user().username == "Anna"


def test_saved_stories_newest_first(offline_db, sample_story):
    older = replace(sample_story, id="old", created_at=sample_story.created_at - timedelta(days=1))
    offline_db.save_story(older)
    offline_db.save_story(sample_story)

    assert [s.id for s in offline_db.list_saved_stories()] == ["story-1", "old"]


def test_malformed_story_is_skipped(offline_db):
    offline_db._cache["test_user/saved_stories/bad"] = {"id": "bad"}
    assert offline_db.list_saved_stories() == []


def test_word_documents_are_keyed_per_language(offline_db):
    offline_db.save_learned_word(LearnedWord("Kaffee", "coffee", "☕", learned_at="2024-01-01T00:00:00"))
    offline_db.save_learned_word(LearnedWord("kaffee ", "coffee", "☕", learned_at="2024-01-02T00:00:00"))
    offline_db.save_learned_word(LearnedWord("Kaffee", "café", "☕", language="fr", learned_at="2024-01-03T00:00:00"))

    words = offline_db.get_learned_words()
    assert len(words) == 2
    assert words[0].language == "fr"


def test_encounters_and_quiz_history(offline_db):
    offline_db.save_vocabulary_encounter(VocabularyEncounter("Tisch", "table", "🪑", first_seen_at="2024-01-01"))
    assert offline_db.get_vocabulary_encounters()[0].word == "Tisch"

    assert offline_db.save_quiz_result(QuizRecord("story-1", 4, 5))
    history = offline_db.get_quiz_history()
    assert history[0].score == 4
    assert history[0].completed_at


def test_save_story_failure_raises(sample_story):
    client = _connected_client()
    client.db.collection.return_value.document.return_value.collection.return_value \
        .document.return_value.set.side_effect = RuntimeError("permission denied")

    with pytest.raises(PersistenceFailure) as excinfo:
        client.save_story(sample_story)
    assert excinfo.value.operation == "save story"


def test_delete_story_failure_raises():
    client = _connected_client()
    client.db.collection.return_value.document.return_value.collection.return_value \
        .document.return_value.delete.side_effect = RuntimeError("unavailable")

    with pytest.raises(PersistenceFailure):
        client.delete_story("story-1")


def test_read_failure_yields_empty():
    client = _connected_client()
    client.db.collection.return_value.document.return_value.collection.return_value \
        .stream.side_effect = RuntimeError("collection missing")

    assert client.list_saved_stories() == []
    assert client.get_learned_words() == []
    assert client.get_vocabulary_encounters() == []


def test_word_write_failure_returns_false():
    client = _connected_client()
    client.db.collection.return_value.document.return_value.collection.return_value \
        .document.return_value.set.side_effect = RuntimeError("quota")

    assert client.save_learned_word(LearnedWord("Kaffee", "coffee", "☕")) is False


def test_connected_reads_documents(sample_story):
    client = _connected_client()
    doc = MagicMock()
    doc.to_dict.return_value = sample_story.to_dict()
    client.db.collection.return_value.document.return_value.collection.return_value \
        .stream.return_value = [doc]

    stories = client.list_saved_stories()
    assert stories[0].id == sample_story.id
    assert stories[0].is_saved
