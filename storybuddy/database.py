"""
Firebase Firestore persistence for Story Buddy.

This module stores everything that outlives a practice session:
- User profiles
- Saved stories
- Learned words (with correct/incorrect counters)
- Vocabulary encounters (words the learner clicked on)
- Quiz history

When Firestore is unavailable (package missing, no credentials) an in-memory
cache keeps the application usable for the current run.

Read failures are logged and yield empty results. Saving or deleting a story
raises PersistenceFailure so the invoking action can report that nothing was
saved; other writes log and return False.
"""

import hashlib
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .errors import PersistenceFailure
from .logger import logger
from .models import (
    LearnedWord,
    QuizRecord,
    Story,
    UserProfile,
    VocabularyEncounter,
    parse_iso,
    utc_now_iso,
)

# Firebase imports - optional for graceful degradation
try:
    import firebase_admin
    from firebase_admin import credentials, firestore
    FIREBASE_AVAILABLE = True
except ImportError:
    FIREBASE_AVAILABLE = False
    logger.warning("firebase-admin not installed. Cloud sync disabled.")
    logger.warning("Install with: pip install firebase-admin")


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _newest_first(items: List[Any], attr: str) -> List[Any]:
    return sorted(items, key=lambda item: parse_iso(getattr(item, attr)) or _EPOCH, reverse=True)


class DatabaseClient:
    """
    Firebase Firestore client for Story Buddy.

    Collection structure:
    - users/{user_id}                                  -> UserProfile
    - users/{user_id}/saved_stories/{story_id}         -> Story
    - users/{user_id}/learned_words/{word_hash}        -> LearnedWord
    - users/{user_id}/vocabulary_encounters/{word_hash} -> VocabularyEncounter
    - users/{user_id}/quiz_history/{auto_id}           -> QuizRecord
    """

    DEFAULT_USER_ID = "default_user"

    SAVED_STORIES = "saved_stories"
    LEARNED_WORDS = "learned_words"
    ENCOUNTERS = "vocabulary_encounters"
    QUIZ_HISTORY = "quiz_history"

    def __init__(self, user_id: Optional[str] = None):
        self.db = None
        self._initialized = False
        self._user_id = user_id or self.DEFAULT_USER_ID

        # Local cache for offline/fallback, keyed "<uid>/<collection>/<doc_id>"
        self._cache: Dict[str, Dict[str, Any]] = {}

    def initialize(self, credentials_path: Optional[str] = None) -> bool:
        """
        Connect to Firestore.

        Args:
            credentials_path: Path to a Firebase service account JSON.
                              If None, uses the FIREBASE_CREDENTIALS_PATH env var.

        Returns:
            True if connected, False if running on the local cache.
        """
        logger.separator("Database Initialization")

        if not FIREBASE_AVAILABLE:
            logger.db("firebase-admin package not installed, using local cache")
            return False

        if self._initialized:
            logger.debug("[DB] Already initialized, skipping")
            return True

        creds_path = credentials_path or os.getenv("FIREBASE_CREDENTIALS_PATH")
        if not creds_path:
            logger.warning("[DB] FIREBASE_CREDENTIALS_PATH not set, using local cache")
            return False

        if not os.path.exists(creds_path):
            logger.error(f"[DB] Credentials file not found at: {creds_path}")
            return False

        try:
            logger.db(f"Loading Firebase credentials from {creds_path}")
            try:
                firebase_admin.get_app()
            except ValueError:
                firebase_admin.initialize_app(credentials.Certificate(creds_path))

            self.db = firestore.client()
            self._initialized = True
            logger.success("[DB] Firebase Firestore connected successfully!")
            return True
        except Exception as e:
            logger.error(f"[DB] Failed to initialize Firebase: {e}", exc_info=True)
            return False

    def is_connected(self) -> bool:
        """Check if database is connected."""
        return self._initialized and self.db is not None

    # ---------------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------------

    def _word_hash(self, word: str, language: str) -> str:
        """Generate consistent document id for a word."""
        key = f"{language}:{word.lower().strip()}"
        return hashlib.md5(key.encode()).hexdigest()[:16]

    def _collection(self, uid: str, name: str):
        return self.db.collection("users").document(uid).collection(name)

    def _cache_key(self, uid: str, collection: str, doc_id: str) -> str:
        return f"{uid}/{collection}/{doc_id}"

    def _cached(self, uid: str, collection: str) -> List[Dict[str, Any]]:
        prefix = f"{uid}/{collection}/"
        return [dict(value) for key, value in self._cache.items() if key.startswith(prefix)]

    def _read_all(self, uid: str, collection: str) -> List[Dict[str, Any]]:
        """Every document of a user sub-collection; [] on any failure."""
        if not self.is_connected():
            return self._cached(uid, collection)

        try:
            return [doc.to_dict() for doc in self._collection(uid, collection).stream()]
        except Exception as e:
            logger.error(f"[DB] Error reading {collection}: {e}")
            return []

    def _write(self, uid: str, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Write one document; exceptions propagate to the caller."""
        if not self.is_connected():
            self._cache[self._cache_key(uid, collection, doc_id)] = dict(data)
            return
        self._collection(uid, collection).document(doc_id).set(data)

    # ---------------------------------------------------------------------------
    # User Profile Operations
    # ---------------------------------------------------------------------------

    def get_or_create_user(self, user_id: Optional[str] = None) -> UserProfile:
        """Get existing user or create a default profile."""
        uid = user_id or self._user_id

        if not self.is_connected():
            cached = self._cache.get(f"{uid}/profile")
            return UserProfile.from_dict(cached) if cached else self._create_default_user(uid)

        try:
            doc_ref = self.db.collection("users").document(uid)
            doc = doc_ref.get()

            if doc.exists:
                logger.debug(f"[DB] Loaded user profile: {uid}")
                return UserProfile.from_dict(doc.to_dict())

            user = self._create_default_user(uid)
            doc_ref.set(user.to_dict())
            logger.success(f"[DB] Created new user profile: {uid}")
            return user
        except Exception as e:
            logger.error(f"[DB] Error getting user profile: {e}")
            return self._create_default_user(uid)

    def _create_default_user(self, user_id: str) -> UserProfile:
        now = utc_now_iso()
        return UserProfile(user_id=user_id, created_at=now, updated_at=now)

    def update_user(self, user: UserProfile) -> bool:
        user.updated_at = utc_now_iso()

        if not self.is_connected():
            self._cache[f"{user.user_id}/profile"] = user.to_dict()
            return True

        try:
            self.db.collection("users").document(user.user_id).set(user.to_dict())
            return True
        except Exception as e:
            logger.error(f"[DB] Error updating user: {e}")
            return False

    # ---------------------------------------------------------------------------
    # Saved Stories
    # ---------------------------------------------------------------------------

    def list_saved_stories(self, user_id: Optional[str] = None) -> List[Story]:
        """Saved stories, newest first."""
        uid = user_id or self._user_id
        stories = []
        for data in self._read_all(uid, self.SAVED_STORIES):
            try:
                stories.append(Story.from_dict(dict(data, is_saved=True)))
            except (KeyError, TypeError) as e:
                logger.warning(f"[DB] Skipping malformed saved story: {e}")
        return sorted(stories, key=lambda story: story.created_at, reverse=True)

    def save_story(self, story: Story, user_id: Optional[str] = None) -> None:
        """Save a story; raises PersistenceFailure when the write did not happen."""
        uid = user_id or self._user_id
        data = story.to_dict()
        data["is_saved"] = True
        data["user_id"] = uid
        data["updated_at"] = utc_now_iso()

        try:
            self._write(uid, self.SAVED_STORIES, story.id, data)
        except Exception as e:
            logger.error(f"[DB] Error saving story {story.id}: {e}")
            raise PersistenceFailure("save story", e) from e
        logger.db(f"Saved story '{story.title}'")

    def delete_story(self, story_id: str, user_id: Optional[str] = None) -> None:
        """Remove a saved story; raises PersistenceFailure when the delete did not happen."""
        uid = user_id or self._user_id

        if not self.is_connected():
            self._cache.pop(self._cache_key(uid, self.SAVED_STORIES, story_id), None)
            return

        try:
            self._collection(uid, self.SAVED_STORIES).document(story_id).delete()
        except Exception as e:
            logger.error(f"[DB] Error removing story {story_id}: {e}")
            raise PersistenceFailure("remove story", e) from e
        logger.db(f"Removed story {story_id}")

    def update_story(self, story_id: str, updates: Dict[str, Any], user_id: Optional[str] = None) -> bool:
        uid = user_id or self._user_id
        updates = dict(updates, updated_at=utc_now_iso())

        if not self.is_connected():
            key = self._cache_key(uid, self.SAVED_STORIES, story_id)
            if key not in self._cache:
                return False
            self._cache[key].update(updates)
            return True

        try:
            self._collection(uid, self.SAVED_STORIES).document(story_id).update(updates)
            return True
        except Exception as e:
            logger.error(f"[DB] Error updating story {story_id}: {e}")
            return False

    # ---------------------------------------------------------------------------
    # Learned Words
    # ---------------------------------------------------------------------------

    def get_learned_words(self, user_id: Optional[str] = None) -> List[LearnedWord]:
        """Learned words, most recently learned first."""
        uid = user_id or self._user_id
        words = [LearnedWord.from_dict(data) for data in self._read_all(uid, self.LEARNED_WORDS)]
        return _newest_first(words, "learned_at")

    def save_learned_word(self, word: LearnedWord, user_id: Optional[str] = None) -> bool:
        """Insert or overwrite a learned word (one document per word and language)."""
        uid = user_id or self._user_id
        try:
            self._write(uid, self.LEARNED_WORDS, self._word_hash(word.word, word.language), word.to_dict())
            return True
        except Exception as e:
            logger.error(f"[DB] Error saving learned word '{word.word}': {e}")
            return False

    # ---------------------------------------------------------------------------
    # Vocabulary Encounters
    # ---------------------------------------------------------------------------

    def get_vocabulary_encounters(self, user_id: Optional[str] = None) -> List[VocabularyEncounter]:
        """Encountered words, most recently first seen first."""
        uid = user_id or self._user_id
        encounters = [VocabularyEncounter.from_dict(data) for data in self._read_all(uid, self.ENCOUNTERS)]
        return _newest_first(encounters, "first_seen_at")

    def save_vocabulary_encounter(self, encounter: VocabularyEncounter, user_id: Optional[str] = None) -> bool:
        uid = user_id or self._user_id
        doc_id = self._word_hash(encounter.word, encounter.language)
        try:
            self._write(uid, self.ENCOUNTERS, doc_id, encounter.to_dict())
            return True
        except Exception as e:
            logger.error(f"[DB] Error saving vocabulary encounter '{encounter.word}': {e}")
            return False

    # ---------------------------------------------------------------------------
    # Quiz History
    # ---------------------------------------------------------------------------

    def save_quiz_result(self, record: QuizRecord, user_id: Optional[str] = None) -> bool:
        uid = user_id or self._user_id
        if not record.completed_at:
            record.completed_at = utc_now_iso()

        if not self.is_connected():
            doc_id = f"{record.story_id}-{record.completed_at}"
            self._cache[self._cache_key(uid, self.QUIZ_HISTORY, doc_id)] = record.to_dict()
            return True

        try:
            self._collection(uid, self.QUIZ_HISTORY).add(record.to_dict())
            return True
        except Exception as e:
            logger.error(f"[DB] Error saving quiz result: {e}")
            return False

    def get_quiz_history(self, user_id: Optional[str] = None) -> List[QuizRecord]:
        uid = user_id or self._user_id
        records = [QuizRecord.from_dict(data) for data in self._read_all(uid, self.QUIZ_HISTORY)]
        return _newest_first(records, "completed_at")
