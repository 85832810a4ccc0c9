"""
Per-user vocabulary progress: learned words and word encounters.
"""

import random
import re
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Tuple

from .data import ENCOUNTER_STOPLIST, MIN_WORD_LENGTH, VOCABULARY_MILESTONES
from .database import DatabaseClient
from .logger import logger
from .models import LearnedWord, VocabularyEncounter, Word, parse_iso

_PUNCTUATION = re.compile(r"[.,!?;:]")


def clean_word(text: str) -> str:
    return _PUNCTUATION.sub("", text)


def is_trackable(text: str) -> bool:
    """Short words and articles/pronouns are never tracked."""
    return len(text) >= MIN_WORD_LENGTH and text.lower() not in ENCOUNTER_STOPLIST


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class VocabularyTracker:
    """
    In-memory view of one user's learned words and encounters, written
    through to the database.

    Local state only changes after the corresponding write succeeded.
    """

    def __init__(
        self,
        db: DatabaseClient,
        user_id: Optional[str] = None,
        language: str = "de",
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.db = db
        self.user_id = user_id
        self.language = language
        self.rng = rng or random.Random()
        self.clock = clock

        self.learned_words: List[LearnedWord] = []
        self.encounters: List[VocabularyEncounter] = []

    def load(self) -> None:
        self.learned_words = self.db.get_learned_words(self.user_id)
        self.encounters = self.db.get_vocabulary_encounters(self.user_id)
        logger.db(f"Loaded {len(self.learned_words)} learned words, {len(self.encounters)} encounters")

    def _now_iso(self) -> str:
        return self.clock().isoformat()

    def _find_learned(self, text: str) -> Optional[LearnedWord]:
        lower = text.lower()
        for learned in self.learned_words:
            if learned.word.lower() == lower:
                return learned
        return None

    def _find_encounter(self, text: str) -> Optional[VocabularyEncounter]:
        lower = text.lower()
        for encounter in self.encounters:
            if encounter.word.lower() == lower:
                return encounter
        return None

    # ---------------------------------------------------------------------------
    # Learned words
    # ---------------------------------------------------------------------------

    def mark_learned(self, word: Word, story_id: str) -> bool:
        """Record a correct answer: insert the word or bump times_correct."""
        existing = self._find_learned(word.text)
        now = self._now_iso()

        if existing:
            updated = LearnedWord(**dict(existing.to_dict(),
                                         times_correct=existing.times_correct + 1,
                                         last_reviewed=now))
        else:
            updated = LearnedWord(
                word=word.text,
                translation=word.translation,
                emoji=word.emoji,
                language=self.language,
                story_id=story_id,
                times_correct=1,
                times_incorrect=0,
                learned_at=now,
            )

        if not self.db.save_learned_word(updated, self.user_id):
            return False

        if existing:
            self.learned_words[self.learned_words.index(existing)] = updated
        else:
            self.learned_words.insert(0, updated)
            logger.success(f"Learned: {word.text} {word.emoji}")
        return True

    def mark_incorrect(self, text: str) -> bool:
        """Record a wrong answer for an already learned word; unknown words are ignored."""
        existing = self._find_learned(text)
        if existing is None:
            return False

        updated = LearnedWord(**dict(existing.to_dict(),
                                     times_incorrect=existing.times_incorrect + 1,
                                     last_reviewed=self._now_iso()))
        if not self.db.save_learned_word(updated, self.user_id):
            return False

        self.learned_words[self.learned_words.index(existing)] = updated
        return True

    # ---------------------------------------------------------------------------
    # Encounters
    # ---------------------------------------------------------------------------

    def add_encounter(self, word: Word, story_id: Optional[str] = None) -> bool:
        """Record that the learner looked at a word. Returns False when skipped or not saved."""
        text = clean_word(word.text)
        if not is_trackable(text):
            return False

        existing = self._find_encounter(text)
        now = self._now_iso()

        if existing:
            updated = VocabularyEncounter(**dict(existing.to_dict(),
                                                 times_encountered=existing.times_encountered + 1,
                                                 last_seen_at=now))
        else:
            updated = VocabularyEncounter(
                word=text,
                translation=word.translation,
                emoji=word.emoji,
                language=self.language,
                story_id=story_id,
                times_encountered=1,
                first_seen_at=now,
                last_seen_at=now,
            )

        if not self.db.save_vocabulary_encounter(updated, self.user_id):
            return False

        if existing:
            self.encounters[self.encounters.index(existing)] = updated
        else:
            self.encounters.insert(0, updated)
        return True

    # ---------------------------------------------------------------------------
    # Progress
    # ---------------------------------------------------------------------------

    def total_learned(self) -> int:
        return len(self.learned_words)

    def recent_words(self, days: int) -> List[LearnedWord]:
        """Words learned within the last ``days`` days."""
        cutoff = self.clock() - timedelta(days=days)
        recent = []
        for learned in self.learned_words:
            learned_at = parse_iso(learned.learned_at)
            if learned_at and learned_at > cutoff:
                recent.append(learned)
        return recent

    def milestone_progress(self) -> Tuple[int, int]:
        """(learned so far, next milestone); the last milestone sticks once passed."""
        current = len(self.learned_words)
        for milestone in VOCABULARY_MILESTONES:
            if milestone > current:
                return current, milestone
        return current, VOCABULARY_MILESTONES[-1]

    def random_words_for_review(self, count: int) -> List[LearnedWord]:
        count = max(0, min(count, len(self.learned_words)))
        return self.rng.sample(self.learned_words, count)

    def sync_with_local(self, local_learned: Iterable[LearnedWord],
                        local_encounters: Iterable[VocabularyEncounter]) -> int:
        """Upload locally recorded words the database does not have yet. Returns the number uploaded."""
        uploaded = 0
        for learned in local_learned:
            if not any(w.word == learned.word for w in self.learned_words):
                if self.mark_learned(learned.as_word(), learned.story_id or "local"):
                    uploaded += 1

        for encounter in local_encounters:
            if not any(e.word == encounter.word for e in self.encounters):
                word = Word(text=encounter.word, translation=encounter.translation, emoji=encounter.emoji)
                if self.add_encounter(word, encounter.story_id):
                    uploaded += 1

        if uploaded:
            logger.db(f"Synced {uploaded} local vocabulary entries")
        return uploaded
