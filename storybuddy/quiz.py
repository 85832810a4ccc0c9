"""
Quiz generation and scoring.

Three flavours share one question model:
- story quiz: up to five words of a story, each asked as multiple choice,
  cloze (fill the blank in the dialogue line) or reverse lookup
- vocabulary quiz: multiple choice for every word the learner collected
- review quiz: multiple choice over previously learned words
"""

import random
import re
from typing import Dict, List, Literal, Optional, Sequence

from .data import MIN_WORD_LENGTH, QUIZ_STOPLIST
from .logger import logger
from .models import LearnedWord, QuizAnswer, QuizQuestion, QuizRecord, Story, Word
from .vocabulary import VocabularyTracker

QUIZ_SIZE = 5
DISTRACTOR_COUNT = 3
BLANK = "____"

GENERIC_DISTRACTORS = ["house", "water", "good", "time", "person", "place", "thing"]

QuizKind = Literal["story", "vocabulary", "review"]

# (minimum percentage, emoji, message), checked top-down
SCORE_BANDS: Dict[str, List[tuple]] = {
    "story": [
        (90, "🏆", "Outstanding! You're a German master!"),
        (80, "🎉", "Excellent work! Keep it up!"),
        (70, "👍", "Good job! You're making great progress!"),
        (60, "😊", "Nice effort! Practice makes perfect!"),
        (0, "💪", "Keep practicing! You'll get there!"),
    ],
    "vocabulary": [
        (90, "🏆", "Outstanding! You've mastered these words!"),
        (80, "🎉", "Excellent work! Great vocabulary progress!"),
        (70, "👍", "Good job! You're learning well!"),
        (60, "😊", "Nice effort! Keep practicing!"),
        (0, "💪", "Keep studying! You'll improve with practice!"),
    ],
    "review": [
        (90, "🏆", "Perfect review! Your memory is excellent!"),
        (80, "🎉", "Great review! You remember most words well!"),
        (70, "👍", "Good review! Keep practicing regularly!"),
        (60, "😊", "Nice effort! Some words need more practice!"),
        (0, "💪", "Keep reviewing! Regular practice helps memory!"),
    ],
}


def answers_match(given: str, expected: str) -> bool:
    """Exact match after trimming, ignoring case."""
    return given.strip().lower() == expected.strip().lower()


def qualifying_words(words: Sequence[Word]) -> List[Word]:
    """First occurrence of each word (case-insensitive), minus short words and the stoplist."""
    seen = set()
    result = []
    for word in words:
        key = word.text.lower()
        if key in seen:
            continue
        seen.add(key)
        if len(word.text) < MIN_WORD_LENGTH or key in QUIZ_STOPLIST:
            continue
        result.append(word)
    return result


def blank_out(sentence: str, word: str) -> Optional[str]:
    """Replace whole-word occurrences of ``word`` with the blank; None if it does not occur."""
    pattern = re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)
    blanked, count = pattern.subn(BLANK, sentence)
    return blanked if count else None


class QuizEngine:
    """Builds question sets. Pass a seeded ``random.Random`` for reproducible quizzes."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def _options(self, word: Word, pool: Sequence[Word], pad: bool) -> List[str]:
        """Correct translation plus up to three distinct distractors, shuffled."""
        correct = word.translation
        candidates = [w.translation for w in pool if w.text != word.text]
        self.rng.shuffle(candidates)

        distractors: List[str] = []
        taken = {correct.lower()}
        for candidate in candidates:
            if candidate.lower() not in taken:
                distractors.append(candidate)
                taken.add(candidate.lower())
            if len(distractors) == DISTRACTOR_COUNT:
                break

        if pad and len(distractors) < DISTRACTOR_COUNT:
            generic = list(GENERIC_DISTRACTORS)
            self.rng.shuffle(generic)
            for candidate in generic:
                if len(distractors) == DISTRACTOR_COUNT:
                    break
                if candidate.lower() not in taken:
                    distractors.append(candidate)
                    taken.add(candidate.lower())

        options = [correct] + distractors
        self.rng.shuffle(options)
        return options

    def _multiple_choice(self, word: Word, pool: Sequence[Word], index: int, pad: bool = False) -> QuizQuestion:
        return QuizQuestion(
            id=f"q{index}",
            type="multiple-choice",
            prompt=f'What does "{word.text}" mean?',
            correct_answer=word.translation,
            word=word,
            options=self._options(word, pool, pad),
            explanation=f'"{word.text}" means "{word.translation}" {word.emoji}',
        )

    def _reverse(self, word: Word, index: int, language_name: str) -> QuizQuestion:
        return QuizQuestion(
            id=f"q{index}",
            type="reverse",
            prompt=f"Which {language_name} word matches this clue: {word.emoji} ({word.translation})?",
            correct_answer=word.text,
            word=word,
            explanation=f'{word.emoji} "{word.text}" means "{word.translation}"',
        )

    def _cloze(self, word: Word, story: Story, pool: Sequence[Word], index: int) -> QuizQuestion:
        lower = word.text.lower()
        for line in story.dialogue:
            if not any(w.text.lower() == lower for w in line.words):
                continue
            sentence = blank_out(line.text, word.text)
            if sentence is None:
                break
            return QuizQuestion(
                id=f"q{index}",
                type="cloze",
                prompt=f'Fill in the blank: "{sentence}"',
                correct_answer=word.text,
                word=word,
                explanation=(f'The missing word is "{word.text}" which means '
                             f'"{word.translation}" {word.emoji}'),
            )
        # No usable sentence
        return self._multiple_choice(word, pool, index)

    def build_story_quiz(self, story: Story) -> List[QuizQuestion]:
        pool = qualifying_words(story.all_words())
        selected = self.rng.sample(pool, min(QUIZ_SIZE, len(pool)))

        questions = []
        for index, word in enumerate(selected):
            kind = self.rng.choice(["multiple-choice", "cloze", "reverse"])
            if kind == "cloze":
                questions.append(self._cloze(word, story, pool, index))
            elif kind == "reverse":
                questions.append(self._reverse(word, index, story.language.name))
            else:
                questions.append(self._multiple_choice(word, pool, index))

        logger.debug(f"Story quiz: {[q.type for q in questions]}")
        return questions

    def build_vocabulary_quiz(self, words: Sequence[Word]) -> List[QuizQuestion]:
        """One multiple-choice question per collected word."""
        return [self._multiple_choice(word, words, index, pad=True) for index, word in enumerate(words)]

    def build_review_quiz(self, learned: Sequence[LearnedWord], count: int = QUIZ_SIZE) -> List[QuizQuestion]:
        words = [entry.as_word() for entry in learned]
        selected = self.rng.sample(words, min(count, len(words)))
        questions = []
        for index, word in enumerate(selected):
            question = self._multiple_choice(word, words, index, pad=True)
            question.id = f"review-{index}"
            questions.append(question)
        return questions


class QuizSession:
    """
    One pass through a question set: single attempt per question, no
    partial credit.
    """

    def __init__(self, kind: QuizKind, questions: List[QuizQuestion], story_id: str = ""):
        self.kind = kind
        self.questions = questions
        self.story_id = story_id
        self.answers: List[QuizAnswer] = []
        self._finished = False

    @property
    def current_index(self) -> int:
        return len(self.answers)

    @property
    def current_question(self) -> Optional[QuizQuestion]:
        if self.is_complete:
            return None
        return self.questions[self.current_index]

    @property
    def is_complete(self) -> bool:
        return len(self.answers) >= len(self.questions)

    @property
    def score(self) -> int:
        return sum(1 for answer in self.answers if answer.correct)

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def percentage(self) -> float:
        return (self.score / self.total) * 100 if self.total else 0.0

    def submit(self, answer: str) -> QuizAnswer:
        question = self.current_question
        if question is None:
            raise IndexError("Quiz is already complete")

        result = QuizAnswer(
            question_id=question.id,
            answer=answer,
            correct=answers_match(answer, question.correct_answer),
            word=question.word,
        )
        self.answers.append(result)
        return result

    def _band(self) -> tuple:
        for minimum, emoji, message in SCORE_BANDS[self.kind]:
            if self.percentage >= minimum:
                return emoji, message
        return SCORE_BANDS[self.kind][-1][1:]

    def score_emoji(self) -> str:
        return self._band()[0]

    def score_message(self) -> str:
        return self._band()[1]

    def finish(self, tracker: VocabularyTracker, report_incorrect: Optional[bool] = None) -> List[Word]:
        """
        Report results once: correct words become learned, wrong ones are
        optionally marked for review (default: review quizzes only). Story
        quizzes are also written to the quiz history.

        Returns the words reported as learned.
        """
        if self._finished:
            return []
        self._finished = True

        if report_incorrect is None:
            report_incorrect = self.kind == "review"

        learned = []
        for answer in self.answers:
            if answer.correct:
                if tracker.mark_learned(answer.word, self.story_id):
                    learned.append(answer.word)
            elif report_incorrect:
                tracker.mark_incorrect(answer.word.text)

        if self.kind == "story" and self.story_id:
            tracker.db.save_quiz_result(
                QuizRecord(story_id=self.story_id, score=self.score, total=self.total),
                tracker.user_id,
            )

        logger.success(f"Quiz complete: {self.score}/{self.total} ({len(learned)} words learned)")
        return learned

    def retake(self, questions: Optional[List[QuizQuestion]] = None) -> None:
        """Start over, optionally with a fresh question set."""
        if questions is not None:
            self.questions = questions
        self.answers = []
        self._finished = False
