from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp (accepting a trailing Z); naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ---------------------------------------------------------------------------
# Reference types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Language:
    code: str                        # ISO 639-1, e.g. "de"
    name: str
    flag: str = ""


@dataclass(frozen=True)
class Situation:
    id: str                          # "restaurant", or "custom-<slug>" for user-defined ones
    title: str
    description: str = ""

    @property
    def is_custom(self) -> bool:
        return self.id.startswith("custom-")


# ---------------------------------------------------------------------------
# Story content (immutable once generated)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Character:
    name: str
    role: str
    avatar: str                      # emoji


@dataclass(frozen=True)
class Word:
    """A clickable word of a dialogue line."""
    text: str
    translation: str
    emoji: str


@dataclass(frozen=True)
class DialogueLine:
    id: str                          # "line-<index>"
    character: Character
    text: str                        # target-language sentence
    translation: str                 # English, or the sentence itself for template stories
    words: Tuple[Word, ...] = ()


@dataclass(frozen=True)
class Segment:
    """One utterance handed to the queue player."""
    id: str
    text: str


@dataclass(frozen=True)
class Story:
    id: str
    title: str
    language: Language
    situation: Situation
    dialogue: Tuple[DialogueLine, ...]
    created_at: datetime
    is_saved: bool = False

    def segments(self) -> List[Segment]:
        return [Segment(id=line.id, text=line.text) for line in self.dialogue]

    def line_by_id(self, line_id: str) -> Optional[DialogueLine]:
        for line in self.dialogue:
            if line.id == line_id:
                return line
        return None

    def all_words(self) -> List[Word]:
        return [word for line in self.dialogue for word in line.words]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        # Firestore stores arrays, not tuples
        data["dialogue"] = [dict(line, words=list(line["words"])) for line in data["dialogue"]]
        data["created_at"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Story":
        dialogue = tuple(
            DialogueLine(
                id=line["id"],
                character=Character(**line["character"]),
                text=line["text"],
                translation=line.get("translation", line["text"]),
                words=tuple(Word(**w) for w in line.get("words", [])),
            )
            for line in data.get("dialogue", [])
        )
        return cls(
            id=data["id"],
            title=data["title"],
            language=Language(**data["language"]),
            situation=Situation(**data["situation"]),
            dialogue=dialogue,
            created_at=parse_iso(data.get("created_at")) or datetime.now(timezone.utc),
            is_saved=bool(data.get("is_saved", False)),
        )


# ---------------------------------------------------------------------------
# Transient practice state
# ---------------------------------------------------------------------------

class Verdict(str, Enum):
    """Outcome of one pronunciation attempt."""
    SUCCESS = "success"              # similarity >= 0.8
    PARTIAL = "partial"              # 0.6 <= similarity < 0.8
    FAILURE = "failure"              # similarity < 0.6, or a capture error


@dataclass
class PlaybackState:
    is_playing: bool = False
    is_paused: bool = False
    current_index: int = 0


@dataclass
class RecognitionResult:
    transcript: str
    similarity: float
    missing_words: List[str] = field(default_factory=list)
    extra_words: List[str] = field(default_factory=list)
    verdict: Verdict = Verdict.FAILURE
    message: str = ""                # user-facing verdict or error text
    details: List[str] = field(default_factory=list)   # "Missing words: ..." / "Extra words: ..."
    error_code: Optional[str] = None  # set when the capture itself failed


@dataclass
class PracticeSessionState:
    line_ids: List[str] = field(default_factory=list)
    current_index: int = 0
    is_active: bool = False

    @property
    def current_line_id(self) -> Optional[str]:
        if not self.is_active or not self.line_ids:
            return None
        return self.line_ids[self.current_index]


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------

@dataclass
class UserProfile:
    user_id: str
    email: str = ""
    username: str = "Language Learner"
    target_languages: List[str] = field(default_factory=lambda: ["de"])
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class LearnedWord:
    word: str
    translation: str
    emoji: str
    language: str = "de"
    story_id: str = ""
    times_correct: int = 1
    times_incorrect: int = 0
    learned_at: str = ""             # ISO timestamp
    last_reviewed: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LearnedWord":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def as_word(self) -> Word:
        return Word(text=self.word, translation=self.translation, emoji=self.emoji)


@dataclass
class VocabularyEncounter:
    word: str
    translation: str
    emoji: str
    language: str = "de"
    story_id: Optional[str] = None
    times_encountered: int = 1
    first_seen_at: str = ""
    last_seen_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VocabularyEncounter":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class QuizRecord:
    story_id: str
    score: int
    total: int
    completed_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuizRecord":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


# ---------------------------------------------------------------------------
# AI service payloads
# ---------------------------------------------------------------------------

Difficulty = Literal["beginner", "intermediate", "advanced"]
StoryLength = Literal["short", "medium", "long"]


@dataclass
class DialogueRequest:
    situation: str                   # free-text situation title
    language: str = "de"
    difficulty: Difficulty = "intermediate"
    length: StoryLength = "medium"


@dataclass
class GeneratedLine:
    speaker: Literal["character1", "character2"]
    text: str
    translation: str


@dataclass
class GeneratedDialogue:
    character1: Character
    character2: Character
    lines: List[GeneratedLine] = field(default_factory=list)


@dataclass
class TranslationResult:
    success: bool
    translated_text: Optional[str] = None
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Quiz
# ---------------------------------------------------------------------------

QuestionType = Literal["multiple-choice", "cloze", "reverse"]


@dataclass
class QuizQuestion:
    id: str                          # "q<index>"
    type: QuestionType
    prompt: str
    correct_answer: str
    word: Word
    options: List[str] = field(default_factory=list)   # multiple-choice only
    explanation: str = ""


@dataclass
class QuizAnswer:
    question_id: str
    answer: str
    correct: bool
    word: Word
