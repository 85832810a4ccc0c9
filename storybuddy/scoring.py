"""
Pronunciation scoring: text normalization, word-overlap similarity and
verdict classification for one spoken attempt against a target sentence.
"""

import re
from typing import List, Tuple

from .models import RecognitionResult, Verdict

# Fixed policy; not configurable at runtime.
SUCCESS_THRESHOLD = 0.8
PARTIAL_THRESHOLD = 0.6

VERDICT_MESSAGES = {
    Verdict.SUCCESS: "Excellent! Perfect pronunciation! 🎉",
    Verdict.PARTIAL: "Good effort! Almost there! 👍",
    Verdict.FAILURE: "Keep practicing! Try again. 💪",
}

_PUNCTUATION = re.compile(r"[.,!?;:]")
_WHITESPACE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """Lower-case, drop .,!?;: and collapse whitespace."""
    text = _PUNCTUATION.sub("", text.lower())
    return _WHITESPACE.sub(" ", text).strip()


def _tokens(text: str) -> List[str]:
    normalized = normalize(text)
    return normalized.split(" ") if normalized else []


def similarity(spoken: str, target: str) -> float:
    """
    Word-overlap ratio in [0, 1].

    Counts spoken tokens that occur anywhere in the target (order and
    multiplicity ignored) and divides by the longer token list.
    """
    if normalize(spoken) == normalize(target):
        return 1.0

    spoken_words = _tokens(spoken)
    target_words = _tokens(target)
    target_set = set(target_words)

    matches = sum(1 for word in spoken_words if word in target_set)
    return matches / max(len(spoken_words), len(target_words))


def diff_words(spoken: str, target: str) -> Tuple[List[str], List[str]]:
    """Return (missing, extra): target words never spoken, spoken words not in the target."""
    spoken_words = _tokens(spoken)
    target_words = _tokens(target)
    spoken_set = set(spoken_words)
    target_set = set(target_words)

    missing = [word for word in target_words if word not in spoken_set]
    extra = [word for word in spoken_words if word not in target_set]
    return missing, extra


def classify(score: float) -> Verdict:
    if score >= SUCCESS_THRESHOLD:
        return Verdict.SUCCESS
    if score >= PARTIAL_THRESHOLD:
        return Verdict.PARTIAL
    return Verdict.FAILURE


def detail_lines(missing: List[str], extra: List[str]) -> List[str]:
    details = []
    if missing:
        details.append(f"Missing words: {', '.join(missing)}")
    if extra:
        details.append(f"Extra words: {', '.join(extra)}")
    return details


def score_attempt(spoken: str, target: str) -> RecognitionResult:
    """Score one transcript against the sentence the learner was asked to say."""
    score = similarity(spoken, target)
    missing, extra = diff_words(spoken, target)
    verdict = classify(score)
    return RecognitionResult(
        transcript=spoken,
        similarity=score,
        missing_words=missing,
        extra_words=extra,
        verdict=verdict,
        message=VERDICT_MESSAGES[verdict],
        details=detail_lines(missing, extra),
    )
