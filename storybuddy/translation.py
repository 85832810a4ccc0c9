"""
Sentence translation with an explicit cache and a word-by-word fallback.
"""

import re
from typing import Dict, Iterable, List, Optional

from .api import StoryAIService
from .errors import RemoteServiceFailure
from .logger import logger
from .models import DialogueLine, TranslationResult, Word

_SURROUNDING_QUOTES = re.compile(r"^[\"']|[\"']$")
_NUMBERED_PREFIX = re.compile(r"^\d+\.\s*[\"']?|[\"']?$")


def fallback_translation(words: Iterable[Word]) -> str:
    """Word-by-word gloss built from each word's own translation."""
    return " ".join(word.translation for word in words)


def classify_error(message: str) -> str:
    """Turn a raw client error into a short user-facing reason."""
    if "API key" in message:
        return "Invalid API key"
    if "quota" in message or "limit" in message:
        return "API quota exceeded"
    if "network" in message or "fetch" in message:
        return "Network error"
    return message or "Translation failed"


class TranslationService:
    """
    Translates dialogue text through the AI service.

    Successful translations are cached per (source, target, text); nothing
    here raises, failures come back as TranslationResult(success=False).
    """

    def __init__(self, ai: Optional[StoryAIService]):
        self.ai = ai
        self._cache: Dict[str, str] = {}

    @staticmethod
    def _cache_key(text: str, source: str, target: str) -> str:
        return f"{source}-{target}-{text}"

    def is_configured(self) -> bool:
        return self.ai is not None and self.ai.is_available()

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> None:
        self._cache.clear()

    def translate(self, text: str, source: str = "de", target: str = "en") -> TranslationResult:
        if not self.is_configured():
            return TranslationResult(success=False, error="AI translation not configured")

        key = self._cache_key(text, source, target)
        if key in self._cache:
            return TranslationResult(success=True, translated_text=self._cache[key])

        try:
            raw = self.ai.translate(text, source, target)
        except RemoteServiceFailure as e:
            logger.warning(f"Translation failed: {e}")
            return TranslationResult(success=False, error=classify_error(str(e)))

        cleaned = _SURROUNDING_QUOTES.sub("", raw.strip())
        if not cleaned:
            return TranslationResult(success=False, error="No translation returned from AI")

        self._cache[key] = cleaned
        return TranslationResult(success=True, translated_text=cleaned)

    def batch_translate(self, texts: List[str], source: str = "de", target: str = "en") -> List[TranslationResult]:
        """Translate many texts with one request for everything not already cached."""
        if not self.is_configured():
            return [TranslationResult(success=False, error="AI translation not configured") for _ in texts]

        results: List[Optional[TranslationResult]] = [None] * len(texts)
        pending = []
        for index, text in enumerate(texts):
            key = self._cache_key(text, source, target)
            if key in self._cache:
                results[index] = TranslationResult(success=True, translated_text=self._cache[key])
            else:
                pending.append((index, text))

        if pending:
            logger.debug(f"Batch translating {len(pending)} of {len(texts)} texts")
            try:
                lines = self.ai.translate_batch([text for _, text in pending], source, target)
            except RemoteServiceFailure as e:
                logger.warning(f"Batch translation failed: {e}")
                for index, _ in pending:
                    results[index] = TranslationResult(success=False, error=str(e) or "Translation failed")
                return results

            for position, (index, text) in enumerate(pending):
                if position >= len(lines):
                    results[index] = TranslationResult(success=False, error="Translation not found in response")
                    continue
                translation = _NUMBERED_PREFIX.sub("", lines[position]).strip()
                if not translation:
                    results[index] = TranslationResult(success=False, error="Failed to parse translation")
                    continue
                self._cache[self._cache_key(text, source, target)] = translation
                results[index] = TranslationResult(success=True, translated_text=translation)

        return results

    def translate_line(self, line: DialogueLine, source: str = "de", target: str = "en") -> str:
        """
        English rendering of a dialogue line.

        Uses the line's own translation when it has one, then the AI service,
        then the word-by-word gloss.
        """
        if line.translation and line.translation != line.text:
            return line.translation

        result = self.translate(line.text, source, target)
        if result.success and result.translated_text:
            return result.translated_text

        logger.warning(f"AI translation failed, using fallback: {result.error}")
        return fallback_translation(line.words)
