"""
Story practice surface: everything a story page can do, without the page.

One StoryPracticeSurface wraps one story and wires the read-aloud player, the
recognition session, the practice coordinator, quizzes, vocabulary tracking,
the saved-story library and sentence translation together. Handlers return
plain values and leave a user-facing ``message`` behind; rendering is up to the
caller.
"""

import asyncio
from dataclasses import replace
from typing import Awaitable, Callable, Dict, List, Optional, Set

from .config import Settings
from .errors import PersistenceFailure, UnsupportedCapability
from .library import StoryLibrary
from .logger import logger
from .models import RecognitionResult, Story, Word
from .playback import UtteranceQueuePlayer
from .practice import PracticeSessionCoordinator
from .quiz import QuizEngine, QuizSession
from .recognition import RecognitionSession
from .speech_io import AudioDeviceGuard, SpeechInput, SpeechOutput
from .translation import TranslationService
from .vocabulary import VocabularyTracker, clean_word, is_trackable

LISTEN_UNSUPPORTED_MESSAGE = "Text-to-speech is not supported on this device"
SPEAK_UNSUPPORTED_MESSAGE = "Speech recognition is not supported on this device"


class StoryPracticeSurface:
    """
    Interactive state for one story.

    ``on_highlight`` follows the read-aloud position, ``on_line_change`` the
    practice position; both receive a line id or None.
    """

    def __init__(
        self,
        story: Story,
        output: SpeechOutput,
        speech_input: SpeechInput,
        translator: TranslationService,
        tracker: VocabularyTracker,
        library: StoryLibrary,
        settings: Optional[Settings] = None,
        quiz_engine: Optional[QuizEngine] = None,
        device_guard: Optional[AudioDeviceGuard] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_highlight: Optional[Callable[[Optional[str]], None]] = None,
        on_line_change: Optional[Callable[[Optional[str]], None]] = None,
        auto_capture: bool = True,
    ):
        settings = settings or Settings()
        self.story = story
        self.translator = translator
        self.tracker = tracker
        self.library = library
        self.quiz_engine = quiz_engine or QuizEngine()
        self.device_guard = device_guard or AudioDeviceGuard()
        self.on_highlight = on_highlight
        self.on_line_change = on_line_change

        self.player = UtteranceQueuePlayer(
            output,
            on_highlight=self._highlight,
            language=settings.speech_language,
            rate=settings.speech_rate,
            pitch=settings.speech_pitch,
            sleep=sleep,
            device_guard=self.device_guard,
        )
        self.recognition = RecognitionSession(
            speech_input,
            language=settings.speech_language,
            timeout=settings.capture_timeout_seconds,
            sleep=sleep,
            device_guard=self.device_guard,
        )
        self.practice = PracticeSessionCoordinator(
            self.recognition,
            on_line_change=self._line_change,
            on_result=self._practice_result,
            auto_capture=auto_capture,
        )

        self.highlighted_id: Optional[str] = None
        self.practice_line_id: Optional[str] = None
        self.line_results: Dict[str, RecognitionResult] = {}
        self.message: Optional[str] = None

        # line id -> English, and which lines currently show it
        self.sentence_translations: Dict[str, str] = {}
        self.shown_translations: Set[str] = set()

        self.vocabulary_mode = False
        self.clicked_words: Dict[str, Word] = {}
        self.click_counts: Dict[str, int] = {}

        self._playback_task: Optional[asyncio.Task] = None

    # ---------------------------------------------------------------------------
    # Capabilities
    # ---------------------------------------------------------------------------

    @property
    def listen_supported(self) -> bool:
        return self.player.is_supported()

    @property
    def speak_supported(self) -> bool:
        return self.recognition.is_supported()

    def _highlight(self, segment_id: Optional[str]) -> None:
        self.highlighted_id = segment_id
        if self.on_highlight:
            self.on_highlight(segment_id)

    def _line_change(self, line_id: Optional[str]) -> None:
        self.practice_line_id = line_id
        if self.on_line_change:
            self.on_line_change(line_id)

    def _practice_result(self, line_id: str, result: RecognitionResult) -> None:
        self.line_results[line_id] = result
        self.message = result.message

    # ---------------------------------------------------------------------------
    # Read aloud
    # ---------------------------------------------------------------------------

    def handle_listen(self) -> str:
        """
        The listen button: start reading, pause, or resume.

        Returns the action taken: "play", "pause", "resume", "busy" (between
        two segments, nothing to pause) or "unsupported".
        """
        if not self.listen_supported:
            self.message = LISTEN_UNSUPPORTED_MESSAGE
            return "unsupported"

        if self.player.is_paused:
            self.player.resume()
            return "resume"
        if self.player.is_playing:
            return "pause" if self.player.pause() else "busy"

        self.practice.end()
        self._playback_task = asyncio.ensure_future(self.player.play(self.story.segments()))
        return "play"

    def stop_listening(self) -> None:
        self.player.stop()

    # ---------------------------------------------------------------------------
    # Speaking practice
    # ---------------------------------------------------------------------------

    def start_speaking(self) -> bool:
        """Start guided practice from the first line."""
        if not self.speak_supported:
            self.message = SPEAK_UNSUPPORTED_MESSAGE
            return False
        self.player.stop()
        self.line_results = {}
        return self.practice.start(self.story.dialogue) is not None

    async def practice_line(self, line_id: str) -> Optional[RecognitionResult]:
        """One attempt at a single sentence, outside guided practice."""
        line = self.story.line_by_id(line_id)
        if line is None:
            logger.warning(f"Unknown line {line_id}")
            return None

        self.player.stop()
        try:
            result = await self.recognition.capture(line.text)
        except UnsupportedCapability:
            self.message = SPEAK_UNSUPPORTED_MESSAGE
            return None
        if result is None:
            return None

        self.line_results[line_id] = result
        self.message = result.message
        return result

    async def attempt_current(self) -> Optional[RecognitionResult]:
        """Retry the current practice line."""
        return await self.practice.attempt()

    def skip_sentence(self) -> Optional[str]:
        return self.practice.skip()

    def complete_sentence(self) -> Optional[str]:
        return self.practice.complete_current()

    def end_practice(self) -> None:
        self.practice.end()

    # ---------------------------------------------------------------------------
    # Library
    # ---------------------------------------------------------------------------

    def toggle_saved(self) -> bool:
        """
        Save or unsave the story. On a failed write the story keeps its
        previous state and ``message`` says the change did not happen.
        """
        try:
            self.story = self.library.toggle_saved(self.story)
        except PersistenceFailure as e:
            logger.error(f"Could not {e.operation}: {e.cause}")
            self.message = f"Could not {e.operation}. Please try again."
            return False

        self.message = "Story saved" if self.story.is_saved else "Story removed from saved"
        return True

    # ---------------------------------------------------------------------------
    # Translation
    # ---------------------------------------------------------------------------

    async def translate_sentence(self, line_id: str) -> Optional[str]:
        """Show or hide the English version of a line; returns it when shown."""
        if line_id in self.shown_translations:
            self.shown_translations.discard(line_id)
            return None

        line = self.story.line_by_id(line_id)
        if line is None:
            return None

        if line_id not in self.sentence_translations:
            source = self.story.language.code
            self.sentence_translations[line_id] = await asyncio.to_thread(
                self.translator.translate_line, line, source, "en"
            )
        self.shown_translations.add(line_id)
        return self.sentence_translations[line_id]

    # ---------------------------------------------------------------------------
    # Vocabulary mode
    # ---------------------------------------------------------------------------

    def set_vocabulary_mode(self, enabled: bool) -> None:
        self.vocabulary_mode = enabled
        logger.ui(f"Vocabulary mode {'on' if enabled else 'off'}")

    def click_word(self, word: Word) -> bool:
        """Collect a clicked word and record the encounter. Short and common words are skipped."""
        if not self.vocabulary_mode:
            return False
        text = clean_word(word.text)
        if not is_trackable(text):
            return False

        key = text.lower()
        if key not in self.clicked_words:
            self.clicked_words[key] = replace(word, text=text)
        self.click_counts[key] = self.click_counts.get(key, 0) + 1
        self.tracker.add_encounter(word, self.story.id)
        return True

    def remove_clicked_word(self, text: str) -> None:
        key = clean_word(text).lower()
        self.clicked_words.pop(key, None)
        self.click_counts.pop(key, None)

    async def translate_clicked_words(self) -> int:
        """Replace collected words' translations with AI ones. Returns how many changed."""
        if not self.clicked_words:
            return 0

        keys = list(self.clicked_words)
        texts = [self.clicked_words[key].text for key in keys]
        source = self.story.language.code
        results = await asyncio.to_thread(self.translator.batch_translate, texts, source, "en")

        changed = 0
        for key, result in zip(keys, results):
            if result.success and result.translated_text:
                self.clicked_words[key] = replace(self.clicked_words[key], translation=result.translated_text)
                changed += 1
            else:
                logger.debug(f"Keeping existing translation for {key}: {result.error}")
        if changed < len(keys):
            self.message = "Some words could not be translated"
        return changed

    # ---------------------------------------------------------------------------
    # Quizzes
    # ---------------------------------------------------------------------------

    def _quiet(self) -> None:
        self.player.stop()
        self.practice.end()

    def open_story_quiz(self) -> Optional[QuizSession]:
        self._quiet()
        questions = self.quiz_engine.build_story_quiz(self.story)
        if not questions:
            self.message = "Not enough words in this story for a quiz"
            return None
        return QuizSession("story", questions, story_id=self.story.id)

    def open_vocabulary_quiz(self) -> Optional[QuizSession]:
        self._quiet()
        words: List[Word] = list(self.clicked_words.values())
        if not words:
            self.message = "Click some words first to build a vocabulary quiz"
            return None
        return QuizSession("vocabulary", self.quiz_engine.build_vocabulary_quiz(words), story_id=self.story.id)

    def open_review_quiz(self) -> Optional[QuizSession]:
        self._quiet()
        if not self.tracker.learned_words:
            self.message = "No learned words to review yet"
            return None
        return QuizSession("review", self.quiz_engine.build_review_quiz(self.tracker.learned_words))

    def finish_quiz(self, session: QuizSession) -> List[Word]:
        learned = session.finish(self.tracker)
        self.message = f"{session.score_emoji()} {session.score_message()}"
        return learned

    # ---------------------------------------------------------------------------
    # Teardown
    # ---------------------------------------------------------------------------

    def close(self) -> None:
        """Release audio and stop background work. Safe to call repeatedly."""
        self.player.close()
        self.practice.end()
        self.recognition.abort()
        if self._playback_task and not self._playback_task.done():
            self._playback_task.cancel()
        self._playback_task = None
