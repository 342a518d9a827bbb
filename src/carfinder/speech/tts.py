# tts.py
# Offline text-to-speech voice output backed by pyttsx3.
# A single worker thread owns the engine and drains a priority queue of utterances.

import itertools
import logging
import queue
import threading
import time
from typing import Callable, List, Optional, Sequence, Tuple

import pyttsx3

from carfinder.guidance.errors import SpeechUnavailableError
from carfinder.guidance.models import SpeechPriority

logger = logging.getLogger(__name__)

PREFERRED_VOICES = ("Samantha", "Victoria", "Ava", "Moira", "Karen", "Tessa", "Kathy")
DEFAULT_RATE = 165
INIT_TIMEOUT_S = 5.0
DEDUPE_WINDOW_S = 10.0

# Sorts after every SpeechPriority
_SHUTDOWN_PRIORITY = max(SpeechPriority) + 1


class PyttsxVoiceOutput:
    """
    Voice channel for the guidance engine.

    speak() only enqueues; the worker thread says queued text most urgent
    first, and in arrival order within one priority. Text that was spoken
    within the last `dedupe_window_s` seconds (compared case-insensitively)
    is skipped. stop() drops anything still queued and interrupts the
    current utterance.

    Raises:
        SpeechUnavailableError: the pyttsx3 engine could not be initialised.
    """

    def __init__(
        self,
        rate: int = DEFAULT_RATE,
        volume: float = 1.0,
        voice_preferences: Sequence[str] = PREFERRED_VOICES,
        dedupe_window_s: float = DEDUPE_WINDOW_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._rate = rate
        self._volume = volume
        self._voice_preferences = voice_preferences
        self._dedupe_window_s = dedupe_window_s
        self._clock = clock

        self._queue: "queue.PriorityQueue[Tuple[int, int, Optional[str]]]" = queue.PriorityQueue()
        self._order = itertools.count()
        self._recent: List[Tuple[str, float]] = []      # (normalized text, spoken at)
        self._recent_lock = threading.Lock()
        self._ready = threading.Event()
        self._engine = None
        self._init_error: Optional[Exception] = None
        self._speaking = False
        self._closed = False

        self._thread = threading.Thread(target=self._worker, daemon=True)
        self._thread.start()
        if not self._ready.wait(timeout=INIT_TIMEOUT_S):
            raise SpeechUnavailableError("TTS engine did not start in time")
        if self._init_error is not None:
            raise SpeechUnavailableError(f"TTS engine failed to start: {self._init_error}")

    # ------------------------------------------------------------------
    # Engine setup
    # ------------------------------------------------------------------

    def _init_engine(self):
        engine = pyttsx3.init()
        engine.setProperty("rate", self._rate)
        engine.setProperty("volume", self._volume)

        # Pick a clearer voice when one is installed
        for v in engine.getProperty("voices") or []:
            if any(p.lower() in (v.name or "").lower() for p in self._voice_preferences):
                engine.setProperty("voice", v.id)
                break
        return engine

    def _worker(self) -> None:
        try:
            self._engine = self._init_engine()
        except (RuntimeError, OSError, ImportError) as e:
            self._init_error = e
            self._ready.set()
            return
        self._ready.set()

        while True:
            _, _, text = self._queue.get()
            if text is None:
                self._queue.task_done()
                break
            try:
                self._speaking = True
                self._engine.say(text)
                self._engine.runAndWait()
                self._record_spoken(text)
            except RuntimeError as e:
                logger.error(f"TTS error: {e}")
            finally:
                self._speaking = False
                self._queue.task_done()

    # ------------------------------------------------------------------
    # Deduplication
    # ------------------------------------------------------------------

    def _is_duplicate(self, text: str) -> bool:
        now = self._clock()
        key = text.lower()
        with self._recent_lock:
            self._recent = [(t, at) for t, at in self._recent if now - at < self._dedupe_window_s]
            return any(t == key for t, _ in self._recent)

    def _record_spoken(self, text: str) -> None:
        with self._recent_lock:
            self._recent.append((text.lower(), self._clock()))

    # ------------------------------------------------------------------
    # VoiceOutput
    # ------------------------------------------------------------------

    def speak(self, text: str, priority: SpeechPriority = SpeechPriority.NORMAL) -> None:
        if self._closed:
            raise SpeechUnavailableError("TTS output is closed")
        text = (text or "").strip()
        if not text:
            return
        if self._is_duplicate(text):
            logger.debug(f"Skipping recently spoken text: {text}")
            return
        self._queue.put((int(priority), next(self._order), text))

    def stop(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
            self._queue.task_done()
        if self._speaking and self._engine is not None:
            self._engine.stop()

    def close(self, timeout: float = 5.0) -> None:
        """Stop speaking and shut the worker down."""
        if self._closed:
            return
        self._closed = True
        self.stop()
        self._queue.put((_SHUTDOWN_PRIORITY, next(self._order), None))
        self._thread.join(timeout=timeout)

    @property
    def is_speaking(self) -> bool:
        return self._speaking

    def wait_until_done(self) -> None:
        """Block until everything queued so far has been spoken."""
        self._queue.join()
