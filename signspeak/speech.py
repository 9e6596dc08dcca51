"""
Text-to-speech backends.

Every backend keeps at most one utterance alive: `speak` interrupts whatever
is currently playing before starting the new text.
"""
import logging
import os
import queue
import shutil
import subprocess
import tempfile
import threading
from typing import Callable, List, Optional, Tuple

import pyttsx3
from dotenv import load_dotenv
from elevenlabs.client import ElevenLabs

from .config import SpeechConfig
from .errors import SpeechUnavailableError
from .types import SpeechOutputProto

logger = logging.getLogger(__name__)


class ConsoleSpeech:
    """Speech backend that logs text instead of playing it."""

    def __init__(self):
        self.spoken: List[str] = []
        self.cancel_count = 0

    def speak(self, text: str) -> None:
        self.cancel()
        self.spoken.append(text)
        logger.info("[Speech] %s", text)

    def cancel(self) -> None:
        self.cancel_count += 1


class Pyttsx3Speech:
    """Offline speech through pyttsx3, played on a background worker thread."""

    def __init__(self, volume: float = 1.0, rate: int = 175):
        try:
            self.engine = pyttsx3.init()
        except (ImportError, RuntimeError, OSError) as e:
            raise SpeechUnavailableError(f"pyttsx3 unavailable: {e}") from e
        self.engine.setProperty("volume", volume)
        self.engine.setProperty("rate", rate)

        self._queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self._worker = threading.Thread(target=self._run, name="pyttsx3-speech", daemon=True)
        self._worker.start()

    def _run(self) -> None:
        while True:
            text = self._queue.get()
            if text is None:
                break
            try:
                self.engine.say(text)
                self.engine.runAndWait()
            except RuntimeError as e:
                logger.error("❌ pyttsx3 failed to speak: %s", e)

    def speak(self, text: str) -> None:
        self.cancel()
        self._queue.put(text)

    def cancel(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
        self.engine.stop()

    def close(self) -> None:
        self.cancel()
        self._queue.put(None)


class ElevenLabsSpeech:
    """
    Speech through the Eleven Labs API, played with ffplay.

    Synthesis and playback run on a background worker thread so `speak`
    returns at once. Requires ELEVEN_LABS_API_KEY in the environment (or a
    .env file) and ffplay on PATH.
    """

    def __init__(self, voice_id: str, model_id: str):
        load_dotenv()
        api_key = os.getenv("ELEVEN_LABS_API_KEY")
        if not api_key:
            raise SpeechUnavailableError("ELEVEN_LABS_API_KEY not found in environment variables")

        self.player = shutil.which("ffplay")
        if self.player is None:
            raise SpeechUnavailableError("ffplay is required to play Eleven Labs audio")

        self.client = ElevenLabs(api_key=api_key)
        self.voice_id = voice_id
        self.model_id = model_id

        # Requests queued under an older generation are never played
        self._lock = threading.Lock()
        self._generation = 0
        self._process: Optional[subprocess.Popen] = None

        self._queue: "queue.Queue[Optional[Tuple[int, str]]]" = queue.Queue()
        self._worker = threading.Thread(target=self._run, name="elevenlabs-speech", daemon=True)
        self._worker.start()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                break
            generation, text = item
            try:
                self._play(generation, text)
            except Exception as e:
                logger.error("❌ Eleven Labs speech failed: %s", e)

    def _play(self, generation: int, text: str) -> None:
        audio_generator = self.client.text_to_speech.convert(
            text=text,
            voice_id=self.voice_id,
            model_id=self.model_id,
            output_format="mp3_22050_32",
        )
        audio_bytes = b"".join(audio_generator)

        with tempfile.NamedTemporaryFile(suffix=".mp3", delete=False) as f:
            f.write(audio_bytes)
            audio_path = f.name

        try:
            with self._lock:
                if generation != self._generation:
                    return
                process = subprocess.Popen(
                    [self.player, "-nodisp", "-autoexit", "-loglevel", "quiet", audio_path],
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                )
                self._process = process
            process.wait()
            with self._lock:
                if self._process is process:
                    self._process = None
        finally:
            try:
                os.remove(audio_path)
            except OSError:
                logger.debug("Could not remove %s", audio_path)

    def speak(self, text: str) -> None:
        self.cancel()
        self._queue.put((self._generation, text))

    def cancel(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
        with self._lock:
            self._generation += 1
            process, self._process = self._process, None
        if process is not None and process.poll() is None:
            process.terminate()

    def close(self) -> None:
        self.cancel()
        self._queue.put(None)


class LazySpeechOutput:
    """
    Builds the real backend on first use and reuses it afterwards.

    A factory that raises SpeechUnavailableError is tried again on the next
    call; nothing is retried in the background.
    """

    def __init__(self, factory: Callable[[], SpeechOutputProto]):
        self._factory = factory
        self._backend: Optional[SpeechOutputProto] = None

    @property
    def backend(self) -> SpeechOutputProto:
        if self._backend is None:
            self._backend = self._factory()
        return self._backend

    def speak(self, text: str) -> None:
        self.backend.speak(text)

    def cancel(self) -> None:
        if self._backend is not None:
            self._backend.cancel()


def create_speech_backend(cfg: SpeechConfig) -> SpeechOutputProto:
    """Instantiate the backend named in the speech configuration."""
    if cfg.backend == "pyttsx3":
        return Pyttsx3Speech(volume=cfg.volume, rate=cfg.rate)
    if cfg.backend == "elevenlabs":
        return ElevenLabsSpeech(voice_id=cfg.voice_id, model_id=cfg.model_id)
    if cfg.backend == "console":
        return ConsoleSpeech()
    raise SpeechUnavailableError(f"Unknown speech backend: {cfg.backend}")


def make_speech_output(cfg: SpeechConfig) -> LazySpeechOutput:
    """Lazily constructed speech output for a session."""
    return LazySpeechOutput(lambda: create_speech_backend(cfg))
