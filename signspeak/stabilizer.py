"""
Gesture stabilization: turns per-frame classifications into sentence commands.
"""
import logging
from typing import Dict, List, Optional

from .config import Cfg
from .types import (
    CONTROL_LABELS,
    NOTHING_LABEL,
    SPEAK_LABEL,
    AppendWord,
    ClassificationResult,
    ClearSentence,
    DeleteLastWord,
    SentenceCommand,
    SpeakSentence,
    SpeechOutputProto,
)

logger = logging.getLogger(__name__)


class Sentence:
    """Ordered words; a word equal to the current last word is never appended."""

    def __init__(self, words: Optional[List[str]] = None):
        self.words: List[str] = list(words or [])

    def __len__(self) -> int:
        return len(self.words)

    @property
    def last_word(self) -> Optional[str]:
        return self.words[-1] if self.words else None

    def append(self, word: str) -> bool:
        if self.last_word == word:
            return False
        self.words.append(word)
        return True

    def delete_last(self) -> Optional[str]:
        if not self.words:
            return None
        return self.words.pop()

    def clear(self) -> None:
        self.words = []

    def text(self) -> str:
        return " ".join(self.words)


class GestureStabilizer:
    """
    Debounces a stream of classifications into discrete commands.

    Features:
    - Confidence gate: sub-threshold classifications are dropped untouched
    - Control labels (SPEAK / DELETE) act immediately, guarded by a cooldown
    - Other labels must repeat for `stable_frames` further frames to be appended
    - NOTHING is a neutral pose and leaves the running count alone
    - Everything is suppressed while a gesture is being taught
    """

    def __init__(self, cfg: Cfg):
        self.cfg = cfg
        self.last_label = ""
        self.consecutive_count = 0

        # Shared deadline for both control actions, or one per action
        self.cooldown_until: float = 0.0
        self.action_cooldown_until: Dict[str, float] = {label: 0.0 for label in CONTROL_LABELS}

    def action_cooldown_active(self, t_now: float, label: Optional[str] = None) -> bool:
        """
        Check whether control actions are locked out.

        Args:
            t_now: Current timestamp in seconds
            label: Control label to check; None checks any action

        Returns:
            True if the action may not fire yet
        """
        if self.cfg.stabilizer.shared_action_cooldown:
            return t_now < self.cooldown_until
        if label is None:
            return any(t_now < until for until in self.action_cooldown_until.values())
        return t_now < self.action_cooldown_until[label]

    def update(self, result: ClassificationResult, t_now: float, sentence_empty: bool,
               training_active: bool = False) -> Optional[SentenceCommand]:
        """
        Process one classification and return a command if one should fire.

        Args:
            result: Classifier output for the current frame
            t_now: Current timestamp in seconds
            sentence_empty: Whether the sentence currently has no words
            training_active: Whether a gesture is being captured for training

        Returns:
            SentenceCommand to apply, None otherwise
        """
        scfg = self.cfg.stabilizer

        if result.confidence <= scfg.confidence_threshold:
            return None

        if training_active:
            return None

        label = result.label

        if label in CONTROL_LABELS:
            return self._control_command(label, t_now, sentence_empty)

        if label == NOTHING_LABEL:
            return None

        if not label:
            self.last_label = ""
            self.consecutive_count = 0
            return None

        if label == self.last_label:
            self.consecutive_count += 1
        else:
            self.consecutive_count = 0
            self.last_label = label

        if self.consecutive_count == scfg.stable_frames:
            self.consecutive_count = 0
            return AppendWord(word=label)

        return None

    def _control_command(self, label: str, t_now: float,
                         sentence_empty: bool) -> Optional[SentenceCommand]:
        if sentence_empty or self.action_cooldown_active(t_now, label):
            return None

        scfg = self.cfg.stabilizer
        if label == SPEAK_LABEL:
            command: SentenceCommand = SpeakSentence()
            cooldown_ms = scfg.speak_cooldown_ms
        else:
            command = DeleteLastWord()
            cooldown_ms = scfg.delete_cooldown_ms

        until = t_now + cooldown_ms / 1000.0
        if scfg.shared_action_cooldown:
            self.cooldown_until = until
        else:
            self.action_cooldown_until[label] = until

        return command

    def reset(self) -> None:
        """Forget the running label and every cooldown."""
        self.last_label = ""
        self.consecutive_count = 0
        self.cooldown_until = 0.0
        for label in self.action_cooldown_until:
            self.action_cooldown_until[label] = 0.0


class SentenceBuilder:
    """
    Owns the sentence and applies commands coming from the stabilizer or the UI.
    """

    def __init__(self, cfg: Cfg, speech: SpeechOutputProto):
        self.cfg = cfg
        self.speech = speech
        self.sentence = Sentence()
        self.stabilizer = GestureStabilizer(cfg)

    @property
    def words(self) -> List[str]:
        return list(self.sentence.words)

    def process(self, result: ClassificationResult, t_now: float,
                training_active: bool = False) -> Optional[SentenceCommand]:
        """Feed a classification through the stabilizer and apply the resulting command."""
        command = self.stabilizer.update(
            result,
            t_now,
            sentence_empty=len(self.sentence) == 0,
            training_active=training_active,
        )
        if command is not None:
            self.apply(command)
        return command

    def apply(self, command: SentenceCommand) -> None:
        if isinstance(command, AppendWord):
            self.append_word(command.word)
        elif isinstance(command, DeleteLastWord):
            self.delete_last_word()
        elif isinstance(command, SpeakSentence):
            self.speak()
        elif isinstance(command, ClearSentence):
            self.clear()
        else:
            raise TypeError(f"Unknown sentence command: {command!r}")

    def append_word(self, word: str) -> bool:
        appended = self.sentence.append(word)
        if appended:
            logger.info("➕ %s -> %r", word, self.sentence.text())
        return appended

    def delete_last_word(self) -> Optional[str]:
        removed = self.sentence.delete_last()
        if removed is not None:
            logger.info("⬅️ Deleted %s", removed)
        return removed

    def clear(self) -> None:
        self.sentence.clear()

    def speak(self) -> str:
        """
        Speak the sentence, or the fallback phrase if it is empty.

        Raises:
            SpeechUnavailableError: If no speech backend can be used
        """
        text = self.sentence.text() or self.cfg.speech.fallback_text
        self.speech.cancel()
        self.speech.speak(text)
        logger.info("🔊 Speaking: %s", text)
        return text
