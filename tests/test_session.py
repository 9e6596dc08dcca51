"""
Test cases for the sign-to-speech session with fake collaborators.
"""
import json
import unittest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from signspeak.classifier import KNNGestureClassifier
from signspeak.config import load_config
from signspeak.errors import SpeechUnavailableError, TrainingInProgressError
from signspeak.features import encode_hands
from signspeak.session import NO_HAND, SignSpeakSession
from signspeak.storage import GestureLibraryStore, MemoryKeyValueStore
from signspeak.types import AppendWord, ClassificationResult, LandmarkProviderProto, SpeakSentence


def make_hand(step):
    return [(0.5 + i * step[0], 0.5 + i * step[1], i * step[2]) for i in range(21)]


HAND_HELLO = make_hand((0.01, 0.0, 0.0))
HAND_SPEAK = make_hand((0.0, 0.01, 0.0))
HAND_NEW = make_hand((0.0, 0.0, 0.01))


class FakeTracker:
    """Returns preset hands; optionally runs a hook while "detecting"."""

    def __init__(self, hands=None):
        self.hands = hands or []
        self.on_process = None

    def process(self, frame):
        if self.on_process is not None:
            self.on_process()
        return self.hands


class FakeSpeech:

    def __init__(self):
        self.spoken = []

    def speak(self, text):
        self.spoken.append(text)

    def cancel(self):
        pass


class BrokenSpeech:

    def speak(self, text):
        raise SpeechUnavailableError("Speech not supported")

    def cancel(self):
        pass


class FailingSpeech:

    def speak(self, text):
        raise RuntimeError("audio device lost")

    def cancel(self):
        pass


class FixedClassifier(KNNGestureClassifier):
    """Classifier that always returns the same result."""

    def __init__(self, result):
        super().__init__()
        self.result = result
        self._examples = {label: [] for label in result.confidences}

    def predict(self, vector):
        return self.result


def taught_classifier():
    classifier = KNNGestureClassifier(k=3)
    for _ in range(3):
        classifier.add_example(encode_hands([HAND_HELLO]), "HELLO")
        classifier.add_example(encode_hands([HAND_SPEAK]), "SPEAK")
    return classifier


class SessionTestCase(unittest.TestCase):

    def make_session(self, classifier=None, speech=None, tracker=None):
        self.cfg = load_config()
        self.store = MemoryKeyValueStore()
        self.library = GestureLibraryStore(self.store, key=self.cfg.storage.key)
        self.speech = speech or FakeSpeech()
        self.classifier = classifier if classifier is not None else KNNGestureClassifier()
        self.tracker = tracker or FakeTracker()
        return SignSpeakSession(self.cfg, self.tracker, self.classifier, self.speech,
                                self.library, clock=lambda: 0.0)

    def hold(self, session, hand, frames, t_start=0.0):
        commands = []
        for i in range(frames):
            cmd = session.handle_hands([hand], t_now=t_start + i * 0.03)
            if cmd is not None:
                commands.append(cmd)
        return commands


class TestSessionRecognition(SessionTestCase):
    """Test the frame path from hands to sentence."""

    def test_fake_tracker_matches_protocol(self):
        self.assertIsInstance(FakeTracker(), LandmarkProviderProto)

    def test_no_hand_display_state(self):
        session = self.make_session(classifier=taught_classifier())
        self.assertIsNone(session.handle_hands([], t_now=0.0))
        self.assertEqual(session.current_gesture, NO_HAND)
        self.assertEqual(session.confidence_pct, 0)

    def test_no_known_labels_skips_classification(self):
        session = self.make_session()
        self.assertIsNone(session.handle_hands([HAND_HELLO], t_now=0.0))
        self.assertEqual(session.current_gesture, "--")

    def test_hold_appends_word(self):
        session = self.make_session(classifier=taught_classifier())
        commands = self.hold(session, HAND_HELLO, 16)

        self.assertEqual(commands, [AppendWord(word="HELLO")])
        self.assertEqual(session.sentence, ["HELLO"])
        self.assertEqual(session.current_gesture, "HELLO")
        self.assertEqual(session.confidence_pct, 100)

    def test_speak_gesture(self):
        session = self.make_session(classifier=taught_classifier())
        self.hold(session, HAND_HELLO, 16)
        commands = self.hold(session, HAND_SPEAK, 10, t_start=1.0)

        self.assertEqual(commands, [SpeakSentence()])
        self.assertEqual(self.speech.spoken, ["HELLO"])
        self.assertEqual(session.status, "🔊 SPEAKING...")

        session.tick(3.5)
        self.assertEqual(session.status, "Ready")

    def test_sub_threshold_result_changes_nothing(self):
        result = ClassificationResult(label="HELLO", confidences={"HELLO": 0.9, "YES": 0.1})
        session = self.make_session(classifier=FixedClassifier(result))

        for i in range(40):
            self.assertIsNone(session.handle_hands([HAND_HELLO], t_now=i * 0.03))
        self.assertEqual(session.sentence, [])
        self.assertEqual(session.current_gesture, "--")
        self.assertEqual(session.builder.stabilizer.consecutive_count, 0)

    def test_speech_unavailable_is_reported(self):
        session = self.make_session(classifier=taught_classifier(), speech=BrokenSpeech())
        self.hold(session, HAND_HELLO, 16)
        self.hold(session, HAND_SPEAK, 1, t_start=1.0)

        self.assertEqual(session.status, "Speech not supported")
        self.assertEqual(session.sentence, ["HELLO"])

    def test_speech_backend_failure_is_reported(self):
        session = self.make_session(classifier=taught_classifier(), speech=FailingSpeech())
        self.hold(session, HAND_HELLO, 16)
        self.hold(session, HAND_SPEAK, 1, t_start=1.0)

        self.assertEqual(session.status, "Speech failed")
        self.assertEqual(session.sentence, ["HELLO"])

        session.tick(3.5)
        self.assertEqual(session.status, "Ready")
        session.builder.clear()
        self.hold(session, HAND_HELLO, 16, t_start=4.0)
        self.assertEqual(session.sentence, ["HELLO"])

    def test_ui_speak_backend_failure(self):
        session = self.make_session(speech=FailingSpeech())
        self.assertIsNone(session.speak(t_now=0.0))
        self.assertEqual(session.status, "Speech failed")

    def test_ui_speak_uses_fallback(self):
        session = self.make_session()
        self.assertEqual(session.speak(t_now=0.0), "Make a sentence first.")
        self.assertEqual(self.speech.spoken, ["Make a sentence first."])

    def test_ui_speak_without_backend(self):
        session = self.make_session(speech=BrokenSpeech())
        self.assertIsNone(session.speak(t_now=0.0))
        self.assertEqual(session.status, "Speech not supported")

    def test_ui_sentence_controls(self):
        session = self.make_session()
        session.builder.append_word("A")
        session.builder.append_word("B")

        self.assertEqual(session.delete_last_word(t_now=0.0), "B")
        self.assertEqual(session.status, "⬅️ Deleted Word")
        session.clear_sentence()
        self.assertEqual(session.sentence, [])
        self.assertIsNone(session.delete_last_word(t_now=0.5))


class TestSessionTraining(SessionTestCase):
    """Test teaching through the session."""

    def test_teach_new_gesture(self):
        session = self.make_session()
        session.teach("x", t_now=0.0)
        self.assertEqual(session.status, "Ready... 2")
        self.assertEqual(session.timer_display, "2")

        session.tick(1.0)
        self.assertEqual(session.timer_display, "1")
        session.tick(2.0)
        self.assertEqual(session.timer_display, "GO!")
        self.assertEqual(session.status, "Learning 'X'...")
        self.assertIn("X", session.saved_gestures)
        self.assertTrue(session.training.training_active)

        for i in range(10):
            session.handle_hands([HAND_NEW], t_now=2.0 + i * 0.03)

        session.tick(5.0)
        self.assertFalse(session.training.training_active)
        self.assertIsNone(session.timer_display)
        self.assertEqual(session.status, "Saved.")
        self.assertIn("X", self.classifier.labels)
        self.assertGreaterEqual(self.classifier.num_examples("X"), 1)

        stored = json.loads(self.store.get(self.cfg.storage.key))
        self.assertIn("X", stored)

    def test_training_does_not_touch_sentence(self):
        session = self.make_session(classifier=taught_classifier())
        session.teach("HELLO", t_now=0.0)
        session.tick(2.0)
        self.hold(session, HAND_HELLO, 32, t_start=2.0)

        self.assertEqual(session.sentence, [])
        self.assertEqual(self.classifier.num_examples("HELLO"), 3 + 32)

    def test_teach_while_busy(self):
        session = self.make_session()
        session.teach("X", t_now=0.0)
        with self.assertRaises(TrainingInProgressError):
            session.teach("Y", t_now=0.5)

    def test_teach_empty_label(self):
        session = self.make_session()
        with self.assertRaises(ValueError):
            session.teach("  ", t_now=0.0)

    def test_library_restored_on_start(self):
        cfg = load_config()
        store = MemoryKeyValueStore()
        GestureLibraryStore(store, key=cfg.storage.key).save(taught_classifier())

        classifier = KNNGestureClassifier()
        session = SignSpeakSession(cfg, FakeTracker(), classifier, FakeSpeech(),
                                   GestureLibraryStore(store, key=cfg.storage.key))
        self.assertEqual(sorted(session.saved_gestures), ["HELLO", "SPEAK"])
        self.assertEqual(sorted(classifier.labels), ["HELLO", "SPEAK"])

    def test_delete_gesture(self):
        session = self.make_session(classifier=taught_classifier())
        session.saved_gestures = ["HELLO", "SPEAK"]
        session.delete_gesture("SPEAK")

        self.assertEqual(session.saved_gestures, ["HELLO"])
        self.assertEqual(self.classifier.labels, ["HELLO"])
        self.assertEqual(list(json.loads(self.store.get(self.cfg.storage.key))), ["HELLO"])

    def test_delete_unknown_gesture(self):
        session = self.make_session()
        session.delete_gesture("NOPE")
        self.assertEqual(session.saved_gestures, [])


class TestSessionLifecycle(unittest.IsolatedAsyncioTestCase):
    """Test frame handling across teardown and camera switches."""

    def make_session(self):
        cfg = load_config()
        self.tracker = FakeTracker([HAND_HELLO])
        self.speech = FakeSpeech()
        return SignSpeakSession(cfg, self.tracker, taught_classifier(), self.speech,
                                GestureLibraryStore(MemoryKeyValueStore()), clock=lambda: 0.0)

    async def test_handle_frame(self):
        session = self.make_session()
        for i in range(16):
            await session.handle_frame(None, t_now=i * 0.03)
        self.assertEqual(session.sentence, ["HELLO"])

    async def test_closed_session_ignores_frames(self):
        session = self.make_session()
        session.close()
        self.assertIsNone(await session.handle_frame(None, t_now=0.0))
        self.assertEqual(session.current_gesture, "--")

    async def test_result_after_close_is_discarded(self):
        session = self.make_session()
        self.tracker.on_process = session.close
        self.assertIsNone(await session.handle_frame(None, t_now=0.0))
        self.assertEqual(session.current_gesture, "--")

    async def test_result_after_camera_switch_is_discarded(self):
        session = self.make_session()
        self.tracker.on_process = session.switch_camera
        self.assertIsNone(await session.handle_frame(None, t_now=0.0))
        self.assertEqual(session.current_gesture, "--")
        self.assertTrue(session.alive)

    async def test_close_cancels_training(self):
        session = self.make_session()
        session.teach("X", t_now=0.0)
        session.close()
        self.assertTrue(session.training.is_idle)
        self.assertFalse(session.alive)


if __name__ == '__main__':
    unittest.main()
