"""Persistence of the gesture library in a JSON-backed key-value store."""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from .types import GestureClassifierProto, KeyValueStoreProto

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class JsonKeyValueStore:
    """String key-value store kept in a single JSON file."""

    def __init__(self, path: PathLike):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        content = self.path.read_text(encoding="utf-8").strip()
        if not content:
            return {}
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        try:
            data = self._load()
        except ValueError as e:
            logger.warning("⚠️ %s is not a valid store, rebuilding it: %s", self.path, e)
            data = {}
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")


class MemoryKeyValueStore:
    """In-process store, used when nothing should touch the disk."""

    def __init__(self):
        self.data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class GestureLibraryStore:
    """
    Saves and restores classifier examples under one key.

    Failures are logged and ignored: a broken or missing store means an empty
    gesture library, never an error for the caller.
    """

    def __init__(self, store: KeyValueStoreProto, key: str = "sign-speak-brain"):
        self.store = store
        self.key = key

    def save(self, classifier: GestureClassifierProto) -> bool:
        try:
            self.store.set(self.key, json.dumps(classifier.export_examples()))
        except (OSError, TypeError, ValueError) as e:
            logger.warning("⚠️ Could not save gesture library: %s", e)
            return False
        logger.info("💾 Saved %d gestures", classifier.num_classes)
        return True

    def restore(self, classifier: GestureClassifierProto) -> List[str]:
        """Load stored examples into `classifier` and return the restored labels."""
        try:
            raw = self.store.get(self.key)
            if not raw:
                return []
            blob = json.loads(raw)
            if not isinstance(blob, dict):
                raise ValueError("stored gesture library is not a mapping")
            classifier.import_examples(blob)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("⚠️ Ignoring unreadable gesture library: %s", e)
            return []
        labels = list(blob)
        logger.info("📚 Restored gestures: %s", ", ".join(labels))
        return labels
