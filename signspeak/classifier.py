"""
K-nearest-neighbour gesture classifier with incremental examples.
"""
import logging
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
from sklearn.neighbors import KNeighborsClassifier

from .features import FEATURE_SIZE
from .types import ClassificationResult

logger = logging.getLogger(__name__)


class KNNGestureClassifier:
    """
    Gesture classifier backed by scikit-learn's KNeighborsClassifier.

    Examples are kept per label and the model is refitted lazily on the next
    prediction after the example set changes. Confidences are the share of the
    k nearest examples (cosine distance) voting for each label.
    """

    def __init__(self, k: int = 3):
        self.k = k
        self._examples: Dict[str, List[np.ndarray]] = {}
        self._clf: Optional[KNeighborsClassifier] = None

    @property
    def labels(self) -> List[str]:
        """Labels that currently have at least one example."""
        return list(self._examples)

    @property
    def num_classes(self) -> int:
        return len(self._examples)

    def num_examples(self, label: Optional[str] = None) -> int:
        """Number of stored examples, for one label or overall."""
        if label is not None:
            return len(self._examples.get(label, []))
        return sum(len(rows) for rows in self._examples.values())

    def add_example(self, vector: np.ndarray, label: str) -> None:
        """Store one example vector under `label`."""
        row = np.asarray(vector, dtype=np.float32).reshape(-1)
        if row.shape[0] != FEATURE_SIZE:
            raise ValueError(f"Expected {FEATURE_SIZE} features, got {row.shape[0]}")
        self._examples.setdefault(label, []).append(row)
        self._clf = None

    def clear_label(self, label: str) -> None:
        """Forget every example of `label`; unknown labels are ignored."""
        if self._examples.pop(label, None) is None:
            logger.debug("clear_label: no examples for %r", label)
            return
        self._clf = None

    def predict(self, vector: np.ndarray) -> ClassificationResult:
        """
        Classify a feature vector.

        Args:
            vector: Feature vector of FEATURE_SIZE values

        Returns:
            Best label and a confidence for every known label

        Raises:
            RuntimeError: If no examples have been added yet
        """
        if not self._examples:
            raise RuntimeError("Classifier has no examples")

        clf = self._fit()
        query = np.asarray(vector, dtype=np.float32).reshape(1, -1)
        proba = clf.predict_proba(query)[0]

        confidences = {label: 0.0 for label in self._examples}
        for label, p in zip(clf.classes_, proba):
            confidences[str(label)] = float(p)

        best = str(clf.classes_[int(np.argmax(proba))])
        return ClassificationResult(label=best, confidences=confidences)

    def export_examples(self) -> Dict[str, List[float]]:
        """Serialise examples as {label: flat list}, rows of FEATURE_SIZE values."""
        return {
            label: np.stack(rows).reshape(-1).astype(float).tolist()
            for label, rows in self._examples.items()
        }

    def import_examples(self, blob: Mapping[str, Sequence[float]]) -> None:
        """Replace all examples with the contents of an exported blob."""
        examples: Dict[str, List[np.ndarray]] = {}
        for label, flat in blob.items():
            values = np.asarray(flat, dtype=np.float32)
            if values.size == 0 or values.size % FEATURE_SIZE:
                raise ValueError(f"Label {label!r} has {values.size} values, "
                                 f"not a multiple of {FEATURE_SIZE}")
            examples[label] = list(values.reshape(-1, FEATURE_SIZE))
        self._examples = examples
        self._clf = None

    def _fit(self) -> KNeighborsClassifier:
        if self._clf is None:
            X = np.concatenate([np.stack(rows) for rows in self._examples.values()])
            y = np.array([label for label, rows in self._examples.items() for _ in rows])
            clf = KNeighborsClassifier(
                n_neighbors=min(self.k, len(y)),
                metric="cosine",
                algorithm="brute",
            )
            clf.fit(X, y)
            self._clf = clf
            logger.debug("Fitted KNN on %d examples, classes=%s", len(y), sorted(self._examples))
        return self._clf
