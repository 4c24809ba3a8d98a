from __future__ import annotations

from typing import Dict, Tuple

import numpy as np


def _as_pair(predicted: object, actual: object) -> Tuple[np.ndarray, np.ndarray]:
    pred = np.asarray(predicted)
    true = np.asarray(actual)
    if pred.shape != true.shape:
        raise ValueError(f"Shape mismatch: predicted {pred.shape} vs actual {true.shape}.")
    return pred, true


def _count(predicted: object, actual: object, predicted_value: int, actual_value: int) -> int:
    pred, true = _as_pair(predicted, actual)
    return int(np.count_nonzero((pred == predicted_value) & (true == actual_value)))


def true_positives(predicted: object, actual: object) -> int:
    return _count(predicted, actual, 1, 1)


def false_positives(predicted: object, actual: object) -> int:
    return _count(predicted, actual, 1, 0)


def false_negatives(predicted: object, actual: object) -> int:
    return _count(predicted, actual, 0, 1)


def f1_score(predicted: object, actual: object) -> float:
    """Micro-averaged F1 over every (row, class) cell; 0.0 when nothing matched."""
    tp = true_positives(predicted, actual)
    if tp == 0:
        return 0.0
    fp = false_positives(predicted, actual)
    fn = false_negatives(predicted, actual)
    precision = tp / (tp + fp)
    recall = tp / (tp + fn)
    return float(2.0 * precision * recall / (precision + recall))


def threshold_probabilities(probs: object, threshold: float) -> np.ndarray:
    """Binarize post-sigmoid probabilities; a cell is positive when ``prob >= threshold``."""
    return (np.asarray(probs) >= float(threshold)).astype(np.int64)


def classification_report(predicted: object, actual: object) -> Dict[str, float]:
    tp = true_positives(predicted, actual)
    fp = false_positives(predicted, actual)
    fn = false_negatives(predicted, actual)
    return {
        "true_positives": float(tp),
        "false_positives": float(fp),
        "false_negatives": float(fn),
        "precision": float(tp / (tp + fp)) if (tp + fp) > 0 else 0.0,
        "recall": float(tp / (tp + fn)) if (tp + fn) > 0 else 0.0,
        "f1": f1_score(predicted, actual),
    }
