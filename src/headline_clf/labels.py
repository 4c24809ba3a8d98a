from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Sequence, Tuple

import numpy as np

from headline_clf.config import DEFAULT_LABEL_DELIMITER
from headline_clf.exceptions import LabelNotFound

LOGGER = logging.getLogger(__name__)


def split_label(label: str, delimiter: str = DEFAULT_LABEL_DELIMITER) -> List[str]:
    if label == "":
        return []
    return label.split(delimiter)


def build_class_index(
    label_strings: Sequence[str],
    delimiter: str = DEFAULT_LABEL_DELIMITER,
) -> Tuple[Dict[str, int], Dict[int, str]]:
    """
    Assign class indices in first-seen order.

    Rows are scanned top to bottom and sub-labels left to right, so the same
    label sequence always reproduces the same mapping. Empty rows carry no
    class and are skipped.
    """
    class_to_index: Dict[str, int] = {}
    index_to_class: Dict[int, str] = {}
    for label in label_strings:
        for name in split_label(label, delimiter):
            if name in class_to_index:
                continue
            idx = len(class_to_index)
            class_to_index[name] = idx
            index_to_class[idx] = name
    return class_to_index, index_to_class


def multi_hot_encode(
    labels: Sequence[str],
    class_to_index: Mapping[str, int],
    delimiter: str = DEFAULT_LABEL_DELIMITER,
) -> List[int]:
    """Row-major flattened multi-hot vectors, ``len(labels) * n_classes`` long."""
    n_classes = len(class_to_index)
    encodings: List[int] = []
    for label in labels:
        row = [0] * n_classes
        for name in split_label(label, delimiter):
            idx = class_to_index.get(name)
            if idx is None:
                raise LabelNotFound(name)
            row[idx] = 1
        LOGGER.debug("Label %r -> %s", label, row)
        encodings.extend(row)
    return encodings


def multi_hot_matrix(
    labels: Sequence[str],
    class_to_index: Mapping[str, int],
    delimiter: str = DEFAULT_LABEL_DELIMITER,
) -> np.ndarray:
    flat = multi_hot_encode(labels, class_to_index, delimiter=delimiter)
    return np.asarray(flat, dtype=np.float32).reshape(len(labels), len(class_to_index))
