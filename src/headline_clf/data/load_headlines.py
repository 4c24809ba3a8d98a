from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pandas as pd
from sklearn.model_selection import train_test_split

LOGGER = logging.getLogger(__name__)


def _find_column(df: pd.DataFrame, target: str) -> Optional[str]:
    target_lower = target.lower()
    for col in df.columns:
        if col.lower() == target_lower:
            return col
    return None


def load_headlines_csv(
    csv_path: str | Path,
    text_col: str = "text",
    label_col: str = "labels",
    sep: str = ",",
) -> Tuple[List[str], List[str]]:
    """Load headline texts and their delimited label strings from a CSV with a header row."""
    csv_path = Path(csv_path)
    df = pd.read_csv(csv_path, sep=sep, dtype=str, keep_default_na=False, na_filter=False)
    df.columns = [str(c).strip() for c in df.columns]

    resolved = []
    for wanted in (text_col, label_col):
        col = _find_column(df, wanted)
        if col is None:
            raise ValueError(f"{csv_path} must contain a '{wanted}' column.")
        resolved.append(col)
    text_src, label_src = resolved

    texts = df[text_src].astype(str).tolist()
    labels = df[label_src].astype(str).str.strip().tolist()
    LOGGER.info("Loaded %s rows from %s", len(texts), csv_path)
    return texts, labels


def split_train_val(
    texts: Sequence[str],
    labels: Sequence[str],
    val_fraction: float,
    seed: int,
) -> Tuple[List[str], List[str], List[str], List[str]]:
    if not (0.0 < val_fraction < 1.0):
        raise ValueError("val_fraction must be in (0, 1).")
    if len(texts) < 2:
        raise ValueError("Need at least two rows to carve out a validation split.")
    train_x, val_x, train_y, val_y = train_test_split(
        list(texts),
        list(labels),
        test_size=val_fraction,
        random_state=seed,
        shuffle=True,
    )
    LOGGER.info("Split rows -> train: %s, val: %s", len(train_x), len(val_x))
    return train_x, val_x, train_y, val_y
