from __future__ import annotations

import re
import string
import unicodedata
from typing import Dict, Iterable, List, Mapping, Sequence, TypeVar

import numpy as np
from tqdm import tqdm

from headline_clf.config import PAD_INDEX, UNK_INDEX, UNK_TOKEN
from headline_clf.exceptions import ArrayConversionError

_PUNCT_TABLE = str.maketrans("", "", string.punctuation)

T = TypeVar("T")


def normalize_text(text: object) -> str:
    if text is None:
        return ""
    s = str(text)
    s = re.sub(r"\s+", " ", s)
    return s.strip()


def strip_punctuation(text: object) -> str:
    # ASCII punctuation and symbols, plus any Unicode punctuation (curly quotes, dashes).
    s = normalize_text(text).translate(_PUNCT_TABLE)
    return "".join(c for c in s if not unicodedata.category(c).startswith("P"))


def tokenize_text(text: object) -> List[str]:
    """Whitespace tokens of ``text`` after punctuation characters are removed."""
    return strip_punctuation(text).split()


def build_vocabulary(corpus: Iterable[object]) -> List[str]:
    """Unique tokens of ``corpus`` in first-seen order."""
    seen: Dict[str, None] = {}
    for sentence in corpus:
        for token in tokenize_text(sentence):
            seen.setdefault(token, None)
    return list(seen)


def build_token_index(vocabulary: Sequence[str]) -> Dict[str, int]:
    """Map tokens to ``1..N`` in vocabulary order; ``UNK_TOKEN`` keeps ``UNK_INDEX``."""
    token_to_index: Dict[str, int] = {UNK_TOKEN: UNK_INDEX}
    for i, token in enumerate(vocabulary, start=1):
        token_to_index[token] = i
    return token_to_index


def lookup_many(tokens: Iterable[str], mapping: Mapping[str, int]) -> List[int]:
    return [int(mapping.get(token, UNK_INDEX)) for token in tokens]


def pad_sequence(values: Sequence[T], max_len: int, pad_value: T) -> List[T]:
    """Truncate ``values`` from the end or right-pad with ``pad_value`` to ``max_len``."""
    out = list(values)
    if len(out) > max_len:
        return out[:max_len]
    if len(out) < max_len:
        out.extend([pad_value] * (max_len - len(out)))
    return out


def encode_pad(tokens: Sequence[str], mapping: Mapping[str, int], max_len: int) -> List[int]:
    return pad_sequence(lookup_many(tokens, mapping), int(max_len), PAD_INDEX)


def encode_text(text: object, mapping: Mapping[str, int], max_len: int) -> List[int]:
    return encode_pad(tokenize_text(text), mapping, max_len)


def to_index_matrix(rows: Sequence[Sequence[int]], width: int) -> np.ndarray:
    """Stack fixed-width index rows into an ``(n_rows, width)`` int64 matrix."""
    for i, row in enumerate(rows):
        if len(row) != width:
            raise ArrayConversionError(f"Row {i} has length {len(row)}, expected {width}.")
    if not rows:
        return np.zeros((0, int(width)), dtype=np.int64)
    return np.asarray(rows, dtype=np.int64)


def encode_corpus(texts: Sequence[object], mapping: Mapping[str, int], max_len: int) -> np.ndarray:
    rows = [
        encode_text(text, mapping, max_len)
        for text in tqdm(texts, total=len(texts), desc="Encoding text", leave=False)
    ]
    return to_index_matrix(rows, int(max_len))
