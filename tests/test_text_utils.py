import numpy as np
import pytest

from headline_clf.config import PAD_INDEX, UNK_INDEX, UNK_TOKEN
from headline_clf.exceptions import ArrayConversionError
from headline_clf.text_utils import (
    build_token_index,
    build_vocabulary,
    encode_corpus,
    encode_pad,
    lookup_many,
    pad_sequence,
    to_index_matrix,
    tokenize_text,
)


def test_tokenize_strips_punctuation_and_splits_on_whitespace() -> None:
    assert tokenize_text("Hello, world!") == ["Hello", "world"]
    assert tokenize_text("  Stocks   rally\tagain. ") == ["Stocks", "rally", "again"]
    assert tokenize_text(None) == []


def test_tokenize_strips_unicode_punctuation() -> None:
    assert tokenize_text("“Storm” hits — coast’s edge") == ["Storm", "hits", "coasts", "edge"]


def test_build_vocabulary_single_sentence() -> None:
    vocabulary = build_vocabulary(["Hello, world!"])
    assert "Hello" in vocabulary
    assert "world" in vocabulary
    assert "world!" not in vocabulary


def test_build_vocabulary_dedupes_and_is_stable() -> None:
    corpus = ["This is a test.", "Another test."]
    vocabulary = build_vocabulary(corpus)
    assert sorted(vocabulary) == sorted(["This", "is", "a", "test", "Another"])
    assert len(vocabulary) == len(set(vocabulary))
    assert build_vocabulary(corpus) == vocabulary


def test_build_vocabulary_empty_corpus() -> None:
    assert build_vocabulary([]) == []


def test_build_token_index_reserves_unknown_slot() -> None:
    mapping = build_token_index(["apple", "banana", "cherry"])
    assert mapping == {UNK_TOKEN: 0, "apple": 1, "banana": 2, "cherry": 3}


def test_build_token_index_assigns_distinct_indices() -> None:
    vocabulary = build_vocabulary(["the cat sat on the mat", "a dog sat too"])
    mapping = build_token_index(vocabulary)
    assert mapping[UNK_TOKEN] == UNK_INDEX
    indices = [mapping[token] for token in vocabulary]
    assert sorted(indices) == list(range(1, len(vocabulary) + 1))


def test_lookup_many_defaults_unknown_tokens_to_zero() -> None:
    mapping = {"apple": 1, "cherry": 3}
    assert lookup_many(["apple", "banana", "cherry"], mapping) == [1, 0, 3]
    assert lookup_many([], {}) == []


def test_pad_sequence_pads_truncates_and_keeps_exact() -> None:
    assert pad_sequence([], 5, 1) == [1, 1, 1, 1, 1]
    assert pad_sequence([1] * 5, 4, 1) == [1, 1, 1, 1]
    assert pad_sequence([1] * 5, 5, 1) == [1] * 5


def test_encode_pad_lengths() -> None:
    mapping = build_token_index(["a", "b", "c", "d", "e"])
    assert encode_pad(["a", "b", "c", "d"], mapping, 4) == [1, 2, 3, 4]
    assert encode_pad(["a", "b", "c", "d", "e"], mapping, 4) == [1, 2, 3, 4]
    assert encode_pad(["e", "zzz"], mapping, 4) == [5, UNK_INDEX, PAD_INDEX, PAD_INDEX]


def test_encode_corpus_shape() -> None:
    mapping = build_token_index(build_vocabulary(["Rain expected today", "Team wins final!"]))
    ids = encode_corpus(["Rain today", "Team wins the final match again"], mapping, 4)
    assert ids.shape == (2, 4)
    assert ids.dtype == np.int64
    assert ids[0].tolist() == [mapping["Rain"], mapping["today"], 0, 0]
    assert ids[1].tolist() == [mapping["Team"], mapping["wins"], 0, mapping["final"]]


def test_to_index_matrix_rejects_ragged_rows() -> None:
    with pytest.raises(ArrayConversionError):
        to_index_matrix([[1, 2, 3], [1, 2]], 3)
    assert to_index_matrix([], 3).shape == (0, 3)
