from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

from headline_clf.exceptions import VocabularyLoadError

LOGGER = logging.getLogger(__name__)


def _write_json(path: Path, payload: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
    tmp_path.replace(path)


def _read_json(path: Path) -> object:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise VocabularyLoadError(f"Could not read {path}: {exc}") from exc


def save_vocabulary(vocabulary: Sequence[str], path: Path) -> None:
    _write_json(Path(path), {"vocabulary": list(vocabulary)})
    LOGGER.info("Saved vocabulary (%s tokens): %s", len(vocabulary), path)


def load_vocabulary(path: Path) -> List[str]:
    payload = _read_json(Path(path))
    vocabulary = payload.get("vocabulary") if isinstance(payload, dict) else None
    if not isinstance(vocabulary, list) or not all(isinstance(t, str) for t in vocabulary):
        raise VocabularyLoadError(f"{path} does not contain a 'vocabulary' list of strings.")
    if len(set(vocabulary)) != len(vocabulary):
        raise VocabularyLoadError(f"{path} contains duplicate tokens.")
    return vocabulary


def save_index_to_class(index_to_class: Mapping[int, str], path: Path) -> None:
    mapping = {str(int(idx)): str(name) for idx, name in sorted(index_to_class.items())}
    _write_json(Path(path), {"mapping": mapping})
    LOGGER.info("Saved class mapping (%s classes): %s", len(mapping), path)


def load_index_to_class(path: Path) -> Dict[int, str]:
    payload = _read_json(Path(path))
    mapping = payload.get("mapping") if isinstance(payload, dict) else None
    if not isinstance(mapping, dict):
        raise VocabularyLoadError(f"{path} does not contain a 'mapping' object.")
    try:
        return {int(idx): str(name) for idx, name in mapping.items()}
    except (TypeError, ValueError) as exc:
        raise VocabularyLoadError(f"{path} has a non-integer class index: {exc}") from exc
