from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np
import torch

from headline_clf.config import (
    DEFAULT_LABEL_DELIMITER,
    DEFAULT_PREDICTION_THRESHOLD,
    INDEX_TO_CLASS_FILENAME,
    LOG_FORMAT,
    MODEL_FILENAME,
    VOCAB_FILENAME,
)
from headline_clf.data.artifacts import load_index_to_class, load_vocabulary
from headline_clf.models.classifier import build_model, model_config_from_dict
from headline_clf.text_utils import build_token_index, encode_corpus

LOGGER = logging.getLogger(__name__)


class Predictor:
    """Loads a trained artifact directory and scores headlines."""

    def __init__(
        self,
        artifact_dir: Path,
        *,
        threshold: Optional[float] = None,
        device: str = "cpu",
    ) -> None:
        artifact_dir = Path(artifact_dir)
        self.device = torch.device(device)
        self.vocabulary = load_vocabulary(artifact_dir / VOCAB_FILENAME)
        self.token_to_index = build_token_index(self.vocabulary)
        self.index_to_class = load_index_to_class(artifact_dir / INDEX_TO_CLASS_FILENAME)

        checkpoint = torch.load(artifact_dir / MODEL_FILENAME, map_location=self.device)
        if not isinstance(checkpoint, dict) or not isinstance(checkpoint.get("model_state_dict"), dict):
            raise ValueError(f"Checkpoint model_state_dict is missing: {artifact_dir / MODEL_FILENAME}")
        raw_config = checkpoint.get("model_config")
        if not isinstance(raw_config, dict):
            raise ValueError("Checkpoint model_config is missing.")
        self.model_config = model_config_from_dict(raw_config)
        if self.model_config.vocab_size != len(self.vocabulary):
            raise ValueError(
                f"Vocabulary has {len(self.vocabulary)} tokens but the checkpoint expects {self.model_config.vocab_size}."
            )
        if len(self.index_to_class) != self.model_config.n_classes:
            raise ValueError(
                f"Class mapping has {len(self.index_to_class)} classes but the checkpoint expects {self.model_config.n_classes}."
            )

        if threshold is None:
            threshold = float(checkpoint.get("prediction_threshold", DEFAULT_PREDICTION_THRESHOLD))
        if not (0.0 <= threshold <= 1.0):
            raise ValueError("threshold must be in [0, 1].")
        self.threshold = float(threshold)
        self.label_delimiter = str(checkpoint.get("label_delimiter", DEFAULT_LABEL_DELIMITER))

        self.model = build_model(self.model_config)
        self.model.load_state_dict(checkpoint["model_state_dict"], strict=True)
        self.model.eval()
        self.model = self.model.to(self.device)
        LOGGER.info(
            "Loaded predictor from %s | vocab=%s classes=%s threshold=%.2f",
            artifact_dir,
            len(self.vocabulary),
            len(self.index_to_class),
            self.threshold,
        )

    def predict_proba(self, texts: Sequence[str]) -> np.ndarray:
        ids = encode_corpus(list(texts), self.token_to_index, self.model_config.max_seq_len)
        x = torch.as_tensor(ids, dtype=torch.long, device=self.device)
        with torch.no_grad():
            probs = torch.sigmoid(self.model(x))
        return probs.detach().cpu().numpy()

    def predict(self, text: str) -> List[Dict[str, float]]:
        """Classes whose probability reaches the threshold, as ``[{name: prob}]`` in class order."""
        probs = self.predict_proba([text])[0]
        out: List[Dict[str, float]] = []
        for idx, prob in enumerate(probs.tolist()):
            if prob < self.threshold:
                continue
            name = self.index_to_class.get(idx)
            if name is None:
                continue
            out.append({name: float(prob)})
        return out


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Predict headline categories.")
    parser.add_argument("--artifact_dir", type=Path, required=True, help="Directory written by headline_clf.train")
    parser.add_argument("--text", type=str, default="", help="Inline headline.")
    parser.add_argument("--text_file", type=Path, default=None, help="Optional file with one headline per line.")
    parser.add_argument("--threshold", type=float, default=None)
    return parser


def _load_texts(args: argparse.Namespace) -> List[str]:
    if args.text_file is not None:
        return [line for line in args.text_file.read_text(encoding="utf-8").splitlines() if line.strip()]
    return [args.text]


def main() -> None:
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    args = _build_arg_parser().parse_args()
    predictor = Predictor(args.artifact_dir, threshold=args.threshold)
    for text in _load_texts(args):
        preds = predictor.predict(text)
        print(text)
        if not preds:
            print("  (no category above threshold)")
        for pred in preds:
            for label, prob in pred.items():
                print(f"  {label}\t{prob:.4f}")


if __name__ == "__main__":
    main()
