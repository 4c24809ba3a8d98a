from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Dict, Optional

from headline_clf.config import LOG_FORMAT
from headline_clf.data.load_headlines import load_headlines_csv
from headline_clf.labels import multi_hot_matrix
from headline_clf.metrics import classification_report, threshold_probabilities
from headline_clf.predict_text import Predictor

LOGGER = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Evaluate a trained artifact directory on a labeled CSV.")
    parser.add_argument("--artifact_dir", required=True, type=Path)
    parser.add_argument("--csv", required=True, type=Path)
    parser.add_argument("--text_col", type=str, default="text")
    parser.add_argument("--label_col", type=str, default="labels")
    parser.add_argument("--sep", type=str, default=",")
    parser.add_argument("--label_delimiter", type=str, default=None, help="Defaults to the delimiter stored in the checkpoint.")
    parser.add_argument("--threshold", type=float, default=None)
    parser.add_argument("--output_json", type=Path, default=None)
    return parser


def evaluate_csv(
    predictor: Predictor,
    csv_path: Path,
    *,
    text_col: str = "text",
    label_col: str = "labels",
    sep: str = ",",
    label_delimiter: Optional[str] = None,
) -> Dict[str, float]:
    texts, labels = load_headlines_csv(csv_path, text_col=text_col, label_col=label_col, sep=sep)
    if not texts:
        raise ValueError("No rows available for evaluation.")
    class_to_index = {name: idx for idx, name in predictor.index_to_class.items()}
    actual = multi_hot_matrix(labels, class_to_index, delimiter=label_delimiter or predictor.label_delimiter)
    predicted = threshold_probabilities(predictor.predict_proba(texts), predictor.threshold)
    report = classification_report(predicted, actual)
    report["n"] = float(len(texts))
    return report


def main() -> None:
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    args = build_arg_parser().parse_args()
    predictor = Predictor(args.artifact_dir, threshold=args.threshold)
    report = evaluate_csv(
        predictor,
        args.csv,
        text_col=args.text_col,
        label_col=args.label_col,
        sep=args.sep,
        label_delimiter=args.label_delimiter,
    )
    LOGGER.info(
        "Eval metrics | n %d | tp %d fp %d fn %d | precision %.4f recall %.4f f1 %.4f",
        int(report["n"]),
        int(report["true_positives"]),
        int(report["false_positives"]),
        int(report["false_negatives"]),
        report["precision"],
        report["recall"],
        report["f1"],
    )
    if args.output_json is not None:
        args.output_json.parent.mkdir(parents=True, exist_ok=True)
        with args.output_json.open("w", encoding="utf-8") as f:
            json.dump(report, f, indent=2)


if __name__ == "__main__":
    main()
