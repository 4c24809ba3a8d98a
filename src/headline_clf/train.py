from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from enum import Enum
import json
import logging
from pathlib import Path
import random
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional

import numpy as np
import torch
from torch import nn

from headline_clf.config import (
    DEFAULT_LABEL_DELIMITER,
    DEFAULT_MAX_SEQ_LEN,
    DEFAULT_PREDICTION_THRESHOLD,
    HISTORY_FILENAME,
    INDEX_TO_CLASS_FILENAME,
    LOG_FORMAT,
    METRICS_FILENAME,
    MODEL_FILENAME,
    VOCAB_FILENAME,
    ModelConfig,
    TrainConfig,
)
from headline_clf.data.artifacts import save_index_to_class, save_vocabulary
from headline_clf.data.load_headlines import load_headlines_csv, split_train_val
from headline_clf.labels import build_class_index, multi_hot_matrix
from headline_clf.metrics import f1_score, threshold_probabilities
from headline_clf.models.classifier import build_model, model_config_to_dict
from headline_clf.text_utils import build_token_index, build_vocabulary, encode_corpus

LOGGER = logging.getLogger(__name__)

Checkpoint = Mapping[str, torch.Tensor]


class StopReason(str, Enum):
    MAX_EPOCHS_REACHED = "max_epochs_reached"
    EARLY_STOPPED = "early_stopped"


@dataclass
class TrainingState:
    epoch: int = 0
    loss: float = float("nan")
    f1: float = 0.0
    best_f1: float = 0.0
    best_epoch: int = 0
    best_checkpoint: Optional[Checkpoint] = None
    patience_counter: int = 0
    stop_reason: Optional[StopReason] = None


@dataclass(frozen=True)
class TrainResult:
    stop_reason: StopReason
    best_f1: float
    best_epoch: int
    epochs_run: int
    checkpoint_path: Path
    history: List[Dict[str, object]] = field(default_factory=list)


def configure_logging() -> None:
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)


def set_seed(seed: int) -> None:
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)


def snapshot_parameters(model: nn.Module) -> Checkpoint:
    """Read-only CPU copy of ``model``'s parameters, detached from later optimizer steps."""
    return MappingProxyType({k: v.detach().cpu().clone() for k, v in model.state_dict().items()})


def _append_history_jsonl(path: Path, row: Dict[str, object]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(row, ensure_ascii=True) + "\n")


def _atomic_torch_save(obj: object, target_path: Path) -> None:
    target_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = target_path.with_suffix(target_path.suffix + ".tmp")
    torch.save(obj, tmp_path)
    tmp_path.replace(target_path)


class Trainer:
    """
    Full-batch epoch loop with held-out model selection.

    Each epoch runs one optimizer step on the whole training matrix, scores the
    held-out matrix with micro-F1 and keeps a snapshot of the parameters from the
    last strict improvement. Training ends after ``n_epochs`` epochs or once the
    held-out F1 has not improved for ``early_stop_patience`` consecutive epochs
    (a patience of 0 stops at the first non-improving epoch). The snapshot is
    written to ``checkpoint_path`` once, when training ends.
    """

    def __init__(
        self,
        model: nn.Module,
        config: TrainConfig,
        checkpoint_path: Path,
        *,
        device: Optional[torch.device] = None,
        optimizer: Optional[torch.optim.Optimizer] = None,
        criterion: Optional[Callable[[torch.Tensor, torch.Tensor], torch.Tensor]] = None,
        history_path: Optional[Path] = None,
        checkpoint_extras: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.device = device if device is not None else torch.device("cpu")
        self.model = model.to(self.device)
        self.config = config
        self.checkpoint_path = Path(checkpoint_path)
        self.optimizer = optimizer if optimizer is not None else torch.optim.Adam(self.model.parameters(), lr=config.learning_rate)
        self.criterion = criterion if criterion is not None else nn.BCEWithLogitsLoss()
        self.history_path = history_path
        self.checkpoint_extras = dict(checkpoint_extras or {})

    @property
    def patience_limit(self) -> int:
        return max(1, int(self.config.early_stop_patience))

    def _to_tensor(self, data: object, dtype: torch.dtype) -> torch.Tensor:
        return torch.as_tensor(data, dtype=dtype, device=self.device)

    def train_step(self, inputs: torch.Tensor, targets: torch.Tensor) -> float:
        self.model.train()
        self.optimizer.zero_grad(set_to_none=True)
        logits = self.model(inputs)
        loss = self.criterion(logits, targets)
        loss.backward()
        self.optimizer.step()
        return float(loss.item())

    def predict(self, inputs: torch.Tensor) -> np.ndarray:
        """Held-out multi-hot predictions, thresholded on sigmoid probabilities."""
        self.model.eval()
        with torch.no_grad():
            probs = torch.sigmoid(self.model(inputs)).detach().cpu().numpy()
        return threshold_probabilities(probs, self.config.prediction_threshold)

    def evaluate(self, inputs: torch.Tensor, targets: np.ndarray) -> float:
        return f1_score(self.predict(inputs), targets)

    def fit(
        self,
        train_inputs: object,
        train_targets: object,
        val_inputs: object,
        val_targets: object,
    ) -> TrainResult:
        x_train = self._to_tensor(train_inputs, torch.long)
        y_train = self._to_tensor(train_targets, torch.float32)
        x_val = self._to_tensor(val_inputs, torch.long)
        y_val = np.asarray(val_targets)

        state = TrainingState(best_checkpoint=snapshot_parameters(self.model))
        history: List[Dict[str, object]] = []
        n_epochs = int(self.config.n_epochs)

        for epoch in range(1, n_epochs + 1):
            state.epoch = epoch
            state.loss = self.train_step(x_train, y_train)
            state.f1 = self.evaluate(x_val, y_val)

            improved = state.f1 > state.best_f1
            if improved:
                state.patience_counter = 0
                state.best_f1 = state.f1
                state.best_epoch = epoch
                state.best_checkpoint = snapshot_parameters(self.model)
            else:
                state.patience_counter += 1

            row: Dict[str, object] = {
                "epoch": epoch,
                "train_loss": state.loss,
                "val_f1": state.f1,
                "best_val_f1": state.best_f1,
                "improved": improved,
                "patience_counter": state.patience_counter,
            }
            history.append(row)
            if self.history_path is not None:
                _append_history_jsonl(self.history_path, row)

            LOGGER.info(
                "Epoch %s/%s | train loss %.5f | val f1 %.4f | best %.4f (epoch %s)",
                epoch,
                n_epochs,
                state.loss,
                state.f1,
                state.best_f1,
                state.best_epoch,
            )

            if not improved and state.patience_counter >= self.patience_limit:
                LOGGER.warning(
                    "Early stopping triggered at epoch=%s (patience=%s, best_epoch=%s).",
                    epoch,
                    self.config.early_stop_patience,
                    state.best_epoch,
                )
                state.stop_reason = StopReason.EARLY_STOPPED
                break
        else:
            state.stop_reason = StopReason.MAX_EPOCHS_REACHED

        self._save_checkpoint(state)
        return TrainResult(
            stop_reason=state.stop_reason,
            best_f1=state.best_f1,
            best_epoch=state.best_epoch,
            epochs_run=state.epoch,
            checkpoint_path=self.checkpoint_path,
            history=history,
        )

    def _save_checkpoint(self, state: TrainingState) -> None:
        assert state.best_checkpoint is not None and state.stop_reason is not None
        payload: Dict[str, Any] = dict(self.checkpoint_extras)
        payload.update(
            {
                "model_state_dict": dict(state.best_checkpoint),
                "best_f1": float(state.best_f1),
                "best_epoch": int(state.best_epoch),
                "stop_reason": state.stop_reason.value,
                "prediction_threshold": float(self.config.prediction_threshold),
                "label_delimiter": self.config.label_delimiter,
            }
        )
        _atomic_torch_save(payload, self.checkpoint_path)
        LOGGER.info(
            "Saved best checkpoint: %s | best_f1=%.4f best_epoch=%s stop_reason=%s",
            self.checkpoint_path,
            state.best_f1,
            state.best_epoch,
            state.stop_reason.value,
        )


def _resolve_torch_device(device_arg: str) -> torch.device:
    if device_arg == "auto":
        return torch.device("cuda" if torch.cuda.is_available() else "cpu")
    return torch.device(device_arg)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Train the multi-label headline classifier.")
    parser.add_argument("--train_csv", type=Path, required=True)
    parser.add_argument("--test_csv", type=Path, default=None, help="Held-out CSV. If omitted, --val_fraction of train is held out.")
    parser.add_argument("--output_dir", type=Path, required=True)
    parser.add_argument("--text_col", type=str, default="text")
    parser.add_argument("--label_col", type=str, default="labels")
    parser.add_argument("--sep", type=str, default=",")
    parser.add_argument("--label_delimiter", type=str, default=DEFAULT_LABEL_DELIMITER)
    parser.add_argument("--val_fraction", type=float, default=0.2)
    parser.add_argument("--n_epochs", type=int, default=100)
    parser.add_argument("--learning_rate", type=float, default=1e-3)
    parser.add_argument("--early_stop_patience", type=int, default=20)
    parser.add_argument("--max_seq_len", type=int, default=DEFAULT_MAX_SEQ_LEN)
    parser.add_argument("--prediction_threshold", type=float, default=DEFAULT_PREDICTION_THRESHOLD)
    parser.add_argument("--embedding_size", type=int, default=15)
    parser.add_argument("--hidden_size", type=int, default=20)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--device", type=str, default="auto")
    return parser


def run_training(args: argparse.Namespace) -> TrainResult:
    train_config = TrainConfig(
        n_epochs=args.n_epochs,
        learning_rate=args.learning_rate,
        early_stop_patience=args.early_stop_patience,
        prediction_threshold=args.prediction_threshold,
        label_delimiter=args.label_delimiter,
        seed=args.seed,
    )
    set_seed(train_config.seed)
    output_dir: Path = args.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    train_texts, train_labels = load_headlines_csv(args.train_csv, text_col=args.text_col, label_col=args.label_col, sep=args.sep)
    if args.test_csv is not None:
        val_texts, val_labels = load_headlines_csv(args.test_csv, text_col=args.text_col, label_col=args.label_col, sep=args.sep)
    else:
        LOGGER.warning("No --test_csv given; holding out %.0f%% of train rows.", 100 * args.val_fraction)
        train_texts, val_texts, train_labels, val_labels = split_train_val(
            train_texts, train_labels, val_fraction=args.val_fraction, seed=train_config.seed
        )
    if not train_texts:
        raise ValueError("No training rows found.")
    if not val_texts:
        LOGGER.warning("Held-out split is empty; val f1 will stay at 0.")

    class_to_index, index_to_class = build_class_index(train_labels, delimiter=train_config.label_delimiter)
    if not class_to_index:
        raise ValueError("Training labels contain no classes.")
    LOGGER.info("Classes (%s): %s", len(class_to_index), list(class_to_index))

    train_targets = multi_hot_matrix(train_labels, class_to_index, delimiter=train_config.label_delimiter)
    val_targets = multi_hot_matrix(val_labels, class_to_index, delimiter=train_config.label_delimiter)

    vocabulary = build_vocabulary(train_texts)
    token_to_index = build_token_index(vocabulary)

    train_inputs = encode_corpus(train_texts, token_to_index, args.max_seq_len)
    val_inputs = encode_corpus(val_texts, token_to_index, args.max_seq_len)
    LOGGER.info("Encoded inputs -> train %s, val %s", train_inputs.shape, val_inputs.shape)

    model_config = ModelConfig(
        vocab_size=len(vocabulary),
        n_classes=len(class_to_index),
        embedding_size=args.embedding_size,
        hidden_size=args.hidden_size,
        max_seq_len=args.max_seq_len,
    )
    history_path = output_dir / HISTORY_FILENAME
    if history_path.exists():
        history_path.unlink()

    trainer = Trainer(
        build_model(model_config),
        train_config,
        output_dir / MODEL_FILENAME,
        device=_resolve_torch_device(args.device),
        history_path=history_path,
        checkpoint_extras={"model_config": model_config_to_dict(model_config)},
    )
    LOGGER.info("Started training.")
    result = trainer.fit(train_inputs, train_targets, val_inputs, val_targets)
    save_vocabulary(vocabulary, output_dir / VOCAB_FILENAME)
    save_index_to_class(index_to_class, output_dir / INDEX_TO_CLASS_FILENAME)

    summary = {
        "stop_reason": result.stop_reason.value,
        "best_val_f1": result.best_f1,
        "best_epoch": result.best_epoch,
        "epochs_run": result.epochs_run,
        "n_train": len(train_texts),
        "n_val": len(val_texts),
        "n_classes": len(class_to_index),
        "vocab_size": len(vocabulary),
    }
    with (output_dir / METRICS_FILENAME).open("w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2)
    return result


def main() -> None:
    configure_logging()
    args = build_arg_parser().parse_args()
    run_training(args)


if __name__ == "__main__":
    main()
