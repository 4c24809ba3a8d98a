from dataclasses import dataclass

UNK_TOKEN = "<UNK>"
UNK_INDEX = 0
PAD_INDEX = UNK_INDEX

DEFAULT_MAX_SEQ_LEN = 128
DEFAULT_PREDICTION_THRESHOLD = 0.5
DEFAULT_LABEL_DELIMITER = "|"

VOCAB_FILENAME = "vocab.json"
INDEX_TO_CLASS_FILENAME = "index_to_class.json"
MODEL_FILENAME = "model.pt"
METRICS_FILENAME = "metrics.json"
HISTORY_FILENAME = "epoch_history.jsonl"

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


@dataclass(frozen=True)
class TrainConfig:
    n_epochs: int = 100
    learning_rate: float = 1e-3
    early_stop_patience: int = 20
    prediction_threshold: float = DEFAULT_PREDICTION_THRESHOLD
    label_delimiter: str = DEFAULT_LABEL_DELIMITER
    seed: int = 42

    def __post_init__(self) -> None:
        if self.n_epochs <= 0:
            raise ValueError("n_epochs must be a positive integer.")
        if self.learning_rate <= 0:
            raise ValueError("learning_rate must be positive.")
        if self.early_stop_patience < 0:
            raise ValueError("early_stop_patience must be non-negative.")
        if not (0.0 <= self.prediction_threshold <= 1.0):
            raise ValueError("prediction_threshold must be in [0, 1].")
        if not self.label_delimiter:
            raise ValueError("label_delimiter must be a non-empty string.")


@dataclass(frozen=True)
class ModelConfig:
    vocab_size: int
    n_classes: int
    embedding_size: int = 15
    hidden_size: int = 20
    max_seq_len: int = DEFAULT_MAX_SEQ_LEN

    def __post_init__(self) -> None:
        if self.max_seq_len <= 0:
            raise ValueError("max_seq_len must be a positive integer.")
        if self.vocab_size < 0 or self.n_classes < 0:
            raise ValueError("vocab_size and n_classes must be non-negative.")
