from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import torch
from torch import nn

from headline_clf.config import DEFAULT_MAX_SEQ_LEN, ModelConfig, PAD_INDEX


class HeadlineClassifier(nn.Module):
    """
    Bag-of-words headline classifier.

    Input:
      token_ids: [B, max_seq_len]
    Output:
      logits: [B, n_classes] (pre-sigmoid)
    """

    def __init__(self, config: ModelConfig) -> None:
        super().__init__()
        self.config = config
        # Row 0 is shared by the unknown and padding tokens.
        self.embedding = nn.Embedding(int(config.vocab_size) + 1, int(config.embedding_size), padding_idx=PAD_INDEX)
        self.fully_connected = nn.Linear(int(config.embedding_size), int(config.hidden_size))
        self.classifier = nn.Linear(int(config.hidden_size), int(config.n_classes))

    def forward(self, token_ids: torch.Tensor) -> torch.Tensor:
        x = self.embedding(token_ids)  # [B, L, E]
        x = x.mean(dim=1)  # [B, E]
        x = self.fully_connected(x)
        return self.classifier(x)


def build_model(config: ModelConfig) -> HeadlineClassifier:
    return HeadlineClassifier(config)


def model_config_to_dict(config: ModelConfig) -> Dict[str, Any]:
    return asdict(config)


def model_config_from_dict(raw: Dict[str, Any]) -> ModelConfig:
    return ModelConfig(
        vocab_size=int(raw["vocab_size"]),
        n_classes=int(raw["n_classes"]),
        embedding_size=int(raw.get("embedding_size", 15)),
        hidden_size=int(raw.get("hidden_size", 20)),
        max_seq_len=int(raw.get("max_seq_len", DEFAULT_MAX_SEQ_LEN)),
    )
