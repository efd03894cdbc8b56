from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

import numpy as np
import torch
from transformers import AutoModelForSequenceClassification, AutoTokenizer

from sentiscope.sentiment_types import RawClassification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SentimentModelConfig:
    model_path: str
    max_length: int
    device: str  # "auto" | "cpu" | "cuda"


@dataclass(frozen=True)
class ModelHandle:
    model: Any
    tokenizer: Any
    device: torch.device
    id2label: dict[int, str]


def _select_device(device: str) -> torch.device:
    if device == "cpu":
        return torch.device("cpu")
    if device == "cuda":
        return torch.device("cuda")
    # auto
    return torch.device("cuda" if torch.cuda.is_available() else "cpu")


def _load_model_and_tokenizer(model_path: str):
    """
    Raises:
        OSError: if model files are missing or path is invalid.
    """
    logger.info("Loading sentiment model: path=%s", model_path)
    tokenizer = AutoTokenizer.from_pretrained(model_path)
    model = AutoModelForSequenceClassification.from_pretrained(model_path)
    return model, tokenizer


class LocalSentimentModel:
    """
    In-process classifier, one text at a time.

    The model is loaded lazily on first use and kept for the lifetime of this
    object. `ensure_loaded()` may be called any number of times from any
    thread; it always returns the same handle.
    """

    def __init__(
            self,
            cfg: SentimentModelConfig,
            loader: Optional[Callable[[str], tuple[Any, Any]]] = None,
    ):
        if cfg.max_length <= 0:
            raise ValueError("max_length must be > 0")
        self._cfg = cfg
        self._loader = loader or _load_model_and_tokenizer
        self._handle: Optional[ModelHandle] = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._handle is not None

    def ensure_loaded(self) -> ModelHandle:
        if self._handle is not None:
            return self._handle
        with self._lock:
            if self._handle is None:
                self._handle = self._build_handle()
        return self._handle

    def __call__(self, text: str) -> RawClassification:
        return self.classify(text)

    def classify(self, text: str) -> RawClassification:
        """
        Classify a single text and return the top label with its probability.

        Raises:
            OSError: if the model cannot be loaded
        """
        h = self.ensure_loaded()

        enc = h.tokenizer(
            [text],
            padding=True,
            truncation=True,
            max_length=self._cfg.max_length,
            return_tensors="pt",
        )
        enc = {k: v.to(h.device) for k, v in enc.items()}

        with torch.no_grad():
            logits = h.model(**enc).logits  # (1, num_labels)
            probs = torch.softmax(logits, dim=-1).cpu().numpy()[0]

        idx = int(np.argmax(probs))
        label = h.id2label.get(idx, f"LABEL_{idx}")
        return RawClassification(label=label, score=float(probs[idx]))

    def _build_handle(self) -> ModelHandle:
        device = _select_device(self._cfg.device)
        model, tokenizer = self._loader(self._cfg.model_path)
        model = model.to(device)
        model.eval()

        id2label = {int(k): str(v) for k, v in (getattr(model.config, "id2label", None) or {}).items()}
        logger.info(
            "Sentiment model ready: path=%s device=%s labels=%s max_length=%s",
            self._cfg.model_path,
            device.type,
            sorted(id2label.values()),
            self._cfg.max_length,
        )
        return ModelHandle(model=model, tokenizer=tokenizer, device=device, id2label=id2label)
