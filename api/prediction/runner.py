"""
ONNX Runtime session ownership and forward passes.

One `InferenceRunner` is created per process on startup (see `api/main.py`)
and shared by every request. `InferenceSession.run` is safe to call from
several threads at once, so no locking happens here.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import numpy as np
import onnxruntime as ort

from core import settings

from .errors import ModelLoadError

logger = logging.getLogger(__name__)

DEFAULT_MODEL_PATH = Path(__file__).resolve().parent / "model" / "multi_task.onnx"
DEFAULT_PROVIDERS = ["CPUExecutionProvider"]

_runner: InferenceRunner | None = None


def model_path() -> Path:
    return Path(settings.env_str("MODEL_PATH", str(DEFAULT_MODEL_PATH)))


def execution_providers() -> list[str]:
    """
    Requested providers that this onnxruntime build actually has.
    """
    requested = settings.env_list("MODEL_PROVIDERS", DEFAULT_PROVIDERS)
    available = set(ort.get_available_providers())
    providers = [p for p in requested if p in available]
    if not providers:
        logger.warning("model_providers_unavailable requested=%s using=%s", requested, DEFAULT_PROVIDERS)
        return list(DEFAULT_PROVIDERS)
    return providers


class InferenceRunner:
    """
    Owns a loaded ONNX model and runs single-input forward passes.

    Usable as a context manager; the session is released on exit.
    """

    def __init__(self, path: str | os.PathLike, *, providers: list[str] | None = None) -> None:
        self.model_path = Path(path)
        if not self.model_path.is_file():
            raise ModelLoadError(f"Model file not found: {self.model_path}")

        try:
            self._session: ort.InferenceSession | None = ort.InferenceSession(
                str(self.model_path),
                providers=providers or list(DEFAULT_PROVIDERS),
            )
        except Exception as exc:
            raise ModelLoadError(f"Could not load model {self.model_path}: {exc}") from exc

        inputs = self._session.get_inputs()
        if not inputs:
            self._session = None
            raise ModelLoadError(f"Model {self.model_path} declares no inputs.")
        if len(inputs) > 1:
            logger.warning(
                "model_multiple_inputs path=%s inputs=%s using=%s",
                self.model_path,
                [i.name for i in inputs],
                inputs[0].name,
            )

        self.input_name: str = inputs[0].name
        self.input_shape: list[Any] = list(inputs[0].shape)
        self.output_names: list[str] = [o.name for o in self._session.get_outputs()]

        logger.info(
            "model_loaded path=%s input=%s shape=%s outputs=%s",
            self.model_path,
            self.input_name,
            self.input_shape,
            self.output_names,
        )

    @property
    def is_loaded(self) -> bool:
        return self._session is not None

    def predict(self, tensor: np.ndarray) -> dict[str, Any]:
        """
        Run one forward pass and return every produced output by name.
        """
        session = self._session
        if session is None:
            raise ModelLoadError("Model session has been released.")

        feed = {self.input_name: np.ascontiguousarray(tensor, dtype=np.float32)}
        values = session.run(self.output_names, feed)
        return dict(zip(self.output_names, values))

    def close(self) -> None:
        if self._session is not None:
            logger.info("model_released path=%s", self.model_path)
        self._session = None

    def __enter__(self) -> InferenceRunner:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def init_runner(path: str | os.PathLike | None = None) -> InferenceRunner:
    """
    Load the process-wide model once. Raises ModelLoadError if it cannot be loaded.
    """
    global _runner
    if _runner is not None:
        return _runner
    _runner = InferenceRunner(path or model_path(), providers=execution_providers())
    return _runner


def close_runner() -> None:
    global _runner
    if _runner is None:
        return None
    _runner.close()
    _runner = None


def runner() -> InferenceRunner:
    if _runner is None:
        raise RuntimeError("Model is not loaded. Call init_runner() on startup.")
    return _runner


def is_ready() -> bool:
    return _runner is not None and _runner.is_loaded
