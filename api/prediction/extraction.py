"""
Output extraction: raw runtime values -> flat float vectors.

Only a closed set of output layouts is understood. Every value is classified
first and the classification drives the conversion, so an unexpected layout
fails loudly instead of being coerced.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np

from .errors import OutputMissingError, UnsupportedOutputTypeError

logger = logging.getLogger(__name__)

MAIN_OUTPUT = "main_output"
SEVERITY_OUTPUT = "severity_output"
RECOGNIZED_OUTPUTS = (MAIN_OUTPUT, SEVERITY_OUTPUT)


class OutputKind(enum.Enum):
    BATCHED_FLOAT32 = "batched_float32"  # [batch, n] float32 -> row 0
    FLAT_FLOAT32 = "flat_float32"  # [n] float32 -> as is
    BATCHED_FLOAT64 = "batched_float64"  # [batch, n] float64 -> row 0 as float32
    UNSUPPORTED = "unsupported"


def classify_output(value: Any) -> OutputKind:
    if not isinstance(value, np.ndarray):
        return OutputKind.UNSUPPORTED

    if value.dtype == np.float32:
        if value.ndim == 2 and value.shape[0] > 0:
            return OutputKind.BATCHED_FLOAT32
        if value.ndim == 1:
            return OutputKind.FLAT_FLOAT32
    elif value.dtype == np.float64:
        if value.ndim == 2 and value.shape[0] > 0:
            return OutputKind.BATCHED_FLOAT64

    return OutputKind.UNSUPPORTED


def _describe(value: Any) -> str:
    if isinstance(value, np.ndarray):
        return f"ndarray(dtype={value.dtype}, shape={value.shape})"
    return type(value).__name__


def decode_output(name: str, value: Any) -> list[float]:
    kind = classify_output(value)

    if kind is OutputKind.BATCHED_FLOAT32:
        row = value[0]
    elif kind is OutputKind.FLAT_FLOAT32:
        row = value
    elif kind is OutputKind.BATCHED_FLOAT64:
        row = value[0].astype(np.float32)
    else:
        raise UnsupportedOutputTypeError(f"Unhandled output type for {name}: {_describe(value)}")

    return row.tolist()


def extract_outputs(
    results: Mapping[str, Any],
    declared: Sequence[str],
    names: Sequence[str] = RECOGNIZED_OUTPUTS,
) -> dict[str, list[float] | None]:
    """
    Pull `names` out of a runtime result.

    A name the model does not declare maps to None. A declared name missing
    from `results` is an error.
    """
    declared_names = set(declared)
    extracted: dict[str, list[float] | None] = {}

    for name in names:
        if name not in declared_names:
            logger.warning("output_not_declared name=%s declared=%s", name, sorted(declared_names))
            extracted[name] = None
            continue

        if name not in results:
            raise OutputMissingError(f"{name} missing")

        extracted[name] = decode_output(name, results[name])

    return extracted
