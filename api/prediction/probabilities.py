"""
Helpers for callers that want probabilities instead of raw logits.

Not used on the request path: `/predict` returns the model's raw outputs.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np


def softmax(logits: Sequence[float] | None) -> list[float] | None:
    if logits is None:
        return None
    values = np.asarray(logits, dtype=np.float64)
    if values.size == 0:
        return []

    exps = np.exp(values - values.max())
    return (exps / exps.sum()).tolist()


def argmax(values: Sequence[float] | None) -> int:
    """
    Index of the largest value; the first one wins on ties. -1 when empty.
    """
    if values is None:
        return -1
    arr = np.asarray(values)
    if arr.size == 0:
        return -1
    return int(np.argmax(arr))
