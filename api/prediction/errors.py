"""
Prediction pipeline failures.

All of them propagate unchanged to the router, which reports them as
`500 Error: <message>`. `ModelLoadError` is also raised at startup, where it
aborts the process.
"""

from __future__ import annotations


class PredictionError(RuntimeError):
    pass


class DecodeError(PredictionError):
    """The upload could not be read as an image."""


class ModelLoadError(PredictionError):
    """The model artifact is missing, malformed or already released."""


class OutputMissingError(PredictionError):
    """A declared output was not present in the runtime result."""


class UnsupportedOutputTypeError(PredictionError):
    """The runtime returned an output value the extractor cannot interpret."""
