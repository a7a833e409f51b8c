"""
Prediction "service layer".

Chains preprocessing -> inference -> extraction and handles the upload
plumbing. Nothing here knows about routing; errors propagate unchanged.
"""

from __future__ import annotations

import logging
import time
from functools import lru_cache

from fastapi import HTTPException, UploadFile

from core import settings

from . import extraction
from .preprocessing import ImageSource, PreprocessConfig, preprocess_image
from .runner import InferenceRunner

logger = logging.getLogger(__name__)

# Camera photos are a few MiB; anything far larger is not a single image upload.
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB


@lru_cache(maxsize=1)
def preprocess_config() -> PreprocessConfig:
    """
    Preprocessing settings, fixed for the lifetime of the process.
    """
    return PreprocessConfig.from_env()


def max_upload_bytes() -> int:
    value = settings.env_int("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)
    return value if value > 0 else DEFAULT_MAX_UPLOAD_BYTES


async def read_upload_bytes(file: UploadFile, max_bytes: int) -> bytes:
    """
    Read the upload into memory, enforcing a maximum size.
    """
    chunk_size = 1024 * 1024  # 1 MiB
    buf = bytearray()

    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Max is {max_bytes} bytes.",
            )

    return bytes(buf)


def predict_image(
    source: ImageSource,
    *,
    runner: InferenceRunner,
    config: PreprocessConfig | None = None,
) -> dict[str, list[float] | None]:
    """
    Run the full pipeline on one image and return the recognized outputs.

    Blocking; call it from a worker thread when serving requests.
    """
    started = time.perf_counter()

    tensor = preprocess_image(source, config or preprocess_config())
    results = runner.predict(tensor)
    outputs = extraction.extract_outputs(results, runner.output_names)

    logger.info(
        "prediction_complete latency_ms=%.1f sizes=%s",
        (time.perf_counter() - started) * 1000.0,
        {name: (len(values) if values is not None else None) for name, values in outputs.items()},
    )
    return outputs
