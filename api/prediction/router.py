"""
FastAPI router for the image classification endpoint.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

from . import runner, service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/predict")
async def predict(file: UploadFile = File(...)):
    """
    Classify an uploaded image.

    Returns the raw `main_output` and `severity_output` vectors (logits, no
    softmax). Empty uploads are rejected before the model is touched.
    """
    data = await service.read_upload_bytes(file, max_bytes=service.max_upload_bytes())
    if not data:
        return PlainTextResponse("File is empty!", status_code=400)

    try:
        # Decode and the forward pass are blocking; keep them off the event loop.
        outputs = await run_in_threadpool(service.predict_image, data, runner=runner.runner())
    except Exception as exc:
        logger.exception("prediction_failed filename=%s size_bytes=%s", file.filename, len(data))
        return PlainTextResponse(f"Error: {exc}", status_code=500)

    return {
        "main_output": outputs["main_output"],
        "severity_output": outputs["severity_output"],
    }
