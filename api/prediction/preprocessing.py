"""
Image preprocessing: uploaded image -> model input tensor.

The model takes a single float32 tensor shaped [1, H, W, 3] (NHWC). Images
are resized to H x W without preserving aspect ratio, scaled to [0, 1] and
then normalized per channel with (x - mean) / std.
"""

from __future__ import annotations

import io
import os
from dataclasses import dataclass
from typing import BinaryIO, Union

import numpy as np
from PIL import Image

from core import settings

from .errors import DecodeError

MODEL_H = 224
MODEL_W = 224
CHANNEL_ORDERS = ("RGB", "BGR")

ImageSource = Union[bytes, str, os.PathLike, BinaryIO]


@dataclass(frozen=True)
class PreprocessConfig:
    height: int = MODEL_H
    width: int = MODEL_W
    channel_order: str = "RGB"
    # Indexed by output channel position, i.e. after any BGR reordering.
    mean: tuple[float, float, float] = (0.0, 0.0, 0.0)
    std: tuple[float, float, float] = (1.0, 1.0, 1.0)

    def __post_init__(self) -> None:
        if self.height <= 0 or self.width <= 0:
            raise ValueError("Model input size must be positive.")
        if self.channel_order not in CHANNEL_ORDERS:
            raise ValueError(f"channel_order must be one of {CHANNEL_ORDERS}, got {self.channel_order!r}.")
        if len(self.mean) != 3 or len(self.std) != 3:
            raise ValueError("mean and std need exactly 3 values (one per channel).")
        if any(s == 0 for s in self.std):
            raise ValueError("std values must be non-zero.")

    @property
    def input_shape(self) -> tuple[int, int, int, int]:
        return (1, self.height, self.width, 3)

    @classmethod
    def from_env(cls) -> "PreprocessConfig":
        """
        Build from MODEL_CHANNEL_ORDER / MODEL_MEAN / MODEL_STD.
        """
        return cls(
            channel_order=settings.env_str("MODEL_CHANNEL_ORDER", "RGB").upper(),
            mean=settings.env_float_tuple("MODEL_MEAN", (0.0, 0.0, 0.0)),
            std=settings.env_float_tuple("MODEL_STD", (1.0, 1.0, 1.0)),
        )


def _to_8bit(img: Image.Image) -> Image.Image:
    """
    Bring 16-bit and 32-bit single-channel images down to 8-bit grayscale.

    Pillow's own convert() clips these to 255 instead of rescaling them.
    """
    if img.mode not in ("I", "F") and not img.mode.startswith("I;16"):
        return img
    wide = np.asarray(img, dtype=np.float64)
    return Image.fromarray(np.clip(wide / 256.0, 0, 255).astype(np.uint8))


def decode_image(source: ImageSource) -> Image.Image:
    """
    Decode `source` (raw bytes, a path or a binary file object) into an RGB image.
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)

    try:
        with Image.open(source) as img:
            # Image.open is lazy; force the decode so truncated files fail here.
            img.load()
            return _to_8bit(img).convert("RGB")
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
        # UnidentifiedImageError and FileNotFoundError are both OSErrors.
        raise DecodeError(f"Could not decode image: {exc}") from exc


def to_tensor(img: Image.Image, config: PreprocessConfig) -> np.ndarray:
    resized = img.resize((config.width, config.height), resample=Image.Resampling.BOX)
    pixels = np.asarray(resized, dtype=np.float32) / 255.0

    if config.channel_order == "BGR":
        pixels = pixels[..., ::-1]

    mean = np.asarray(config.mean, dtype=np.float32)
    std = np.asarray(config.std, dtype=np.float32)
    pixels = (pixels - mean) / std

    return np.ascontiguousarray(pixels[np.newaxis, ...], dtype=np.float32)


def preprocess_image(source: ImageSource, config: PreprocessConfig | None = None) -> np.ndarray:
    """
    Decode, resize and normalize an image into a [1, H, W, 3] float32 tensor.

    Raises DecodeError for anything that is not a readable image.
    """
    config = config or PreprocessConfig()
    return to_tensor(decode_image(source), config)
