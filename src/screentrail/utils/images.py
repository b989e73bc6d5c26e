"""Image input normalization for engine adapters."""

from pathlib import Path
from typing import Any

import numpy as np

from PIL import Image


def to_pil_image(image: Any) -> Image.Image:
    """
    Coerce a frame payload into an RGB PIL image.

    Args:
        image: PIL image, numpy array (HxW or HxWxC) or path to an image file

    Returns:
        RGB PIL image

    Raises:
        TypeError: If the payload type is not supported
        OSError: If a path cannot be opened as an image
    """
    if isinstance(image, Image.Image):
        return image.convert("RGB") if image.mode != "RGB" else image
    if isinstance(image, np.ndarray):
        return Image.fromarray(image).convert("RGB")
    if isinstance(image, (str, Path)):
        with Image.open(image) as opened:
            return opened.convert("RGB")
    raise TypeError(f"Unsupported image payload: {type(image).__name__}")
