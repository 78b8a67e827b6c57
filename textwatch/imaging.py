"""Small image helpers shared by the detection and recognition stages."""

from __future__ import annotations

import numpy as np
from PIL import Image


def _as_array(image) -> np.ndarray:
    if isinstance(image, Image.Image):
        return np.asarray(image.convert("RGB"))
    return np.asarray(image)


def swap_channels(image) -> np.ndarray:
    """Return a copy of a three-channel image with its channel order reversed.

    Accepts a Pillow image (converted to RGB first) or an HxWx3 array, so an
    RGB picture becomes BGR and vice versa.
    """
    array = _as_array(image)
    if array.ndim != 3 or array.shape[2] != 3:
        raise ValueError(f"expected an HxWx3 image, got shape {array.shape}")
    return np.ascontiguousarray(array[:, :, ::-1])


def resize_image(image, width: int, height: int) -> np.ndarray:
    """Resize an HxW or HxWxC image to the given size with bilinear filtering."""
    if width <= 0 or height <= 0:
        raise ValueError(f"target size must be positive, got {width}x{height}")
    array = _as_array(image)
    if array.size == 0:
        raise ValueError("cannot resize an empty image")
    if array.dtype == np.uint8:
        resized = Image.fromarray(array).resize((width, height), Image.BILINEAR)
        return np.asarray(resized)
    planes = array[:, :, np.newaxis] if array.ndim == 2 else array
    channels = [
        np.asarray(
            Image.fromarray(np.ascontiguousarray(planes[:, :, c], dtype=np.float32)).resize(
                (width, height), Image.BILINEAR
            )
        )
        for c in range(planes.shape[2])
    ]
    stacked = np.stack(channels, axis=2)
    return stacked[:, :, 0] if array.ndim == 2 else stacked


def to_chw_tensor(image) -> np.ndarray:
    """Convert an HxWxC image to a contiguous CxHxW float32 array.

    Integer images are scaled into [0, 1] by dividing by 255; float images are
    taken as they are.
    """
    array = _as_array(image)
    if array.ndim != 3:
        raise ValueError(f"expected an HxWxC image, got shape {array.shape}")
    values = array.astype(np.float32)
    if np.issubdtype(array.dtype, np.integer):
        values /= 255.0
    return np.ascontiguousarray(values.transpose(2, 0, 1))