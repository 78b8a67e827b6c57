"""Text region detection: preprocessing, box extraction and a detector."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Sequence

import numpy as np
from scipy import ndimage

from textwatch.imaging import resize_image, swap_channels, to_chw_tensor

log = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 960
DEFAULT_THRESHOLD = 0.3
SIZE_MULTIPLE = 32
HORIZONTAL_RATIO = 0.2
VERTICAL_RATIO = 0.5

Point = tuple[int, int]
RectTuple = tuple[int, int, int, int]


def detection_input_size(width: int, height: int, max_size: int = DEFAULT_MAX_SIZE) -> tuple[int, int]:
    """Return the (width, height) a frame is resized to before detection.

    The longer side is scaled to ``max_size`` and both sides are rounded down
    to a multiple of 32. Raises ValueError if either side would vanish.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"image size must be positive, got {width}x{height}")
    scale = np.float32(max_size) / np.float32(max(width, height))
    new_w = int(np.float32(width) * scale) // SIZE_MULTIPLE * SIZE_MULTIPLE
    new_h = int(np.float32(height) * scale) // SIZE_MULTIPLE * SIZE_MULTIPLE
    if new_w <= 0 or new_h <= 0:
        raise ValueError(f"image of {width}x{height} is too narrow to detect text in")
    return new_w, new_h


def preprocess_detection(image, max_size: int = DEFAULT_MAX_SIZE) -> tuple[np.ndarray, np.ndarray]:
    """Prepare a BGR frame for the detection model.

    Returns a (1, 3, H, W) float32 tensor with values in [0, 1] and the resized
    RGB image it was made from.
    """
    array = np.asarray(image)
    if array.size == 0 or array.ndim != 3:
        raise ValueError("Invalid input frame")
    rows, cols = array.shape[:2]
    new_w, new_h = detection_input_size(cols, rows, max_size)
    rgb = swap_channels(array)
    resized = resize_image(rgb, new_w, new_h)
    return to_chw_tensor(resized)[np.newaxis, ...], resized


def _cross(o: np.ndarray, a: np.ndarray, b: np.ndarray) -> float:
    return float((a[0] - o[0]) * (b[1] - o[1]) - (a[1] - o[1]) * (b[0] - o[0]))


def _convex_hull(points: np.ndarray) -> np.ndarray:
    unique = sorted({(float(x), float(y)) for x, y in points})
    if len(unique) <= 2:
        return np.array(unique, dtype=np.float64)
    pts = [np.array(p) for p in unique]

    def half(sequence):
        chain: list[np.ndarray] = []
        for p in sequence:
            while len(chain) >= 2 and _cross(chain[-2], chain[-1], p) <= 0:
                chain.pop()
            chain.append(p)
        return chain

    lower = half(pts)
    upper = half(reversed(pts))
    hull = lower[:-1] + upper[:-1]
    return np.array(hull, dtype=np.float64)


def _truncate(value: float) -> int:
    # Round away float noise first so exact corners are not truncated down.
    return int(float(np.round(value, 6)))


def min_area_box(points) -> list[Point]:
    """Return the four corners of the smallest rotated rectangle around points.

    Corner coordinates are truncated towards zero, in cyclic order.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(pts) == 0:
        raise ValueError("cannot fit a box around no points")
    hull = _convex_hull(pts)
    if len(hull) == 1:
        corners = [hull[0]] * 4
    elif len(hull) == 2:
        corners = [hull[0], hull[1], hull[1], hull[0]]
    else:
        best = None
        for p, q in zip(hull, np.roll(hull, -1, axis=0)):
            edge = q - p
            length = float(np.hypot(edge[0], edge[1]))
            if length == 0:
                continue
            u = edge / length
            v = np.array([-u[1], u[0]])
            a = hull @ u
            b = hull @ v
            area = (a.max() - a.min()) * (b.max() - b.min())
            if best is None or area < best[0] - 1e-12:
                best = (area, u, v, a.min(), a.max(), b.min(), b.max())
        _, u, v, a0, a1, b0, b1 = best
        corners = [u * a0 + v * b0, u * a1 + v * b0, u * a1 + v * b1, u * a0 + v * b1]
    return [(_truncate(c[0]), _truncate(c[1])) for c in corners]


def find_text_boxes(score_map, threshold: float = DEFAULT_THRESHOLD) -> list[list[Point]]:
    """Find rotated boxes around the outer regions scoring above the threshold.

    Regions nested inside the holes of another region are part of that region.
    """
    scores = np.asarray(score_map, dtype=np.float32)
    if scores.ndim != 2:
        raise ValueError(f"expected a 2-D score map, got shape {scores.shape}")
    binary = scores > np.float32(threshold)
    filled = ndimage.binary_fill_holes(binary)
    labels, _ = ndimage.label(filled, structure=np.ones((3, 3), dtype=bool))
    boxes = []
    for label, region in enumerate(ndimage.find_objects(labels), start=1):
        if region is None:
            continue
        ys, xs = np.nonzero(labels[region] == label)
        points = np.column_stack((xs + region[1].start, ys + region[0].start))
        boxes.append(min_area_box(points))
    return boxes


def bounding_rect(points) -> RectTuple:
    """Return the (x, y, width, height) of the upright rectangle holding every point."""
    pts = np.asarray(points, dtype=np.int64).reshape(-1, 2)
    if len(pts) == 0:
        raise ValueError("cannot bound no points")
    x0, y0 = pts.min(axis=0)
    x1, y1 = pts.max(axis=0)
    return int(x0), int(y0), int(x1 - x0 + 1), int(y1 - y0 + 1)


def expand_box(
    box: Sequence[Point],
    horizontal_ratio: float,
    vertical_ratio: float,
    image_width: int,
    image_height: int,
) -> RectTuple:
    """Grow a box's bounding rectangle by the given ratios, clipped to the image."""
    x, y, w, h = bounding_rect(box)
    dx = int(np.float32(w) * np.float32(horizontal_ratio))
    dy = int(np.float32(h) * np.float32(vertical_ratio))
    new_x = max(0, x - dx)
    new_y = max(0, y - dy)
    new_w = min(image_width - new_x, w + 2 * dx)
    new_h = min(image_height - new_y, h + 2 * dy)
    return new_x, new_y, new_w, new_h


class TextDetector:
    """Finds text regions in a frame with a detection model.

    ``session`` is a callable taking a (1, 3, H, W) float32 array and returning
    a probability map shaped (1, 1, H', W'); a list whose first item is that
    array is accepted as well.
    """

    def __init__(self, session: Callable[[np.ndarray], Any], threshold: float = DEFAULT_THRESHOLD):
        self.session = session
        self.threshold = threshold

    def detect(self, image) -> list[np.ndarray]:
        """Return BGR crops of the text regions, or [] if detection failed."""
        try:
            start = time.perf_counter()
            tensor, resized = preprocess_detection(image)
            log.debug("Detection preprocess time cost: %.0f ms", (time.perf_counter() - start) * 1e3)
            output = self.session(tensor)
            if isinstance(output, (list, tuple)):
                output = output[0]
            output = np.asarray(output, dtype=np.float32)
            out_h, out_w = output.shape[2], output.shape[3]
            score_map = output.reshape(-1)[: out_h * out_w].reshape(out_h, out_w)
            boxes = find_text_boxes(score_map, self.threshold)
            log.debug("Detected %d text boxes", len(boxes))
            bgr = swap_channels(resized)
            img_h, img_w = bgr.shape[:2]
            crops = []
            for box in boxes:
                x, y, w, h = expand_box(box, HORIZONTAL_RATIO, VERTICAL_RATIO, img_w, img_h)
                if w < 0 or h < 0:
                    raise ValueError(f"box {box} lies outside the image")
                crops.append(bgr[y : y + h, x : x + w].copy())
            return crops
        except Exception as exc:
            log.debug("Detection failed: %s", exc)
            return []