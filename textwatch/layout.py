"""Geometry for placing camera views in grids and mapping selections to frames."""

from __future__ import annotations

import math

from textwatch.overlay import Rect

SCROLL_THRESHOLD = 4
COLUMNS_WITHOUT_SCROLL = 2
COLUMNS_WITH_SCROLL = 3


def _trunc_div(numerator: int, denominator: int) -> int:
    """Integer division that truncates towards zero."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator >= 0) else -quotient


def fit_size(width: int, height: int, box_width: int, box_height: int) -> tuple[int, int]:
    """Scale a size to the largest one that fits in a box, keeping its aspect ratio.

    A size with a zero side cannot be scaled and the box size is returned.
    """
    if width == 0 or height == 0:
        return box_width, box_height
    scaled_width = _trunc_div(box_height * width, height)
    if scaled_width <= box_width:
        return scaled_width, box_height
    return box_width, _trunc_div(box_width * height, width)


def label_to_frame_rect(
    rect: Rect,
    label_size: tuple[int, int],
    frame_size: tuple[int, int],
) -> Rect:
    """Map a rectangle drawn on a letterboxed view onto the frame it shows.

    The frame is taken to be scaled to fit the label and centred in it.
    Raises ValueError if the frame, once fitted, has no area.
    """
    label_w, label_h = label_size
    frame_w, frame_h = frame_size
    scaled_w, scaled_h = fit_size(frame_w, frame_h, label_w, label_h)
    if scaled_w == 0 or scaled_h == 0:
        raise ValueError(f"frame of {frame_w}x{frame_h} does not fit a {label_w}x{label_h} view")
    x_offset = _trunc_div(label_w - scaled_w, 2)
    y_offset = _trunc_div(label_h - scaled_h, 2)
    x_scale = frame_w / scaled_w
    y_scale = frame_h / scaled_h
    return Rect(
        int((rect.x - x_offset) * x_scale),
        int((rect.y - y_offset) * y_scale),
        int(rect.width * x_scale),
        int(rect.height * y_scale),
    )


def grid_position(index: int, per_page: int) -> tuple[int, int]:
    """Return the (row, column) of a camera slot in a square page grid.

    The grid side is the integer square root of the slots per page.
    """
    if per_page < 1:
        raise ValueError(f"a page needs at least one slot, got {per_page}")
    if index < 0:
        raise ValueError(f"slot index must not be negative, got {index}")
    side = math.isqrt(per_page)
    return divmod(index, side)


def cropped_grid_columns(count: int) -> int:
    """Return how many columns the cropped-image grid uses for a number of crops."""
    if count < 0:
        raise ValueError(f"crop count must not be negative, got {count}")
    return COLUMNS_WITH_SCROLL if count > SCROLL_THRESHOLD else COLUMNS_WITHOUT_SCROLL