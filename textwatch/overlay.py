"""Selection rectangles, buttons and warning state of a camera overlay."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable

from textwatch.alarm import match_keywords

BASE_WIDTH = 640
BASE_HEIGHT = 480
HANDLE_SIZE = 8
SWITCH_BUTTON_SIZE = 24
BUTTON_MARGIN = 10
SWITCH_BUTTON_GAP = 5
CLOSE_BUTTON_SIZE = 12
WARNING_SECONDS = 10

NORMAL_TEXT = "正常"
ABNORMAL_TEXT = "异常"


def _half(value: int) -> int:
    """Integer halving that truncates towards zero."""
    return value // 2 if value >= 0 else -((-value) // 2)


def _qround(value: float) -> int:
    return int(value + 0.5) if value >= 0.0 else int(value - 0.5)


@dataclass(frozen=True)
class Rect:
    """An integer rectangle whose right and bottom edges are inclusive."""

    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @classmethod
    def from_edges(cls, left: int, top: int, right: int, bottom: int) -> Rect:
        return cls(left, top, right - left + 1, bottom - top + 1)

    @classmethod
    def from_points(cls, first: tuple[int, int], second: tuple[int, int]) -> Rect:
        """Return the normalized rectangle spanning two corner points."""
        return cls.from_edges(first[0], first[1], second[0], second[1]).normalized()

    @property
    def is_valid(self) -> bool:
        return self.width > 0 and self.height > 0

    def right(self) -> int:
        return self.x + self.width - 1

    def bottom(self) -> int:
        return self.y + self.height - 1

    def center(self) -> tuple[int, int]:
        return _half(self.x + self.right()), _half(self.y + self.bottom())

    def contains(self, x: int, y: int) -> bool:
        left, right = self.x, self.right()
        if right < left - 1:
            left, right = right, left
        if x < left or x > right:
            return False
        top, bottom = self.y, self.bottom()
        if bottom < top - 1:
            top, bottom = bottom, top
        return top <= y <= bottom

    def normalized(self) -> Rect:
        """Return the rectangle with its edges swapped where they are reversed."""
        left, right = self.x, self.right()
        if right < left:
            left, right = right, left
        top, bottom = self.y, self.bottom()
        if bottom < top:
            top, bottom = bottom, top
        return Rect.from_edges(left, top, right, bottom)

    def translated(self, dx: int, dy: int) -> Rect:
        return Rect(self.x + dx, self.y + dy, self.width, self.height)


class ResizeHandle(enum.Enum):
    """Grab points on a selection rectangle."""

    NONE = "none"
    TOP_LEFT = "top_left"
    TOP_RIGHT = "top_right"
    BOTTOM_LEFT = "bottom_left"
    BOTTOM_RIGHT = "bottom_right"
    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"


_HANDLES = (
    ResizeHandle.TOP_LEFT,
    ResizeHandle.TOP_RIGHT,
    ResizeHandle.BOTTOM_LEFT,
    ResizeHandle.BOTTOM_RIGHT,
    ResizeHandle.TOP,
    ResizeHandle.RIGHT,
    ResizeHandle.BOTTOM,
    ResizeHandle.LEFT,
)


class OverlayAction(enum.Enum):
    """What a pointer event asks the surrounding view to do."""

    NONE = "none"
    EXPAND = "expand"
    SWITCH = "switch"
    CLOSED = "closed"
    SELECTED = "selected"


@dataclass
class SelectionRegion:
    """A numbered region selected on the overlay, with the scale it was drawn at."""

    rect: Rect = field(default_factory=Rect)
    number: int = 1
    x_ratio: float = 1.0
    y_ratio: float = 1.0


class OverlayState:
    """Interaction state of the overlay drawn on top of one camera view."""

    def __init__(self, cam_id: int, width: int = BASE_WIDTH, height: int = BASE_HEIGHT):
        self.cam_id = cam_id
        self.width = width
        self.height = height
        self.base_width = BASE_WIDTH
        self.base_height = BASE_HEIGHT
        self.first_resize = True
        self.regions: list[SelectionRegion] = [SelectionRegion()]

        self.cam_name = ""
        self.inference_result = ""
        self.all_keywords: list[str] = []
        self.keywords = ""
        self.is_normal_status = True
        self.show_warning = False
        self.is_inf = False

        self.hover_idx = -1
        self.drag_idx = -1
        self.resize_idx = -1
        self.resize_handle = ResizeHandle.NONE
        self.expand_button_hovered = False
        self.switch_button_hovered = False

        self.is_dragging = False
        self.drag_start = (0, 0)
        self.current_rect = Rect()
        self.current_x_ratio = 1.0
        self.current_y_ratio = 1.0
        self._drag_pos = (0, 0)

    # text and status

    def set_inference_result(self, result: str) -> None:
        self.inference_result = result

    def set_keywords(self, keywords: Iterable[str]) -> None:
        """Set the watched keywords and match them against the current result."""
        self.all_keywords = list(keywords)
        self.refresh_keywords()

    def refresh_keywords(self) -> None:
        self.keywords = match_keywords(self.inference_result, self.all_keywords)

    def update_status(self) -> None:
        self.is_normal_status = not self.keywords

    @property
    def status_text(self) -> str:
        return NORMAL_TEXT if self.is_normal_status else ABNORMAL_TEXT

    @property
    def warning_text(self) -> str | None:
        if not self.show_warning or not self.keywords:
            return None
        return f"检测到关键字: {self.keywords}"

    def hint_warning(self) -> bool:
        """Raise the warning once for matched keywords while reading is active.

        Selections are reset and reading stops. Returns True when a warning
        was raised; the caller shows it for WARNING_SECONDS and sends alarms.
        """
        if not self.keywords or not self.is_inf:
            return False
        self.show_warning = True
        self.regions = [SelectionRegion()]
        self.is_inf = False
        return True

    # crop coordinates

    def crop_fractions(self) -> tuple[float, float, float, float] | None:
        """Return the first region as fractions of the overlay size, if any."""
        if not self.regions:
            return None
        rect = self.regions[0].rect
        return (
            rect.x / self.width,
            rect.y / self.height,
            rect.width / self.width,
            rect.height / self.height,
        )

    def set_crop_fractions(self, x: float, y: float, dx: float, dy: float) -> None:
        if not self.regions:
            self.regions.append(SelectionRegion())
        self.regions[0].rect = Rect(
            int(x * self.width),
            int(y * self.height),
            int(dx * self.width),
            int(dy * self.height),
        )

    # geometry

    @property
    def _x_scale(self) -> float:
        return self.width / self.base_width

    @property
    def _y_scale(self) -> float:
        return self.height / self.base_height

    def _current_ratios(self) -> tuple[float, float]:
        if self.first_resize:
            return 1.0, 1.0
        return self._x_scale, self._y_scale

    def expand_button_rect(self) -> Rect:
        size = int(SWITCH_BUTTON_SIZE * self._x_scale)
        margin = int(BUTTON_MARGIN * self._x_scale)
        return Rect(self.width - size - margin, margin, size, size)

    def switch_button_rect(self) -> Rect:
        size = int(SWITCH_BUTTON_SIZE * self._x_scale)
        margin = int(BUTTON_MARGIN * self._x_scale)
        gap = int(SWITCH_BUTTON_GAP * self._y_scale)
        return Rect(self.width - size - margin, margin + size + gap, size, size)

    def close_button_rect(self, rect: Rect) -> Rect:
        size = int(CLOSE_BUTTON_SIZE * self._x_scale)
        return Rect(rect.right() - size - 2, rect.y + 2, size, size)

    def resize_handle_rect(self, rect: Rect, handle: ResizeHandle) -> Rect:
        size = int(HANDLE_SIZE * self._x_scale)
        half = size // 2
        cx, cy = rect.center()
        anchors = {
            ResizeHandle.TOP_LEFT: (rect.x, rect.y),
            ResizeHandle.TOP_RIGHT: (rect.right(), rect.y),
            ResizeHandle.BOTTOM_LEFT: (rect.x, rect.bottom()),
            ResizeHandle.BOTTOM_RIGHT: (rect.right(), rect.bottom()),
            ResizeHandle.TOP: (cx, rect.y),
            ResizeHandle.RIGHT: (rect.right(), cy),
            ResizeHandle.BOTTOM: (cx, rect.bottom()),
            ResizeHandle.LEFT: (rect.x, cy),
        }
        anchor = anchors.get(handle)
        if anchor is None:
            return Rect()
        return Rect(anchor[0] - half, anchor[1] - half, size, size)

    # pointer handling

    def _update_hover(self, x: int, y: int) -> None:
        self.expand_button_hovered = self.expand_button_rect().contains(x, y)
        self.switch_button_hovered = self.switch_button_rect().contains(x, y)
        self.hover_idx = -1
        for i, region in enumerate(self.regions):
            if self.close_button_rect(region.rect).contains(x, y):
                self.hover_idx = i
                return
            if region.rect.contains(x, y):
                self.hover_idx = i

    def _check_resize_handles(self, x: int, y: int) -> None:
        self.resize_handle = ResizeHandle.NONE
        self.resize_idx = -1
        if not 0 <= self.hover_idx < len(self.regions):
            return
        rect = self.regions[self.hover_idx].rect
        for handle in _HANDLES:
            if self.resize_handle_rect(rect, handle).contains(x, y):
                self.resize_handle = handle
                self.resize_idx = self.hover_idx
                return

    def _resize_region(self, x: int, y: int) -> None:
        if self.resize_handle is ResizeHandle.NONE or not 0 <= self.resize_idx < len(self.regions):
            return
        region = self.regions[self.resize_idx]
        rect = region.rect
        left, top, right, bottom = rect.x, rect.y, rect.right(), rect.bottom()
        handle = self.resize_handle
        if handle in (ResizeHandle.TOP_LEFT, ResizeHandle.BOTTOM_LEFT, ResizeHandle.LEFT):
            left = x
        if handle in (ResizeHandle.TOP_RIGHT, ResizeHandle.BOTTOM_RIGHT, ResizeHandle.RIGHT):
            right = x
        if handle in (ResizeHandle.TOP_LEFT, ResizeHandle.TOP_RIGHT, ResizeHandle.TOP):
            top = y
        if handle in (ResizeHandle.BOTTOM_LEFT, ResizeHandle.BOTTOM_RIGHT, ResizeHandle.BOTTOM):
            bottom = y
        region.rect = Rect.from_edges(left, top, right, bottom).normalized()
        if not self.first_resize:
            region.x_ratio, region.y_ratio = self._x_scale, self._y_scale

    def press(self, x: int, y: int) -> OverlayAction:
        """Handle a left-button press at a point."""
        self._update_hover(x, y)
        if self.expand_button_hovered:
            return OverlayAction.EXPAND
        if self.switch_button_rect().contains(x, y):
            self.regions.clear()
            return OverlayAction.SWITCH
        if 0 <= self.hover_idx < len(self.regions):
            if self.close_button_rect(self.regions[self.hover_idx].rect).contains(x, y):
                del self.regions[self.hover_idx]
                self.hover_idx = -1
                return OverlayAction.CLOSED
            self._check_resize_handles(x, y)
            if self.resize_handle is ResizeHandle.NONE:
                self.drag_idx = self.hover_idx
                self._drag_pos = (x, y)
        else:
            self.hover_idx = -1
            self.resize_handle = ResizeHandle.NONE
            self.drag_idx = -1
            self.resize_idx = -1
            self.is_dragging = True
            self.drag_start = (x, y)
            self.current_rect = Rect()
            self.current_x_ratio, self.current_y_ratio = self._current_ratios()
        return OverlayAction.NONE

    def move(self, x: int, y: int) -> bool:
        """Handle pointer movement; returns True when a region was changed."""
        if self.resize_idx != -1 and self.resize_handle is not ResizeHandle.NONE:
            self._resize_region(x, y)
            return True
        if 0 <= self.drag_idx < len(self.regions):
            region = self.regions[self.drag_idx]
            region.rect = region.rect.translated(x - self._drag_pos[0], y - self._drag_pos[1])
            self._drag_pos = (x, y)
            return True
        if self.is_dragging:
            self.current_rect = Rect.from_points(self.drag_start, (x, y))
            return False
        self._update_hover(x, y)
        if self.hover_idx != -1:
            self._check_resize_handles(x, y)
        return False

    def release(self, x: int, y: int) -> OverlayAction:
        """Handle a left-button release; SELECTED when the regions changed."""
        action = OverlayAction.NONE
        was_resizing = self.resize_idx != -1 and self.resize_handle is not ResizeHandle.NONE
        was_dragging = self.is_dragging and self.current_rect.is_valid
        if was_resizing:
            if not self.first_resize and self.resize_idx < len(self.regions):
                region = self.regions[self.resize_idx]
                region.x_ratio, region.y_ratio = self._x_scale, self._y_scale
            self.resize_idx = -1
            self.resize_handle = ResizeHandle.NONE
            action = OverlayAction.SELECTED
        elif was_dragging:
            x_ratio, y_ratio = self._current_ratios()
            self.regions.append(SelectionRegion(rect=self.current_rect, x_ratio=x_ratio, y_ratio=y_ratio))
            self.is_inf = True
            self.current_rect = Rect()
            action = OverlayAction.SELECTED
        self.is_dragging = False
        self.drag_idx = -1
        self._update_hover(x, y)
        return action

    def resize(self, width: int, height: int) -> None:
        """Apply a new overlay size, scaling regions from their drawn size."""
        self.width = width
        self.height = height
        if self.first_resize and width > 10 and height > 10:
            self.base_width, self.base_height = width, height
            self.first_resize = False
            return
        if self.base_width <= 0 or self.base_height <= 0:
            return
        width_ratio = width / self.base_width
        height_ratio = height / self.base_height

        for region in self.regions:
            rect = region.rect
            base_x = int(rect.x / region.x_ratio)
            base_y = int(rect.y / region.y_ratio)
            base_w = int(rect.width / region.x_ratio)
            base_h = int(rect.height / region.y_ratio)
            region.rect = Rect(
                _qround(base_x * width_ratio),
                _qround(base_y * height_ratio),
                _qround(base_w * width_ratio),
                _qround(base_h * height_ratio),
            )
            region.x_ratio, region.y_ratio = width_ratio, height_ratio

        if self.is_dragging and self.current_rect.is_valid:
            rect = self.current_rect
            self.current_rect = Rect(
                _qround(rect.x / self.current_x_ratio * width_ratio),
                _qround(rect.y / self.current_y_ratio * height_ratio),
                _qround(rect.width / self.current_x_ratio * width_ratio),
                _qround(rect.height / self.current_y_ratio * height_ratio),
            )
            self.current_x_ratio, self.current_y_ratio = width_ratio, height_ratio

        if self.drag_idx != -1:
            px, py = self._drag_pos
            self._drag_pos = (
                _qround(px / self.current_x_ratio * width_ratio),
                _qround(py / self.current_y_ratio * height_ratio),
            )

        if self.is_dragging:
            sx, sy = self.drag_start
            self.drag_start = (
                _qround(sx / self.current_x_ratio * width_ratio),
                _qround(sy / self.current_y_ratio * height_ratio),
            )