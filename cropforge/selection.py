"""Selection engine — turns a drag on the board into a crop rectangle.

Pointer positions arrive in board pixels. They are clamped to the
letterboxed clip area and scaled into the view box, i.e. native media
pixels, so the committed ``Rect`` can be handed straight to ffmpeg.
"""

import logging

from cropforge.models import ClipPos, Rect, ViewBox

logger = logging.getLogger(__name__)


class InvalidGestureError(ValueError):
    """Raised for a gesture that does not describe a usable rectangle."""
    pass


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def map_point(x: float, y: float, clip_pos: ClipPos, view_box: ViewBox) -> tuple[float, float]:
    """Map a board point into view box units, clamped to the clip area."""
    local_x = _clamp(x, clip_pos.left, clip_pos.left + clip_pos.width) - clip_pos.left
    local_y = _clamp(y, clip_pos.top, clip_pos.top + clip_pos.height) - clip_pos.top
    return (
        view_box.x + local_x * view_box.width / clip_pos.width,
        view_box.y + local_y * view_box.height / clip_pos.height,
    )


def gesture_to_rect(
    start: tuple[float, float],
    end: tuple[float, float],
    clip_pos: ClipPos,
    view_box: ViewBox,
) -> Rect:
    """Convert a drag from ``start`` to ``end`` into a native-pixel Rect.

    Drag direction does not matter. Raises InvalidGestureError when the
    result has no area after clamping and rounding.
    """
    x0, y0 = map_point(start[0], start[1], clip_pos, view_box)
    x1, y1 = map_point(end[0], end[1], clip_pos, view_box)

    left, right = round(min(x0, x1)), round(max(x0, x1))
    top, bottom = round(min(y0, y1)), round(max(y0, y1))

    if right <= left or bottom <= top:
        raise InvalidGestureError(
            f"Gesture {start} -> {end} has no area inside the clip"
        )
    return Rect(x=left, y=top, width=right - left, height=bottom - top)


class SelectionEngine:
    """Tracks one drag gesture at a time.

    ``preview`` follows the pointer while dragging; ``committed`` only
    changes when a gesture is released with a non-zero area.
    """

    def __init__(self) -> None:
        self.preview: Rect | None = None
        self.committed: Rect | None = None
        self._anchor: tuple[float, float] | None = None

    @property
    def dragging(self) -> bool:
        return self._anchor is not None

    def press(self, x: float, y: float) -> None:
        self._anchor = (x, y)

    def move(
        self,
        x: float,
        y: float,
        clip_pos: ClipPos | None,
        view_box: ViewBox | None,
    ) -> Rect | None:
        if self._anchor is None or clip_pos is None or view_box is None:
            return self.preview
        try:
            self.preview = gesture_to_rect(self._anchor, (x, y), clip_pos, view_box)
        except InvalidGestureError:
            self.preview = None
        return self.preview

    def release(
        self,
        x: float,
        y: float,
        clip_pos: ClipPos | None,
        view_box: ViewBox | None,
    ) -> Rect | None:
        """Finish the gesture; return the new committed Rect or None."""
        anchor, self._anchor = self._anchor, None
        if anchor is None or clip_pos is None or view_box is None:
            return None
        try:
            rect = gesture_to_rect(anchor, (x, y), clip_pos, view_box)
        except InvalidGestureError as e:
            logger.debug("Ignoring gesture: %s", e)
            self.preview = self.committed
            return None

        self.preview = rect
        self.committed = rect
        logger.debug("Committed selection %s", rect)
        return rect

    def clear(self) -> None:
        self.preview = None
        self.committed = None
        self._anchor = None
