"""Tests for mapping drag gestures into native-pixel crop rectangles."""

import pytest

from cropforge.models import ClipPos, Rect, ViewBox
from cropforge.selection import (
    InvalidGestureError,
    SelectionEngine,
    gesture_to_rect,
    map_point,
)

CLIP = ClipPos(left=0, top=0, width=100, height=50)
VIEW = ViewBox(0, 0, 200, 100)

# 16:9 video letterboxed inside a 400x400 board
BOXED_CLIP = ClipPos(left=0, top=87, width=400, height=225)
BOXED_VIEW = ViewBox(0, 0, 1920, 1080)


class TestMapPoint:
    def test_scales_each_axis(self):
        assert map_point(10, 10, CLIP, VIEW) == (20.0, 20.0)

    def test_clamps_outside_points(self):
        assert map_point(-30, 500, CLIP, VIEW) == (0.0, 100.0)

    def test_offset_by_letterbox(self):
        x, y = map_point(200, 87, BOXED_CLIP, BOXED_VIEW)
        assert (x, y) == (960.0, 0.0)


class TestGestureToRect:
    def test_reference_drag(self):
        rect = gesture_to_rect((10, 10), (50, 40), CLIP, VIEW)
        assert rect == Rect(x=20, y=20, width=80, height=60)

    @pytest.mark.parametrize("start,end", [
        ((50, 40), (10, 10)),
        ((10, 40), (50, 10)),
        ((50, 10), (10, 40)),
    ])
    def test_any_direction(self, start, end):
        assert gesture_to_rect(start, end, CLIP, VIEW) == Rect(20, 20, 80, 60)

    def test_clamped_to_media(self):
        rect = gesture_to_rect((-20, -20), (150, 80), CLIP, VIEW)
        assert rect == Rect(0, 0, 200, 100)

    def test_drag_into_letterbox_bar(self):
        # End point below the picture lands on the bottom edge
        rect = gesture_to_rect((0, 87), (400, 399), BOXED_CLIP, BOXED_VIEW)
        assert rect == Rect(0, 0, 1920, 1080)

    def test_zero_area_click(self):
        with pytest.raises(InvalidGestureError):
            gesture_to_rect((30, 30), (30, 30), CLIP, VIEW)

    def test_horizontal_line(self):
        with pytest.raises(InvalidGestureError):
            gesture_to_rect((10, 30), (60, 30), CLIP, VIEW)

    def test_entirely_outside_clip(self):
        # Both ends collapse onto the top bar edge
        with pytest.raises(InvalidGestureError):
            gesture_to_rect((10, 0), (300, 50), BOXED_CLIP, BOXED_VIEW)


class TestSelectionEngine:
    def test_release_commits(self):
        sel = SelectionEngine()
        sel.press(10, 10)
        rect = sel.release(50, 40, CLIP, VIEW)
        assert rect == Rect(20, 20, 80, 60)
        assert sel.committed == rect
        assert not sel.dragging

    def test_move_updates_preview_only(self):
        sel = SelectionEngine()
        sel.press(10, 10)
        preview = sel.move(30, 30, CLIP, VIEW)
        assert preview == Rect(20, 20, 40, 40)
        assert sel.preview == preview
        assert sel.committed is None

    def test_click_keeps_previous_rect(self):
        sel = SelectionEngine()
        sel.press(10, 10)
        first = sel.release(50, 40, CLIP, VIEW)

        sel.press(70, 20)
        assert sel.release(70, 20, CLIP, VIEW) is None
        assert sel.committed == first
        assert sel.preview == first

    def test_move_without_press_is_ignored(self):
        sel = SelectionEngine()
        assert sel.move(30, 30, CLIP, VIEW) is None
        assert sel.release(30, 30, CLIP, VIEW) is None
        assert sel.committed is None

    def test_release_without_geometry(self):
        sel = SelectionEngine()
        sel.press(10, 10)
        assert sel.release(50, 40, None, None) is None
        assert not sel.dragging

    def test_clear(self):
        sel = SelectionEngine()
        sel.press(10, 10)
        sel.release(50, 40, CLIP, VIEW)
        sel.clear()
        assert sel.committed is None
        assert sel.preview is None
