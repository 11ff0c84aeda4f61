from enum import Enum
from typing import Callable, Optional

from .history import HistoryStack
from .models import Point, Tool, ToolState
from .surface import SurfaceManager


class StrokeState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class DrawingEngine:
    """
    Turns gestures into raster strokes.

    Tool state is read through `get_tools` on every segment, so a color or
    width change in the middle of a gesture applies to the rest of that stroke.
    """

    def __init__(self, manager: SurfaceManager, history: HistoryStack,
                 get_tools: Callable[[], ToolState]):
        self.manager = manager
        self.history = history
        self.get_tools = get_tools
        self.state = StrokeState.IDLE
        self.last_point: Optional[Point] = None

    @property
    def is_drawing(self) -> bool:
        return self.state == StrokeState.ACTIVE

    def stroke_color(self, tools: ToolState) -> str:
        if tools.tool == Tool.ERASE:
            return self.manager.background_color
        return tools.color

    def begin_stroke(self, point: Point) -> bool:
        if self.state != StrokeState.IDLE:
            return False
        self.last_point = point
        self.state = StrokeState.ACTIVE
        return True

    def extend_stroke(self, point: Point) -> bool:
        if self.state != StrokeState.ACTIVE or self.last_point is None:
            return False
        tools = self.get_tools()
        self.manager.require_surface().draw_segment(self.last_point, point, self.stroke_color(tools), tools.width)
        self.last_point = point
        return True

    def end_stroke(self) -> bool:
        if self.state != StrokeState.ACTIVE:
            return False
        self.state = StrokeState.IDLE
        self.last_point = None
        self.history.push(self.manager.snapshot())
        return True

    def clear(self) -> None:
        self.manager.require_surface().clear()
        self.history.push(self.manager.snapshot())
