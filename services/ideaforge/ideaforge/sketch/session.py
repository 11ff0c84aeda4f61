import logging
from typing import Iterable, Optional

from .. import state as app_state
from ..config import Settings
from ..generation.pipeline import GenerationOutcome, GenerationPipeline
from .drawing import DrawingEngine
from .history import HistoryStack, restore
from .models import InputEvent, Point, SurfaceInfo
from .surface import DecodeError, SurfaceManager

logger = logging.getLogger("ideaforge.session")

BEGIN_EVENTS = {"pointerdown", "mousedown", "touchstart"}
MOVE_EVENTS = {"pointermove", "mousemove", "touchmove"}
END_EVENTS = {"pointerup", "pointerleave", "pointercancel", "mouseup", "mouseleave", "touchend", "touchcancel"}


class SketchSession:
    """
    One drawing surface with its history, tool state and generation pipeline.
    Pointer, mouse and touch input all arrive through `handle_event`.
    """

    def __init__(self, settings: Optional[Settings] = None, pipeline: Optional[GenerationPipeline] = None):
        settings = settings or Settings()
        self.settings = settings
        self.state = app_state.AppState()
        self.manager = SurfaceManager(
            background_color=settings.background_color,
            device_scale=settings.device_scale,
            fixed_height=settings.canvas_height,
        )
        self.history = HistoryStack(capacity=settings.max_history)
        self.engine = DrawingEngine(self.manager, self.history, lambda: self.state.tools)
        self.pipeline = pipeline or GenerationPipeline()

    # --- Surface ---

    def initialize(self, container_width: float, device_scale: Optional[float] = None) -> SurfaceInfo:
        first = not self.manager.initialized
        surface = self.manager.initialize(container_width, device_scale=device_scale)
        if first:
            # blank floor that undo can always return to
            self.history.push(self.manager.snapshot())
        return surface.info()

    def resize(self, container_width: float, device_scale: Optional[float] = None) -> SurfaceInfo:
        if not self.manager.initialized:
            return self.initialize(container_width, device_scale)
        return self.manager.resize(container_width, device_scale=device_scale).info()

    # --- Input ---

    def handle_event(self, event: InputEvent, point: Optional[Point] = None) -> bool:
        """Routes one normalized input event to the engine. Returns True if it changed anything."""
        kind = event.type.lower()
        if kind in END_EVENTS:
            return self.engine.end_stroke()
        if kind in BEGIN_EVENTS:
            return self.engine.begin_stroke(point or self._point(event))
        if kind in MOVE_EVENTS:
            if not self.engine.is_drawing:
                return False
            return self.engine.extend_stroke(point or self._point(event))
        logger.debug("Ignoring input event %s", event.type)
        return False

    def handle_events(self, events: Iterable[InputEvent]) -> int:
        """
        Applies a batch of events. Coordinates are mapped for the whole batch
        first, so a malformed event rejects the batch before anything is painted.
        """
        events = list(events)
        points = [
            self._point(event) if event.type.lower() in BEGIN_EVENTS | MOVE_EVENTS else None
            for event in events
        ]
        return sum(1 for event, point in zip(events, points) if self.handle_event(event, point))

    def _point(self, event: InputEvent) -> Point:
        return self.manager.map_pointer_event(event)

    def clear(self) -> None:
        self.engine.clear()

    async def undo(self) -> bool:
        entry = self.history.undo()
        if entry is None:
            return False
        try:
            await restore(entry, self.manager)
        except DecodeError:
            self.history.revert_undo(entry)
            logger.exception("Undo failed; history left at the previous entry")
            raise
        return True

    # --- Tools & prompt ---

    def update_tools(self, tool=None, color: Optional[str] = None, width: Optional[int] = None) -> None:
        new_state = self.state
        if tool is not None:
            new_state = app_state.select_tool(new_state, tool)
        if color is not None:
            new_state = app_state.set_color(new_state, color)
        if width is not None:
            new_state = app_state.set_width(new_state, width)
        self.state = new_state

    def set_prompt(self, prompt: str) -> None:
        self.state = app_state.set_prompt(self.state, prompt)

    # --- Generation ---

    async def generate(self, prompt: Optional[str] = None) -> GenerationOutcome:
        if prompt is not None:
            self.set_prompt(prompt)
        self.state, request_id = app_state.begin_generation(self.state)
        try:
            outcome = await self.pipeline.submit(self.state.prompt, self.manager.snapshot())
        except Exception:
            self.state = self.state.model_copy(update={"is_generating": False})
            raise
        self.state = app_state.finish_generation(self.state, request_id, outcome)
        return outcome

    def export_sketch(self) -> bytes:
        return self.manager.export_png()
