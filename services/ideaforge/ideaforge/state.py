"""
Application state for one IdeaForge session: tool settings, the prompt,
the in-flight flag, the current error and the last generated image.
Transitions are plain functions returning a new AppState, so they can be
tested without a surface or an event loop.
"""
from typing import Optional, Tuple
from pydantic import BaseModel, Field
from PIL import ImageColor

from .generation.errors import RequestInFlightError
from .generation.pipeline import GenerationOutcome
from .sketch.models import Tool, ToolState


class AppState(BaseModel):
    tools: ToolState = Field(default_factory=ToolState)
    prompt: str = ""
    is_generating: bool = False
    request_id: int = 0  # id of the most recently started generation
    error: Optional[str] = None
    generated_image: Optional[bytes] = None


def _with_tools(state: AppState, **changes) -> AppState:
    # Rebuild rather than model_copy so the width bounds are validated.
    tools = ToolState(**{**state.tools.model_dump(), **changes})
    return state.model_copy(update={"tools": tools})


def select_tool(state: AppState, tool: Tool) -> AppState:
    return _with_tools(state, tool=Tool(tool))


def set_color(state: AppState, color: str) -> AppState:
    ImageColor.getrgb(color)  # raises ValueError for unknown colors
    return _with_tools(state, color=color)


def set_width(state: AppState, width: int) -> AppState:
    return _with_tools(state, width=width)


def set_prompt(state: AppState, prompt: str) -> AppState:
    return state.model_copy(update={"prompt": prompt})


def can_generate(state: AppState) -> bool:
    return not state.is_generating and bool(state.prompt.strip())


def begin_generation(state: AppState) -> Tuple[AppState, int]:
    """Marks a request in flight and clears the previous error and result."""
    if state.is_generating:
        raise RequestInFlightError("A mockup is already being generated.")
    request_id = state.request_id + 1
    return state.model_copy(update={
        "is_generating": True,
        "request_id": request_id,
        "error": None,
        "generated_image": None,
    }), request_id


def finish_generation(state: AppState, request_id: int, outcome: GenerationOutcome) -> AppState:
    """Applies an outcome, unless it belongs to a request that is no longer current."""
    if not state.is_generating or request_id != state.request_id:
        return state
    if outcome.success:
        return state.model_copy(update={"is_generating": False, "generated_image": outcome.image, "error": None})
    return state.model_copy(update={"is_generating": False, "error": outcome.message})
