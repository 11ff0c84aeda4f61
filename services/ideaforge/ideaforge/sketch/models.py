from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class Point(BaseModel):
    x: float
    y: float


class Tool(str, Enum):
    DRAW = "draw"
    ERASE = "erase"


class ToolState(BaseModel):
    tool: Tool = Tool.DRAW
    width: int = Field(3, ge=1, le=20)
    color: str = "#000000"


class TouchPoint(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    client_x: float = Field(..., alias="clientX")
    client_y: float = Field(..., alias="clientY")


class InputEvent(BaseModel):
    """
    A browser pointer, mouse or touch event, reduced to the fields the
    surface needs. Field aliases match the DOM names.
    """
    model_config = ConfigDict(populate_by_name=True)

    type: str
    client_x: Optional[float] = Field(None, alias="clientX")
    client_y: Optional[float] = Field(None, alias="clientY")
    touches: List[TouchPoint] = []
    changed_touches: List[TouchPoint] = Field([], alias="changedTouches")


class SurfaceInfo(BaseModel):
    logical_width: int
    logical_height: int
    device_scale: float
    buffer_width: int
    buffer_height: int
