from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from typing import List, Optional

from .config import get_settings
from .generation.errors import RequestInFlightError
from .sketch.models import InputEvent, SurfaceInfo, Tool, ToolState
from .sketch.session import SketchSession
from .sketch.surface import DecodeError
from .utils import png_data_uri

router = APIRouter(prefix="/api/v1/sketch", tags=["sketch"])

_session: Optional[SketchSession] = None


def get_session() -> SketchSession:
    global _session
    if _session is None:
        _session = SketchSession(get_settings())
    return _session


class InitRequest(BaseModel):
    container_width: float = Field(..., gt=0)
    device_scale: Optional[float] = Field(None, gt=0)
    offset_left: float = 0.0
    offset_top: float = 0.0


class ResizeRequest(BaseModel):
    container_width: float = Field(..., gt=0)
    device_scale: Optional[float] = Field(None, gt=0)


class EventsRequest(BaseModel):
    events: List[InputEvent]


class ToolRequest(BaseModel):
    tool: Optional[Tool] = None
    color: Optional[str] = None
    width: Optional[int] = Field(None, ge=1, le=20)


class GenerateRequest(BaseModel):
    prompt: str


class SketchStatus(BaseModel):
    drawing: bool
    history_length: int
    history_index: int
    can_undo: bool


class GenerateResponse(BaseModel):
    success: bool
    image: Optional[str] = None  # data URI
    message: Optional[str] = None


def _status(session: SketchSession) -> SketchStatus:
    return SketchStatus(
        drawing=session.engine.is_drawing,
        history_length=len(session.history),
        history_index=session.history.index,
        can_undo=session.history.can_undo,
    )


def _require_surface(session: SketchSession) -> None:
    if not session.manager.initialized:
        raise HTTPException(status_code=409, detail="Sketch surface not initialized")


def _png_attachment(data: bytes, filename: str) -> Response:
    return Response(
        content=data,
        media_type="image/png",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/init", response_model=SurfaceInfo)
async def init_surface(request: InitRequest, session: SketchSession = Depends(get_session)):
    """
    Allocates (or re-allocates) the drawing surface for the container width.
    The first call also records the blank surface as the undo floor.
    """
    session.manager.set_offset(request.offset_left, request.offset_top)
    return session.initialize(request.container_width, request.device_scale)


@router.post("/resize", response_model=SurfaceInfo)
async def resize_surface(request: ResizeRequest, session: SketchSession = Depends(get_session)):
    return session.resize(request.container_width, request.device_scale)


@router.post("/events", response_model=SketchStatus)
async def apply_events(request: EventsRequest, session: SketchSession = Depends(get_session)):
    _require_surface(session)
    try:
        session.handle_events(request.events)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _status(session)


@router.post("/tool", response_model=ToolState)
async def update_tool(request: ToolRequest, session: SketchSession = Depends(get_session)):
    try:
        session.update_tools(tool=request.tool, color=request.color, width=request.width)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return session.state.tools


@router.post("/clear", response_model=SketchStatus)
async def clear_surface(session: SketchSession = Depends(get_session)):
    _require_surface(session)
    session.clear()
    return _status(session)


@router.post("/undo", response_model=SketchStatus)
async def undo(session: SketchSession = Depends(get_session)):
    _require_surface(session)
    try:
        await session.undo()
    except DecodeError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return _status(session)


@router.get("/export")
async def export_sketch(session: SketchSession = Depends(get_session)):
    _require_surface(session)
    return _png_attachment(session.export_sketch(), "sketch.png")


@router.post("/generate", response_model=GenerateResponse)
async def generate_mockup(request: GenerateRequest, session: SketchSession = Depends(get_session)):
    """
    Sends the current sketch and the description to the image model.
    Failures come back as success=false with a message meant for the user.
    """
    _require_surface(session)
    try:
        outcome = await session.generate(request.prompt)
    except RequestInFlightError as e:
        raise HTTPException(status_code=409, detail=e.message)
    if outcome.success:
        return GenerateResponse(success=True, image=png_data_uri(outcome.image))
    return GenerateResponse(success=False, message=outcome.message)


@router.get("/result")
async def download_mockup(session: SketchSession = Depends(get_session)):
    if session.state.generated_image is None:
        raise HTTPException(status_code=404, detail="No mockup generated yet")
    return _png_attachment(session.state.generated_image, "mockup.png")
