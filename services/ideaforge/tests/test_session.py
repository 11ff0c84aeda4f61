import numpy as np
import pytest

from ideaforge.sketch.history import HistoryEntry
from ideaforge.sketch.models import InputEvent, Tool
from ideaforge.sketch.surface import DecodeError


def touch(kind, x=None, y=None, changed=False):
    data = {"type": kind}
    if x is not None:
        data["changedTouches" if changed else "touches"] = [{"clientX": x, "clientY": y}]
    return InputEvent.model_validate(data)


def test_first_initialize_records_blank_floor(session):
    assert len(session.history) == 1
    assert session.history.index == 0


def test_resize_does_not_push_history(session):
    info = session.resize(200)
    assert info.logical_width == 200
    assert info.logical_height == session.settings.canvas_height
    assert len(session.history) == 1


def test_touch_move_without_start_is_ignored(session):
    before = session.manager.export_pixels()
    assert session.handle_event(touch("touchmove", 20, 20)) is False
    assert np.array_equal(session.manager.export_pixels(), before)


def test_touch_stroke_commits_on_touchend(session):
    changed = session.handle_events([
        touch("touchstart", 10, 10),
        touch("touchmove", 40, 30),
        touch("touchend", 40, 30, changed=True),
    ])
    assert changed == 3
    assert len(session.history) == 2


def test_touchcancel_ends_stroke(session):
    session.handle_event(touch("touchstart", 10, 10))
    session.handle_event(touch("touchcancel"))
    assert not session.engine.is_drawing
    assert len(session.history) == 2


def test_unknown_events_are_ignored(session):
    assert session.handle_event(InputEvent(type="wheel", clientX=1, clientY=1)) is False


def test_update_tools_is_read_by_engine(session):
    session.update_tools(tool=Tool.DRAW, color="#ff0000", width=6)
    session.handle_events([
        InputEvent(type="pointerdown", clientX=10, clientY=30),
        InputEvent(type="pointermove", clientX=90, clientY=30),
        InputEvent(type="pointerup", clientX=90, clientY=30),
    ])
    assert tuple(session.manager.export_pixels()[30, 50]) == (255, 0, 0)
    assert session.state.tools.width == 6


def test_batch_with_missing_coordinates_is_rejected_whole(session):
    before = session.manager.export_pixels()
    with pytest.raises(ValueError):
        session.handle_events([
            InputEvent(type="pointerdown", clientX=10, clientY=10),
            InputEvent(type="pointermove", clientX=60, clientY=30),
            touch("touchmove"),
        ])
    assert not session.engine.is_drawing
    assert len(session.history) == 1
    assert np.array_equal(session.manager.export_pixels(), before)


async def test_undo_keeps_index_when_snapshot_is_corrupt(session):
    session.handle_events([
        InputEvent(type="pointerdown", clientX=10, clientY=10),
        InputEvent(type="pointerup", clientX=10, clientY=10),
    ])
    drawn = session.manager.export_pixels()
    session.history.entries[0] = HistoryEntry(data=b"not a png")

    with pytest.raises(DecodeError):
        await session.undo()
    assert session.history.index == 1
    assert session.history.can_undo
    assert np.array_equal(session.manager.export_pixels(), drawn)
