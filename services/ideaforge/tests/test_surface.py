import numpy as np
import pytest

from ideaforge.sketch.models import InputEvent, Point
from ideaforge.sketch.surface import DecodeError, PillowRasterSurface, SurfaceManager

from conftest import blank_pixels

RED = (255, 0, 0)


def test_initialize_scales_buffer_but_not_logical_size():
    manager = SurfaceManager(device_scale=2.0, fixed_height=50)
    surface = manager.initialize(100)
    info = surface.info()
    assert (info.logical_width, info.logical_height) == (100, 50)
    assert (info.buffer_width, info.buffer_height) == (200, 100)
    assert np.array_equal(manager.export_pixels(), blank_pixels(100, 50, 2.0))


def test_initialize_rejects_empty_container():
    with pytest.raises(ValueError):
        SurfaceManager().initialize(0)


def test_segment_width_and_color_follow_device_scale():
    surface = PillowRasterSurface(40, 40, device_scale=2.0)
    surface.draw_segment(Point(x=5, y=20), Point(x=35, y=20), "#ff0000", 4)
    pixels = surface.export_pixels()
    # 4 logical px wide -> 8 buffer px, centred on buffer row 40
    assert tuple(pixels[40, 40]) == RED
    assert tuple(pixels[37, 40]) == RED
    assert tuple(pixels[30, 40]) == (255, 255, 255)


def test_resize_keeps_content_at_origin():
    manager = SurfaceManager(fixed_height=40)
    manager.initialize(60)
    manager.surface.draw_segment(Point(x=5, y=5), Point(x=50, y=30), "#ff0000", 3)
    before = manager.export_pixels()

    manager.resize(100)
    after = manager.export_pixels()
    assert after.shape == (40, 100, 3)
    assert np.array_equal(after[:, :60], before)
    assert np.all(after[:, 60:] == 255)


def test_resize_clips_without_rescaling():
    manager = SurfaceManager(fixed_height=40)
    manager.initialize(80)
    manager.surface.draw_segment(Point(x=10, y=10), Point(x=70, y=10), "#000000", 2)
    before = manager.export_pixels()

    manager.resize(30)
    assert np.array_equal(manager.export_pixels(), before[:, :30])


def test_export_import_round_trip_is_lossless():
    surface = PillowRasterSurface(30, 20)
    surface.draw_segment(Point(x=0, y=0), Point(x=29, y=19), "#123456", 5)
    pixels = surface.export_pixels()

    other = PillowRasterSurface(30, 20)
    other.import_pixels(pixels)
    assert np.array_equal(other.export_pixels(), pixels)


def test_map_mouse_event_subtracts_offset():
    manager = SurfaceManager()
    manager.set_offset(10, 20)
    point = manager.map_pointer_event(InputEvent(type="pointerdown", clientX=30, clientY=50))
    assert (point.x, point.y) == (20, 30)


def test_map_touch_event_uses_first_touch():
    manager = SurfaceManager()
    manager.set_offset(5, 5)
    event = InputEvent.model_validate({
        "type": "touchmove",
        "touches": [{"clientX": 15, "clientY": 25}, {"clientX": 100, "clientY": 100}],
    })
    point = manager.map_pointer_event(event)
    assert (point.x, point.y) == (10, 20)


def test_map_touch_end_falls_back_to_changed_touches():
    manager = SurfaceManager()
    event = InputEvent.model_validate({"type": "touchend", "changedTouches": [{"clientX": 7, "clientY": 9}]})
    point = manager.map_pointer_event(event)
    assert (point.x, point.y) == (7, 9)


def test_map_event_without_coordinates_fails():
    with pytest.raises(ValueError):
        SurfaceManager().map_pointer_event(InputEvent(type="pointermove"))


async def test_decode_rejects_garbage():
    surface = PillowRasterSurface(10, 10)
    with pytest.raises(DecodeError):
        await surface.decode_image(b"not a png")


async def test_decode_returns_encoded_pixels():
    surface = PillowRasterSurface(16, 12)
    surface.draw_segment(Point(x=1, y=1), Point(x=14, y=10), "#00ff00", 2)
    decoded = await surface.decode_image(surface.encode_png())
    assert np.array_equal(decoded, surface.export_pixels())
