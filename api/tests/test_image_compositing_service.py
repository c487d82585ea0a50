"""
Tests for the fallback compositor.

Covers the grid layout math, thumbnail sizing and the file the compositor
writes when the image model is unavailable.
"""
from unittest.mock import patch

import pytest
from PIL import Image

from services.image_compositing_service import (
    CompositeResult,
    FallbackCompositor,
    fit_inside,
    grid_position,
    thumbnail_box,
)
from services.upload_service import write_unique
from conftest import make_image_bytes


@pytest.fixture
def compositor(upload_dir):
    return FallbackCompositor(upload_dir)


@pytest.fixture
def red_overlay(tmp_path):
    path = tmp_path / "red.png"
    path.write_bytes(make_image_bytes((200, 100), (255, 0, 0, 255), fmt="PNG", mode="RGBA"))
    return path


@pytest.fixture
def blue_overlay(tmp_path):
    path = tmp_path / "blue.png"
    path.write_bytes(make_image_bytes((200, 100), (0, 0, 255, 255), fmt="PNG", mode="RGBA"))
    return path


def is_close(pixel, expected, tolerance=40):
    return all(abs(a - b) <= tolerance for a, b in zip(pixel, expected))


class TestGridLayout:
    """Tests for overlay positions and sizes."""

    @pytest.mark.parametrize(
        "index,expected",
        [
            (0, (50, 100)),
            (1, (690, 100)),
            (2, (1330, 100)),
            (3, (50, 460)),
            (4, (690, 460)),
            (8, (1330, 820)),
        ],
    )
    def test_grid_position_full_hd(self, index, expected):
        assert grid_position(index, 1920, 1080) == expected

    def test_grid_position_floors_cell_size(self):
        # 1000 / 3 -> 333, 500 / 3 -> 166
        assert grid_position(1, 1000, 500) == (383, 100)
        assert grid_position(4, 1000, 500) == (383, 266)

    def test_thumbnail_box_is_fifteen_percent(self):
        assert thumbnail_box(1920, 1080) == (288, 162)
        assert thumbnail_box(1000, 500) == (150, 75)

    def test_fit_inside_keeps_aspect_ratio(self):
        image = Image.new("RGBA", (200, 100))
        resized = fit_inside(image, 288, 162)
        assert resized.size == (288, 144)

    def test_fit_inside_enlarges_small_images(self):
        image = Image.new("RGBA", (10, 10))
        resized = fit_inside(image, 288, 162)
        assert resized.size == (162, 162)


class TestFallbackCompositor:
    """Tests for the composite written to disk."""

    def test_output_matches_room_dimensions(self, compositor, room_image_path, red_overlay, blue_overlay):
        result = compositor.composite(room_image_path, [red_overlay, blue_overlay])

        assert isinstance(result, CompositeResult)
        assert result.dimensions == (1920, 1080)
        with Image.open(result.path) as output:
            assert output.format == "JPEG"
            assert output.mode == "RGB"
            assert output.size == (1920, 1080)

    def test_output_name_and_location(self, compositor, upload_dir, room_image_path, red_overlay):
        result = compositor.composite(room_image_path, [red_overlay])

        assert result.path.parent == upload_dir
        assert result.path.name.startswith("fallback-composite_")
        assert result.path.suffix == ".jpg"

    def test_overlays_land_in_grid_cells(self, compositor, room_image_path, red_overlay, blue_overlay):
        result = compositor.composite(room_image_path, [red_overlay, blue_overlay])

        assert [(p.x, p.y) for p in result.placements] == [(50, 100), (690, 100)]
        assert [(p.width, p.height) for p in result.placements] == [(288, 144), (288, 144)]

        with Image.open(result.path) as output:
            assert is_close(output.getpixel((60, 110)), (255, 0, 0))
            assert is_close(output.getpixel((700, 110)), (0, 0, 255))
            # Untouched room background
            assert is_close(output.getpixel((1500, 900)), (200, 200, 200))

    def test_unreadable_furniture_keeps_its_slot(self, compositor, tmp_path, room_image_path, blue_overlay):
        missing = tmp_path / "missing.png"
        result = compositor.composite(room_image_path, [missing, None, blue_overlay])

        assert result.layers_composited == 1
        assert (result.placements[0].index, result.placements[0].x) == (2, 1330)

    def test_corrupt_furniture_is_skipped(self, compositor, tmp_path, room_image_path, red_overlay):
        corrupt = tmp_path / "corrupt.png"
        corrupt.write_bytes(b"not an image at all")

        result = compositor.composite(room_image_path, [corrupt, red_overlay])

        assert [p.index for p in result.placements] == [1]

    def test_all_furniture_unreadable_reencodes_room(self, compositor, tmp_path, room_image_path):
        result = compositor.composite(room_image_path, [tmp_path / "a.png", None])

        assert result.placements == []
        with Image.open(result.path) as output:
            assert output.format == "JPEG"
            assert output.size == (1920, 1080)
            assert is_close(output.getpixel((60, 110)), (200, 200, 200))

    def test_transparent_pixels_show_the_room(self, compositor, tmp_path, room_image_path):
        overlay = tmp_path / "transparent.png"
        overlay.write_bytes(make_image_bytes((200, 100), (255, 0, 0, 0), fmt="PNG", mode="RGBA"))

        result = compositor.composite(room_image_path, [overlay])

        with Image.open(result.path) as output:
            assert is_close(output.getpixel((60, 110)), (200, 200, 200))

    def test_same_inputs_give_same_picture(self, compositor, room_image_path, red_overlay, blue_overlay):
        first = compositor.composite(room_image_path, [red_overlay, blue_overlay])
        second = compositor.composite(room_image_path, [red_overlay, blue_overlay])

        assert first.path != second.path
        assert first.path.read_bytes() == second.path.read_bytes()

    def test_missing_room_image_raises(self, compositor, tmp_path, red_overlay):
        with pytest.raises(OSError):
            compositor.composite(tmp_path / "no-room.jpg", [red_overlay])


class TestWriteUnique:
    """Output files never overwrite earlier ones."""

    def test_bumps_timestamp_on_collision(self, tmp_path):
        with patch("services.upload_service.time.time", return_value=1700000000.0):
            first = write_unique(tmp_path, "fallback-composite", b"one")
            second = write_unique(tmp_path, "fallback-composite", b"two")

        assert first.name == "fallback-composite_1700000000000.jpg"
        assert second.name == "fallback-composite_1700000000001.jpg"
        assert first.read_bytes() == b"one"
        assert second.read_bytes() == b"two"
