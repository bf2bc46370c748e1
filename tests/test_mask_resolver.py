"""
Tests for resolving display-space stroke rasters into natural-size masks.

Tests cover:
- Output dimensions always match the natural image
- Output is strictly binary (opaque white or opaque black)
- Resolution is deterministic
- Coordinate mapping of a painted circle
- Unloaded geometry and shape mismatches
"""

import unittest

import numpy as np

from maskpaint.canvas.mask import resolve_mask
from maskpaint.canvas.strokes import make_stroke, render_strokes
from maskpaint.canvas.types import UNLOADED_GEOMETRY, ImageGeometry, StrokeMode
from maskpaint.errors import GeometryError


def _raster(geometry, *strokes):
    return render_strokes(strokes, geometry.display_width, geometry.display_height)


class TestResolveMask(unittest.TestCase):
    """Test the mask resolver."""

    def setUp(self):
        """Use a 2000x1500 image shown at 800x600 (scale 2.5)."""
        self.geometry = ImageGeometry(2000, 1500, 800, 600)

    def test_circle_maps_to_natural_coordinates(self):
        """A 40px dab at (400, 300) becomes a ~50px-radius disc at (1000, 750)."""
        raster = _raster(self.geometry, make_stroke([(400, 300)], 40))
        mask = resolve_mask(raster, self.geometry)
        red = mask.pixels[:, :, 0]

        self.assertEqual((mask.width, mask.height), (2000, 1500))
        self.assertEqual(red[750, 1000], 255)
        for dx, dy in ((45, 0), (-45, 0), (0, 45), (0, -45), (30, 30)):
            self.assertEqual(red[750 + dy, 1000 + dx], 255, (dx, dy))
        for dx, dy in ((56, 0), (-56, 0), (0, 56), (0, -56), (45, 45)):
            self.assertEqual(red[750 + dy, 1000 + dx], 0, (dx, dy))
        self.assertEqual(red[0, 0], 0)

    def test_output_is_binary_and_opaque(self):
        """Every pixel is either (255,255,255,255) or (0,0,0,255)."""
        raster = _raster(
            self.geometry,
            make_stroke([(100, 100), (300, 250)], 33),
            make_stroke([(200, 180)], 20, StrokeMode.ERASE),
        )
        mask = resolve_mask(raster, self.geometry)
        pixels = mask.pixels.reshape(-1, 4)

        self.assertTrue(np.all(pixels[:, 3] == 255))
        white = np.all(pixels == 255, axis=1)
        black = np.all(pixels[:, :3] == 0, axis=1)
        self.assertTrue(np.all(white | black))
        self.assertGreater(int(white.sum()), 0)

    def test_any_alpha_counts_as_painted(self):
        """Faint antialiased pixels are included in the mask."""
        geometry = ImageGeometry(4, 4, 4, 4)
        raster = np.zeros((4, 4, 4), dtype=np.uint8)
        raster[1, 2, 3] = 1
        mask = resolve_mask(raster, geometry)

        self.assertEqual(tuple(mask.pixels[1, 2]), (255, 255, 255, 255))
        self.assertEqual(mask.painted_pixels, 1)

    def test_erased_path_resolves_to_empty_mask(self):
        """Paint then erase of the same path leaves no outline in the mask."""
        geometry = ImageGeometry(200, 200, 100, 100)
        raster = _raster(
            geometry,
            make_stroke([(20, 50), (80, 50)], 20),
            make_stroke([(20, 50), (80, 50)], 20, StrokeMode.ERASE),
        )
        mask = resolve_mask(raster, geometry)

        self.assertEqual(mask.painted_pixels, 0)
        self.assertFalse(mask.has_content())

    def test_resolution_is_deterministic(self):
        """Resolving the same raster twice yields byte-identical masks."""
        raster = _raster(self.geometry, make_stroke([(10, 10), (700, 500)], 25))

        first = resolve_mask(raster, self.geometry)
        second = resolve_mask(raster, self.geometry)
        self.assertEqual(first.pixels.tobytes(), second.pixels.tobytes())

    def test_empty_raster_gives_all_black(self):
        """No strokes resolve to a black mask with no content."""
        mask = resolve_mask(_raster(self.geometry), self.geometry)

        self.assertEqual(mask.painted_pixels, 0)
        self.assertFalse(mask.has_content())

    def test_non_uniform_scale(self):
        """Different horizontal and vertical scales still match natural size."""
        geometry = ImageGeometry(1001, 333, 700, 233)
        raster = _raster(geometry, make_stroke([(350, 116)], 30))
        mask = resolve_mask(raster, geometry)

        self.assertEqual(mask.pixels.shape, (333, 1001, 4))
        self.assertEqual(mask.pixels[166, 500, 0], 255)

    def test_unloaded_geometry_returns_none(self):
        """Resolution is declined while no image is loaded."""
        raster = np.zeros((10, 10, 4), dtype=np.uint8)

        self.assertIsNone(resolve_mask(raster, UNLOADED_GEOMETRY))

    def test_shape_mismatch_raises(self):
        """A raster that does not match the display size is rejected."""
        raster = np.zeros((100, 100, 4), dtype=np.uint8)

        with self.assertRaises(GeometryError):
            resolve_mask(raster, self.geometry)

    def test_result_is_read_only(self):
        """Published mask pixels cannot be mutated in place."""
        mask = resolve_mask(_raster(self.geometry), self.geometry)

        with self.assertRaises(ValueError):
            mask.pixels[0, 0, 0] = 255

    def test_png_export(self):
        """Masks encode as RGBA PNG at natural size."""
        mask = resolve_mask(_raster(self.geometry, make_stroke([(400, 300)], 40)), self.geometry)
        image = mask.to_image()

        self.assertEqual(image.mode, "RGBA")
        self.assertEqual(image.size, (2000, 1500))
        self.assertTrue(mask.to_png().startswith(b"\x89PNG"))


if __name__ == "__main__":
    unittest.main()
