"""
Tests for the stroke capture surface.

Tests cover:
- Stroke validation
- Rendering of paint and erase strokes
- Incremental raster matches a full re-render of the stroke log
- Completion and clear callbacks
"""

import unittest

import numpy as np

from maskpaint.canvas.strokes import StrokeSurface, make_stroke, render_strokes
from maskpaint.canvas.types import StrokeMode
from maskpaint.errors import GeometryError, ValidationError


class TestMakeStroke(unittest.TestCase):
    """Test stroke validation."""

    def test_valid_stroke(self):
        """Points are normalised to float tuples and mode is parsed."""
        stroke = make_stroke([[1, 2], (3.5, 4)], 20, "erase")

        self.assertEqual(stroke.points, ((1.0, 2.0), (3.5, 4.0)))
        self.assertEqual(stroke.brush_width, 20)
        self.assertIs(stroke.mode, StrokeMode.ERASE)

    def test_empty_points_rejected(self):
        """A stroke must have at least one point."""
        with self.assertRaises(ValidationError):
            make_stroke([], 20)

    def test_brush_width_out_of_range(self):
        """Brush widths outside the configured range are rejected."""
        with self.assertRaises(ValidationError):
            make_stroke([(0, 0)], 2)
        with self.assertRaises(ValidationError):
            make_stroke([(0, 0)], 500)

    def test_malformed_point_rejected(self):
        """Points must be finite (x, y) pairs."""
        with self.assertRaises(ValidationError):
            make_stroke([(1, 2, 3)], 20)
        with self.assertRaises(ValidationError):
            make_stroke([(float("nan"), 2)], 20)

    def test_unknown_mode_rejected(self):
        """Only paint and erase are valid modes."""
        with self.assertRaises(ValidationError):
            make_stroke([(0, 0)], 20, "smudge")


class TestRenderStrokes(unittest.TestCase):
    """Test the pure stroke renderer."""

    def test_empty_log_renders_transparent(self):
        """No strokes means a fully transparent raster."""
        raster = render_strokes([], 40, 30)

        self.assertEqual(raster.shape, (30, 40, 4))
        self.assertEqual(int(raster[:, :, 3].max()), 0)

    def test_paint_dab_covers_center(self):
        """A single-point stroke paints a round dab in the stroke colour."""
        stroke = make_stroke([(50, 50)], 20)
        raster = render_strokes([stroke], 100, 100, color=(34, 197, 94), opacity=0.5)

        self.assertGreater(raster[50, 50, 3], 0)
        self.assertEqual(tuple(raster[50, 50, :3]), (34, 197, 94))
        self.assertEqual(raster[50, 75, 3], 0)
        self.assertEqual(raster[5, 5, 3], 0)

    def test_opacity_is_partial(self):
        """Paint is semi-transparent at the configured opacity."""
        stroke = make_stroke([(50, 50)], 20)
        raster = render_strokes([stroke], 100, 100, opacity=0.5)

        self.assertAlmostEqual(int(raster[50, 50, 3]), 128, delta=1)

    def test_erase_removes_paint(self):
        """An erase stroke over painted pixels clears their alpha."""
        paint = make_stroke([(20, 50), (80, 50)], 20)
        erase = make_stroke([(50, 50)], 30, StrokeMode.ERASE)
        raster = render_strokes([paint, erase], 100, 100)

        self.assertEqual(raster[50, 50, 3], 0)
        self.assertGreater(raster[50, 25, 3], 0)

    def test_erase_same_path_leaves_nothing(self):
        """Erasing along a painted path with the same brush clears it completely."""
        paint = make_stroke([(20, 50), (80, 50)], 20)
        erase = make_stroke([(20, 50), (80, 50)], 20, StrokeMode.ERASE)
        raster = render_strokes([paint, erase], 100, 100)

        self.assertEqual(int(raster[:, :, 3].max()), 0)

    def test_strokes_outside_surface_are_clipped(self):
        """Strokes entirely off the surface leave it untouched."""
        stroke = make_stroke([(500, 500)], 20)
        raster = render_strokes([stroke], 100, 100)

        self.assertEqual(int(raster[:, :, 3].max()), 0)


class TestStrokeSurface(unittest.TestCase):
    """Test the stateful drawing surface."""

    def setUp(self):
        """Create a surface that records its callbacks."""
        self.completed = []
        self.cleared = []
        self.surface = StrokeSurface(
            120,
            80,
            on_stroke_completed=self.completed.append,
            on_cleared=lambda: self.cleared.append(True),
        )

    def test_invalid_size_raises(self):
        """A surface needs a positive size."""
        with self.assertRaises(GeometryError):
            StrokeSurface(0, 10)

    def test_add_stroke_fires_completion_once(self):
        """Each completed stroke fires exactly one callback with the raster."""
        self.surface.add_stroke([(10, 10), (60, 40)], 20)

        self.assertEqual(len(self.completed), 1)
        self.assertEqual(self.completed[0].shape, (80, 120, 4))
        self.assertEqual(len(self.surface.strokes), 1)
        self.assertFalse(self.surface.is_empty)

    def test_invalid_stroke_does_not_fire(self):
        """Rejected strokes leave the log and the callbacks untouched."""
        with self.assertRaises(ValidationError):
            self.surface.add_stroke([], 20)

        self.assertEqual(self.completed, [])
        self.assertTrue(self.surface.is_empty)

    def test_incremental_raster_matches_full_render(self):
        """Compositing stroke by stroke equals rendering the whole log."""
        self.surface.add_stroke([(10, 10), (60, 40), (110, 20)], 30)
        self.surface.add_stroke([(40, 60)], 25, "erase")
        self.surface.add_stroke([(30, 30), (35, 70)], 12)

        expected = render_strokes(self.surface.strokes, 120, 80)
        np.testing.assert_array_equal(self.surface.export_raster(), expected)

    def test_clear_resets_raster_and_fires(self):
        """Clearing empties the log, the raster and notifies once."""
        self.surface.add_stroke([(10, 10)], 20)
        self.surface.clear()

        self.assertTrue(self.surface.is_empty)
        self.assertEqual(int(self.surface.export_raster()[:, :, 3].max()), 0)
        self.assertEqual(self.cleared, [True])


if __name__ == "__main__":
    unittest.main()
