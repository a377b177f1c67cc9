"""
Unit Tests for the Instanced Satellite Swarm

Run with:
    python -m pytest tests/test_swarm.py -v
"""

import unittest
from datetime import timedelta

import numpy as np

from orbital_tracker.models import SatelliteRecord
from orbital_tracker.propagator import PositionBatch, SatellitePropagator
from orbital_tracker.swarm import (
    BASE_COLOR,
    BASE_SIZE,
    HOVER_COLOR,
    SELECTED_COLOR,
    SELECTED_SIZE,
    SatelliteSwarm,
    hex_to_rgb,
)

ISS_LINE1 = "1 25544U 98067A   23259.57580000  .00012022  00000-0  21844-3 0  9995"
ISS_LINE2 = "2 25544  51.6416 220.9944 0004263 122.0101 312.2755 15.49541986415598"

GPS_LINE1 = "1 28474U 04045A   23259.50000000 -.00000036  00000-0  00000+0 0  9993"
GPS_LINE2 = "2 28474  55.1234 100.0000 0100000 250.0000 110.0000  2.00561234 13577"

SCALE = 6371.0


def make_records():
    return [
        SatelliteRecord(id=0, name="ISS (ZARYA)", line1=ISS_LINE1, line2=ISS_LINE2,
                        category="TEST", norad_id=25544),
        SatelliteRecord(id=1, name="GPS BIIR-13 (PRN 02)", line1=GPS_LINE1, line2=GPS_LINE2,
                        category="TEST", norad_id=28474),
    ]


class StubPropagator:
    """Returns fixed positions: (2, 0, 0) and (0, 3, 0) in scene units"""

    def __init__(self, error_codes=(0, 0)):
        self.error_codes = np.array(error_codes, dtype=np.uint8)

    def propagate_array(self, satrecs, timestamp=None):
        eci = np.array([[2 * SCALE, 0.0, 0.0], [0.0, 0.0, 3 * SCALE]])
        eci[self.error_codes != 0] = 0.0
        zeros = np.zeros(2)
        return PositionBatch(timestamp, eci, np.zeros((2, 3)), zeros, zeros, zeros,
                             self.error_codes)


class TestSatelliteSwarm(unittest.TestCase):
    """Test suite for SatelliteSwarm"""

    def setUp(self):
        self.records = make_records()
        self.swarm = SatelliteSwarm(self.records, propagator=StubPropagator(), scale_km=SCALE)
        self.swarm.update()

    def test_buffers_shape(self):
        self.assertEqual(len(self.swarm), 2)
        self.assertEqual(self.swarm.matrices.shape, (2, 16))
        self.assertEqual(self.swarm.matrices.dtype, np.float32)
        self.assertEqual(self.swarm.colors.shape, (2, 3))
        self.assertEqual(self.swarm.colors.dtype, np.float32)

    def test_matrices_after_update(self):
        """Column-major scale + translation per instance"""
        row = self.swarm.matrices[0]
        self.assertAlmostEqual(row[0], BASE_SIZE, places=6)
        self.assertAlmostEqual(row[5], BASE_SIZE, places=6)
        self.assertAlmostEqual(row[10], BASE_SIZE, places=6)
        self.assertEqual(row[15], 1.0)
        np.testing.assert_allclose(row[12:15], [2.0, 0.0, 0.0])
        np.testing.assert_allclose(self.swarm.matrices[1, 12:15], [0.0, 3.0, 0.0])
        self.assertTrue(self.swarm.matrices_dirty)

    def test_failed_satellite_hidden(self):
        swarm = SatelliteSwarm(self.records, propagator=StubPropagator((0, 6)), scale_km=SCALE)
        swarm.update()

        self.assertEqual(list(swarm.visible), [True, False])
        self.assertEqual(swarm.matrices[1, 0], 0.0)
        self.assertEqual(swarm.matrices[1, 5], 0.0)
        self.assertEqual(swarm.matrices[1, 10], 0.0)
        self.assertEqual(swarm.last_batch.failed_count, 1)

    def test_select(self):
        """Test selection enlarges and recolors only the chosen instance"""
        selected = self.swarm.select(1)

        self.assertEqual(selected.norad_id, 28474)
        self.assertIs(self.swarm.selected, self.records[1])
        np.testing.assert_allclose(self.swarm.colors[1], hex_to_rgb(SELECTED_COLOR))
        np.testing.assert_allclose(self.swarm.colors[0], hex_to_rgb(BASE_COLOR))
        self.assertAlmostEqual(self.swarm.matrices[1, 0], SELECTED_SIZE, places=6)
        self.assertAlmostEqual(self.swarm.matrices[0, 0], BASE_SIZE, places=6)

        # Moving the selection restores the previous instance
        self.swarm.select(0)
        np.testing.assert_allclose(self.swarm.colors[1], hex_to_rgb(BASE_COLOR))
        self.assertAlmostEqual(self.swarm.matrices[1, 0], BASE_SIZE, places=6)
        self.assertAlmostEqual(self.swarm.matrices[0, 0], SELECTED_SIZE, places=6)

        self.assertIsNone(self.swarm.select(None))
        self.assertIsNone(self.swarm.selected)
        np.testing.assert_allclose(self.swarm.colors[0], hex_to_rgb(BASE_COLOR))

    def test_selection_survives_update(self):
        self.swarm.select(0)
        self.swarm.update()
        self.assertAlmostEqual(self.swarm.matrices[0, 0], SELECTED_SIZE, places=6)

    def test_hover(self):
        self.swarm.hover(0)
        np.testing.assert_allclose(self.swarm.colors[0], hex_to_rgb(HOVER_COLOR))
        self.assertIs(self.swarm.hovered, self.records[0])

        # Selection color wins over hover
        self.swarm.select(0)
        np.testing.assert_allclose(self.swarm.colors[0], hex_to_rgb(SELECTED_COLOR))

        self.swarm.hover(None)
        self.assertIsNone(self.swarm.hovered)
        np.testing.assert_allclose(self.swarm.colors[0], hex_to_rgb(SELECTED_COLOR))

        self.swarm.select(None)
        np.testing.assert_allclose(self.swarm.colors[0], hex_to_rgb(BASE_COLOR))

    def test_select_out_of_range(self):
        with self.assertRaises(IndexError):
            self.swarm.select(2)
        with self.assertRaises(IndexError):
            self.swarm.hover(-1)

    def test_select_norad(self):
        self.assertEqual(self.swarm.select_norad(25544).name, "ISS (ZARYA)")
        self.assertEqual(self.swarm.find(28474), 1)
        self.assertIsNone(self.swarm.find(99999))
        with self.assertRaises(KeyError):
            self.swarm.select_norad(99999)

    def test_pick(self):
        """Test ray picking of the nearest visible instance"""
        self.assertEqual(self.swarm.pick([5.0, 0.0, 0.0], [-1.0, 0.0, 0.0]), 0)
        self.assertEqual(self.swarm.pick([0.0, 0.0, 0.0], [0.0, 2.0, 0.0]), 1)
        self.assertIsNone(self.swarm.pick([0.0, 0.0, 0.0], [0.0, 0.0, 1.0]))
        # Behind the ray origin
        self.assertIsNone(self.swarm.pick([5.0, 0.0, 0.0], [1.0, 0.0, 0.0]))
        # Near miss, caught with a wider radius
        self.assertIsNone(self.swarm.pick([5.0, 0.05, 0.0], [-1.0, 0.0, 0.0]))
        self.assertEqual(self.swarm.pick([5.0, 0.05, 0.0], [-1.0, 0.0, 0.0], radius=0.1), 0)

    def test_pick_ignores_hidden(self):
        swarm = SatelliteSwarm(self.records, propagator=StubPropagator((6, 0)), scale_km=SCALE)
        swarm.update()
        self.assertIsNone(swarm.pick([5.0, 0.0, 0.0], [-1.0, 0.0, 0.0]))

    def test_pick_zero_direction(self):
        with self.assertRaises(ValueError):
            self.swarm.pick([0.0, 0.0, 0.0], [0.0, 0.0, 0.0])

    def test_replace_clears_state(self):
        self.swarm.select(1)
        self.swarm.hover(0)
        self.swarm.mark_uploaded()

        self.swarm.replace(self.records[:1])

        self.assertEqual(len(self.swarm), 1)
        self.assertIsNone(self.swarm.selected)
        self.assertIsNone(self.swarm.hovered)
        self.assertEqual(self.swarm.matrices.shape, (1, 16))
        np.testing.assert_allclose(self.swarm.colors[0], hex_to_rgb(BASE_COLOR))
        self.assertTrue(self.swarm.matrices_dirty)
        self.assertTrue(self.swarm.colors_dirty)

    def test_dirty_flags(self):
        self.swarm.mark_uploaded()
        self.assertFalse(self.swarm.colors_dirty)

        self.swarm.hover(1)
        self.assertTrue(self.swarm.colors_dirty)
        self.assertFalse(self.swarm.matrices_dirty)

    def test_empty_swarm(self):
        swarm = SatelliteSwarm()
        batch = swarm.update()
        self.assertEqual(len(batch), 0)
        self.assertEqual(swarm.matrices.shape, (0, 16))
        self.assertIsNone(swarm.pick([0.0, 0.0, 0.0], [1.0, 0.0, 0.0]))


class TestSwarmPropagation(unittest.TestCase):
    """Swarm driven by the real SGP4 propagator"""

    def test_positions_match_batch(self):
        records = make_records()
        swarm = SatelliteSwarm(records, propagator=SatellitePropagator())
        batch = swarm.update(records[0].epoch + timedelta(hours=1))

        self.assertTrue(swarm.visible.all())
        np.testing.assert_allclose(swarm.matrices[:, 12:15], batch.scene_positions(),
                                   rtol=1e-6, atol=1e-6)
        # Both orbits lie outside the Earth sphere
        radii = np.linalg.norm(swarm.positions, axis=1)
        self.assertTrue((radii > 1.0).all())


class TestHexToRgb(unittest.TestCase):

    def test_parse(self):
        np.testing.assert_allclose(hex_to_rgb("#00ffff"), [0.0, 1.0, 1.0])
        np.testing.assert_allclose(hex_to_rgb("ffffff"), [1.0, 1.0, 1.0])

    def test_invalid(self):
        with self.assertRaises(ValueError):
            hex_to_rgb("#fff")


if __name__ == '__main__':
    unittest.main()
