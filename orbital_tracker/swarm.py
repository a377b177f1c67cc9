"""
Instanced Satellite Swarm

Bookkeeping for drawing a whole category of satellites as one instanced mesh.
Every frame the swarm propagates all satellites in a single vectorized call
and rewrites two flat buffers that a renderer uploads as-is:

    matrices  float32 (N, 16)  column-major 4x4 per instance (scale + translation)
    colors    float32 (N, 3)   linear RGB in [0, 1]

Selection and hover only touch the affected rows. Satellites that fail to
propagate are collapsed to zero scale, which hides them without reordering
the buffers.
"""

from datetime import datetime
from typing import Iterable, Optional, Sequence

import numpy as np
from sgp4.api import SatrecArray

from config import SCENE_EARTH_RADIUS_KM
from logging_config import get_logger
from orbital_tracker.models import SatelliteRecord
from orbital_tracker.propagator import PositionBatch, SatellitePropagator

logger = get_logger(__name__)

BASE_SIZE = 0.015
SELECTED_SIZE = 0.03

BASE_COLOR = "#ffffff"
SELECTED_COLOR = "#00ffff"
HOVER_COLOR = "#60a5fa"


def hex_to_rgb(value: str) -> np.ndarray:
    """'#rrggbb' -> float32 RGB in [0, 1]."""
    value = value.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Expected a #rrggbb color, got {value!r}")
    return np.array([int(value[i:i + 2], 16) for i in (0, 2, 4)], dtype=np.float32) / 255.0


class SatelliteSwarm:
    """
    Instance buffers, selection and hover state for one set of records.

    Args:
        records: Satellites to draw, in instance order
        propagator: SatellitePropagator used for per-frame updates
        scale_km: Kilometres per scene unit
    """

    def __init__(self, records: Iterable[SatelliteRecord] = (),
                 propagator: Optional[SatellitePropagator] = None,
                 scale_km: float = SCENE_EARTH_RADIUS_KM):
        self.propagator = propagator or SatellitePropagator()
        self.scale_km = scale_km
        self._base_rgb = hex_to_rgb(BASE_COLOR)
        self._selected_rgb = hex_to_rgb(SELECTED_COLOR)
        self._hover_rgb = hex_to_rgb(HOVER_COLOR)
        self.replace(records)

    def __len__(self):
        return len(self.records)

    def replace(self, records: Iterable[SatelliteRecord]) -> None:
        """
        Swap in a new set of records (category change).

        Buffers are reallocated and selection/hover are cleared, since
        indices into the old set mean nothing for the new one.
        """
        self.records: Sequence[SatelliteRecord] = tuple(records)
        count = len(self.records)

        self._satrecs = SatrecArray([r.satrec for r in self.records]) if count else None
        self._index_by_norad = {r.norad_id: i for i, r in enumerate(self.records)}

        self.positions = np.zeros((count, 3), dtype=np.float32)
        self.visible = np.zeros(count, dtype=bool)
        self.matrices = np.zeros((count, 16), dtype=np.float32)
        # Diagonal is filled in update(); w stays 1 for every instance
        self.matrices[:, 15] = 1.0
        self.colors = np.tile(self._base_rgb, (count, 1)).astype(np.float32)

        self.selected_index: Optional[int] = None
        self.hovered_index: Optional[int] = None
        self.last_batch: Optional[PositionBatch] = None
        self.matrices_dirty = True
        self.colors_dirty = True

        logger.info(f"Swarm loaded with {count} satellites")

    def update(self, timestamp: Optional[datetime] = None) -> PositionBatch:
        """Propagate every satellite and rewrite the instance matrices."""
        batch = self.propagator.propagate_array(self._satrecs, timestamp)
        self.last_batch = batch

        if len(self.records):
            self.positions[:] = batch.scene_positions(self.scale_km)
            self.visible[:] = batch.valid
            self._write_matrices()
        return batch

    # Selection / hover

    @property
    def selected(self) -> Optional[SatelliteRecord]:
        return None if self.selected_index is None else self.records[self.selected_index]

    @property
    def hovered(self) -> Optional[SatelliteRecord]:
        return None if self.hovered_index is None else self.records[self.hovered_index]

    def select(self, index: Optional[int]) -> Optional[SatelliteRecord]:
        """Select an instance (None clears the selection)."""
        index = self._check_index(index)
        previous = self.selected_index
        if index == previous:
            return self.selected

        self.selected_index = index
        for i in (previous, index):
            if i is not None:
                self._paint(i)
                self._write_matrix(i)
        return self.selected

    def select_norad(self, norad_id: int) -> Optional[SatelliteRecord]:
        index = self.find(norad_id)
        if index is None:
            raise KeyError(f"Satellite {norad_id} is not in the swarm")
        return self.select(index)

    def hover(self, index: Optional[int]) -> Optional[SatelliteRecord]:
        """Mark an instance as hovered (None clears the hover)."""
        index = self._check_index(index)
        previous = self.hovered_index
        if index == previous:
            return self.hovered

        self.hovered_index = index
        for i in (previous, index):
            if i is not None:
                self._paint(i)
        return self.hovered

    def find(self, norad_id: int) -> Optional[int]:
        return self._index_by_norad.get(norad_id)

    def pick(self, origin, direction, radius: Optional[float] = None) -> Optional[int]:
        """
        Nearest visible instance hit by a ray, in scene units.

        Args:
            origin: Ray origin, shape (3,)
            direction: Ray direction, shape (3,), need not be normalised
            radius: Hit radius around each instance (default: its drawn size)

        Returns:
            Instance index, or None when the ray misses everything
        """
        if not len(self.records) or not self.visible.any():
            return None

        origin = np.asarray(origin, dtype=float)
        direction = np.asarray(direction, dtype=float)
        norm = np.linalg.norm(direction)
        if norm == 0.0:
            raise ValueError("Ray direction must be non-zero")
        direction = direction / norm

        offsets = self.positions.astype(float) - origin
        along = offsets @ direction
        closest = offsets - np.outer(along, direction)
        miss_distance = np.linalg.norm(closest, axis=1)

        if radius is None:
            hit_radius = np.full(len(self.records), BASE_SIZE)
            if self.selected_index is not None:
                hit_radius[self.selected_index] = SELECTED_SIZE
        else:
            hit_radius = np.full(len(self.records), float(radius))

        hits = self.visible & (along > 0.0) & (miss_distance <= hit_radius)
        if not hits.any():
            return None

        candidates = np.flatnonzero(hits)
        return int(candidates[np.argmin(along[candidates])])

    def mark_uploaded(self) -> None:
        """Renderer acknowledgement that both buffers were uploaded."""
        self.matrices_dirty = False
        self.colors_dirty = False

    # Buffer maintenance

    def _sizes(self) -> np.ndarray:
        sizes = np.where(self.visible, BASE_SIZE, 0.0).astype(np.float32)
        if self.selected_index is not None and self.visible[self.selected_index]:
            sizes[self.selected_index] = SELECTED_SIZE
        return sizes

    def _write_matrices(self) -> None:
        sizes = self._sizes()
        self.matrices[:, 0] = sizes
        self.matrices[:, 5] = sizes
        self.matrices[:, 10] = sizes
        self.matrices[:, 12:15] = self.positions
        self.matrices_dirty = True

    def _write_matrix(self, index: int) -> None:
        if not self.visible[index]:
            size = 0.0
        elif index == self.selected_index:
            size = SELECTED_SIZE
        else:
            size = BASE_SIZE
        row = self.matrices[index]
        row[0] = row[5] = row[10] = size
        row[12:15] = self.positions[index]
        self.matrices_dirty = True

    def _paint(self, index: int) -> None:
        if index == self.selected_index:
            self.colors[index] = self._selected_rgb
        elif index == self.hovered_index:
            self.colors[index] = self._hover_rgb
        else:
            self.colors[index] = self._base_rgb
        self.colors_dirty = True

    def _check_index(self, index: Optional[int]) -> Optional[int]:
        if index is None:
            return None
        index = int(index)
        if not 0 <= index < len(self.records):
            raise IndexError(f"Instance index {index} out of range for {len(self.records)} satellites")
        return index
