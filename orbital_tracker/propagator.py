"""
SGP4 Satellite Propagation

Provides satellite position computation using the proven sgp4 library, one
record at a time or for a whole swarm in a single vectorized call
(``sgp4.api.SatrecArray``).

Features:
- Position samples with geodetic and ECI coordinates
- Vectorized batch propagation for tens of thousands of satellites
- Error diagnostics and a bounded per-satellite error history
- Orbital element export

A satellite that SGP4 cannot propagate (decayed, corrupt elements) has no
position: single samples come back zeroed and batch entries are flagged
invalid, so callers can hide it rather than fail the whole frame.
"""

import math
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import numpy as np
from sgp4.api import SatrecArray

from config import SCENE_EARTH_RADIUS_KM
from logging_config import get_logger
from orbital_tracker.frames import datetime_to_jd_fr, eci_to_geodetic, eci_to_scene, gmst
from orbital_tracker.models import OrbitalElements, PositionSample, SatelliteRecord, Vector3

logger = get_logger(__name__)

MAX_ERROR_HISTORY = 100

# SGP4 error code meanings
SGP4_ERROR_CODES = {
    0: "No error",
    1: "Mean eccentricity < 0.0 or > 1.0",
    2: "Mean motion < 0.0",
    3: "Perturbed eccentricity < 0.0 or > 1.0",
    4: "Semi-latus rectum < 0.0",
    5: "Satellite has decayed",
    6: "Satellite has decayed (low altitude)",
}


def describe_error(code: int) -> str:
    return SGP4_ERROR_CODES.get(int(code), f"Unknown error code {code}")


class PositionBatch:
    """
    Positions of many satellites at one instant.

    Attributes:
        timestamp: Propagation time (UTC)
        eci: ECI positions, km, shape (N, 3); zero where invalid
        velocity: ECI velocities, km/s, shape (N, 3); zero where invalid
        lat, lng, height: Geodetic coordinates, shape (N,)
        error_codes: SGP4 error code per satellite, shape (N,)
        valid: True where propagation succeeded, shape (N,)
    """

    def __init__(self, timestamp, eci, velocity, lat, lng, height, error_codes):
        self.timestamp = timestamp
        self.eci = eci
        self.velocity = velocity
        self.lat = lat
        self.lng = lng
        self.height = height
        self.error_codes = error_codes
        self.valid = error_codes == 0

    def __len__(self):
        return len(self.error_codes)

    @property
    def failed_count(self) -> int:
        return int(np.count_nonzero(~self.valid))

    def sample(self, index: int) -> PositionSample:
        """Position sample for one satellite of the batch."""
        if not self.valid[index]:
            return PositionSample()
        x, y, z = self.eci[index]
        vx, vy, vz = self.velocity[index]
        return PositionSample(
            lat=float(self.lat[index]),
            lng=float(self.lng[index]),
            height=float(self.height[index]),
            x=float(x), y=float(y), z=float(z),
            velocity=Vector3(x=float(vx), y=float(vy), z=float(vz)),
        )

    def scene_positions(self, scale_km: float = SCENE_EARTH_RADIUS_KM) -> np.ndarray:
        """Positions in scene units (Y up), shape (N, 3)."""
        return eci_to_scene(self.eci, scale_km)


class SatellitePropagator:
    """
    SGP4 propagation for satellite records.

    The propagator keeps no state per satellite besides the error history;
    element sets live on the records themselves.
    """

    def __init__(self):
        self.error_history: Dict[int, List[dict]] = {}

    def propagate(self, record: SatelliteRecord,
                  timestamp: Optional[datetime] = None) -> PositionSample:
        """
        Propagate a single satellite.

        Args:
            record: Satellite record
            timestamp: Target time (default: now)

        Returns:
            PositionSample; all zeros when SGP4 reports an error
        """
        if timestamp is None:
            timestamp = datetime.now(timezone.utc)

        jd, fr = datetime_to_jd_fr(timestamp)
        error, position, velocity = record.satrec.sgp4(jd, fr)

        if error != 0:
            self._log_error(record.norad_id, error, timestamp)
            logger.warning(
                f"SGP4 error {error} for satellite {record.norad_id}: {describe_error(error)}"
            )
            return PositionSample()

        lat, lon, height = eci_to_geodetic(np.array(position), gmst(jd, fr))

        return PositionSample(
            lat=float(lat),
            lng=float(lon),
            height=float(height),
            x=position[0], y=position[1], z=position[2],
            velocity=Vector3(x=velocity[0], y=velocity[1], z=velocity[2]),
        )

    def propagate_batch(self, records: Sequence[SatelliteRecord],
                        timestamp: Optional[datetime] = None) -> PositionBatch:
        """Propagate every record to one instant in a single vectorized call."""
        satrecs = SatrecArray([record.satrec for record in records]) if records else None
        return self.propagate_array(satrecs, timestamp)

    def propagate_array(self, satrecs: Optional[SatrecArray],
                        timestamp: Optional[datetime] = None) -> PositionBatch:
        """
        Propagate a prebuilt ``SatrecArray``.

        Callers that propagate the same satellites every frame build the
        array once and pass it here.
        """
        if timestamp is None:
            timestamp = datetime.now(timezone.utc)

        if satrecs is None:
            empty = np.zeros((0, 3))
            return PositionBatch(timestamp, empty, empty.copy(), np.zeros(0),
                                 np.zeros(0), np.zeros(0), np.zeros(0, dtype=np.uint8))

        jd, fr = datetime_to_jd_fr(timestamp)
        errors, r, v = satrecs.sgp4(np.array([jd]), np.array([fr]))

        error_codes = np.asarray(errors[:, 0], dtype=np.uint8)
        eci = np.asarray(r[:, 0, :], dtype=float)
        velocity = np.asarray(v[:, 0, :], dtype=float)

        # Failed entries are NaN; treat any non-finite output as a failure too
        bad = (error_codes != 0) | ~np.isfinite(eci).all(axis=1) | ~np.isfinite(velocity).all(axis=1)
        error_codes = np.where((error_codes == 0) & bad, np.uint8(255), error_codes).astype(np.uint8)
        eci[bad] = 0.0
        velocity[bad] = 0.0

        lat, lng, height = eci_to_geodetic(eci, gmst(jd, fr))
        lat = np.where(bad, 0.0, lat)
        lng = np.where(bad, 0.0, lng)
        height = np.where(bad, 0.0, height)

        batch = PositionBatch(timestamp, eci, velocity, lat, lng, height, error_codes)
        if batch.failed_count:
            logger.debug(f"{batch.failed_count} of {len(batch)} satellites failed to propagate")
        return batch

    def orbital_elements(self, record: SatelliteRecord) -> OrbitalElements:
        """Get orbital elements"""
        sat = record.satrec
        return OrbitalElements(
            norad_id=record.norad_id,
            name=record.name,
            epoch=record.epoch,
            mean_motion=sat.no_kozai * 1440.0 / (2 * math.pi),  # rev/day
            eccentricity=sat.ecco,
            inclination=math.degrees(sat.inclo),
            raan=math.degrees(sat.nodeo),
            arg_perigee=math.degrees(sat.argpo),
            mean_anomaly=math.degrees(sat.mo),
            bstar=sat.bstar,
            classification=sat.classification,
            element_number=sat.elnum,
            revolution_number=sat.revnum,
        )

    def error_diagnostics(self, record: SatelliteRecord, error_code: int,
                          timestamp: datetime) -> dict:
        """
        Physical interpretation of an SGP4 error.

        Args:
            record: Satellite record
            error_code: SGP4 error code
            timestamp: Propagation timestamp

        Returns:
            Dictionary with diagnostic information
        """
        sat = record.satrec
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        diagnostics = {
            "error_code": error_code,
            "error_description": describe_error(error_code),
            "orbital_parameters": {
                "eccentricity": sat.ecco,
                "inclination_deg": math.degrees(sat.inclo),
                "mean_motion_rev_day": sat.no_kozai * 1440.0 / (2 * math.pi),
                "bstar_drag": sat.bstar,
                "epoch_age_days": (timestamp - record.epoch).total_seconds() / 86400.0,
            },
        }

        if error_code in (1, 2):
            diagnostics["physical_meaning"] = (
                "The element set is unphysical (eccentricity outside [0, 1) or "
                "negative mean motion); the TLE is corrupt."
            )
            diagnostics["recommended_action"] = "Obtain fresh TLE data for this satellite."
        elif error_code in (3, 4):
            diagnostics["physical_meaning"] = (
                "SGP4 computed perturbed elements that are unphysical. This typically "
                "occurs far from the TLE epoch or for high-drag decaying orbits."
            )
            diagnostics["recommended_action"] = (
                "Use more recent TLE data or limit propagation to shorter time periods."
            )
        elif error_code in (5, 6):
            diagnostics["physical_meaning"] = (
                "The satellite has decayed and re-entered the atmosphere."
            )
            diagnostics["recommended_action"] = "Historical propagation only."

        return diagnostics

    def get_error_history(self, norad_id: int) -> List[dict]:
        """
        Get error history for a satellite.

        Args:
            norad_id: NORAD catalog ID

        Returns:
            List of error records, oldest first
        """
        return list(self.error_history.get(norad_id, []))

    def _log_error(self, norad_id, error_code, timestamp):
        """Log error for tracking and diagnostics."""
        history = self.error_history.setdefault(norad_id, [])
        history.append({
            "error_code": error_code,
            "timestamp": timestamp.isoformat(),
            "error_message": describe_error(error_code),
        })

        if len(history) > MAX_ERROR_HISTORY:
            del history[:-MAX_ERROR_HISTORY]
