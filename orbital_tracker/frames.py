"""
Coordinate Frames

Conversions between the frames a propagated position passes through on its
way to the screen:

    ECI (TEME, SGP4 output) --GMST--> ECEF --WGS-84--> geodetic lat/lon/height
    ECI --rescale/axis swap--> 3D scene (Earth radius = 1 unit, Y up)

All functions accept a single vector of shape (3,) or a stack of shape (N, 3),
so a whole satellite swarm is converted in one call.
"""

import math
from datetime import datetime, timezone
from typing import Optional, Tuple

import numpy as np
from sgp4.api import jday

from config import SCENE_EARTH_RADIUS_KM, WGS84_A_KM, WGS84_F
from orbital_tracker.exceptions import InvalidTimestampError

J2000_JD = 2451545.0
EARTH_ROTATION_RATE = 7.2921158553e-5  # rad/s
GEODETIC_ITERATIONS = 3


def parse_timestamp(value: Optional[str]) -> datetime:
    """
    ISO-8601 string to an aware datetime.

    Empty values mean now; naive times are taken as UTC.

    Raises:
        InvalidTimestampError: if the string is not ISO-8601
    """
    if not value:
        return datetime.now(timezone.utc)
    try:
        timestamp = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise InvalidTimestampError(value) from None
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def datetime_to_jd_fr(dt: datetime) -> Tuple[float, float]:
    """
    Convert datetime to Julian date and fraction.

    Naive datetimes are taken as UTC.

    Args:
        dt: Datetime object

    Returns:
        Tuple of (julian_day, fraction)
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return jday(dt.year, dt.month, dt.day, dt.hour, dt.minute,
                dt.second + dt.microsecond * 1e-6)


def gmst(jd: float, fr: float = 0.0) -> float:
    """
    Greenwich Mean Sidereal Time (IAU-82) in radians, in [0, 2π).

    Args:
        jd: Julian day (UT1 ≈ UTC)
        fr: Day fraction added to ``jd``
    """
    T = ((jd - J2000_JD) + fr) / 36525.0

    gmst_sec = (
        67310.54841 +
        (876600.0 * 3600.0 + 8640184.812866) * T +
        0.093104 * T * T -
        6.2e-6 * T * T * T
    )

    return (gmst_sec % 86400.0) * (2.0 * math.pi / 86400.0)


def _rotation(theta: float) -> np.ndarray:
    c, s = math.cos(theta), math.sin(theta)
    return np.array([
        [c, s, 0.0],
        [-s, c, 0.0],
        [0.0, 0.0, 1.0],
    ])


def eci_to_ecef(r_eci: np.ndarray, theta: float) -> np.ndarray:
    """Rotate ECI position(s) about Z by the sidereal angle ``theta``."""
    return np.asarray(r_eci, dtype=float) @ _rotation(theta).T


def eci_velocity_to_ecef(r_eci: np.ndarray, v_eci: np.ndarray, theta: float) -> np.ndarray:
    """ECI velocity to ECEF, removing the Earth rotation term (ω × r)."""
    r_ecef = eci_to_ecef(r_eci, theta)
    v_rot = eci_to_ecef(v_eci, theta)
    omega = np.array([0.0, 0.0, EARTH_ROTATION_RATE])
    return v_rot - np.cross(omega, r_ecef)


def ecef_to_geodetic(r_ecef: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    ECEF to WGS-84 geodetic coordinates using Bowring's method.

    Args:
        r_ecef: Position(s) in ECEF coordinates, km, shape (3,) or (N, 3)

    Returns:
        Tuple of (latitude_deg, longitude_deg, height_km); scalars come back
        as 0-d arrays
    """
    r = np.asarray(r_ecef, dtype=float)
    x, y, z = r[..., 0], r[..., 1], r[..., 2]

    a = WGS84_A_KM
    f = WGS84_F
    b = a * (1.0 - f)
    e2 = 2.0 * f - f * f
    ep2 = e2 / (1.0 - e2)

    lon = np.arctan2(y, x)
    p = np.hypot(x, y)

    # Reduced latitude seed; the loop refines it through the geodetic latitude
    beta = np.arctan2(z * a, p * b)
    for _ in range(GEODETIC_ITERATIONS):
        sin_b = np.sin(beta)
        cos_b = np.cos(beta)
        lat = np.arctan2(z + ep2 * b * sin_b ** 3, p - e2 * a * cos_b ** 3)
        beta = np.arctan2(b * np.sin(lat), a * np.cos(lat))

    sin_lat = np.sin(lat)
    N = a / np.sqrt(1.0 - e2 * sin_lat * sin_lat)
    # Valid at the poles, unlike p / cos(lat) - N
    height = p * np.cos(lat) + z * sin_lat - a * a / N

    return np.degrees(lat), np.degrees(lon), height


def eci_to_geodetic(r_eci: np.ndarray, theta: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """ECI position(s) to (latitude_deg, longitude_deg, height_km)."""
    return ecef_to_geodetic(eci_to_ecef(r_eci, theta))


def eci_to_scene(r_eci: np.ndarray, scale_km: float = SCENE_EARTH_RADIUS_KM) -> np.ndarray:
    """
    Rescale ECI kilometres into scene units with Y up.

    ECI Z (north) becomes scene Y and ECI Y becomes scene -Z, so the scene
    stays right-handed: (x, y, z) -> (x, z, -y) / scale_km.
    """
    r = np.asarray(r_eci, dtype=float)
    scene = np.empty_like(r)
    scene[..., 0] = r[..., 0]
    scene[..., 1] = r[..., 2]
    scene[..., 2] = -r[..., 1]
    return scene / scale_km
