"""
Orbital Tracker Configuration and Constants

This module contains physical constants, fallback TLE data and the
environment-driven service configuration used throughout the project.

Constants:
    WGS-72 gravitational constants as specified by Vallado et al. (2006, AAS 06-675)
    for use with SGP4 orbital propagation, and WGS-84 ellipsoid parameters for
    geodetic conversion of propagated positions.

Fallback TLE Data:
    Hardcoded ISS TLE data for the CLI and tests when live data is unavailable.

    IMPORTANT: Update this TLE data periodically for accuracy.
    - Low Earth Orbit (LEO) satellites: Update weekly
    - Medium Earth Orbit (MEO): Update monthly
    - Geostationary (GEO): Update quarterly

Environment:
    CELESTRAK_API_BASE, NOAA_SWPC_BASE, REDIS_URL, TLE_CACHE_TTL, KP_CACHE_TTL,
    SOLAR_CACHE_TTL, REQUEST_TIMEOUT, RETRY_ATTEMPTS, RETRY_BACKOFF_SECONDS,
    RETRY_MAX_WAIT_SECONDS, MAX_SATELLITES_RENDER, HOST, PORT

References:
    Vallado, D. A., Crawford, P., Hujsak, R., & Kelso, T. S. (2006).
    Revisiting Spacetrack Report #3. AIAA 2006-6753.
"""

import os
from typing import Dict, Any

# WGS-72 Gravitational Constants (per Vallado et al. 2006, AAS 06-675)
EARTH_RADIUS_KM: float = 6378.135  # Earth equatorial radius (km)
GRAVITATIONAL_PARAMETER: float = 398600.8  # Earth gravitational parameter (km³/s²)

# WGS-84 ellipsoid, used for geodetic latitude/longitude/height
WGS84_A_KM: float = 6378.137
WGS84_F: float = 1.0 / 298.257223563

# Mean Earth radius; one scene unit in the 3D view
SCENE_EARTH_RADIUS_KM: float = 6371.0

# Fallback ISS TLE for the CLI and tests
# Last updated: 2025-08-18
FALLBACK_ISS_TLE: Dict[str, Any] = {
    'name': 'ISS (ZARYA)',
    'norad_id': 25544,
    'line1': '1 25544U 98067A   25230.51041667  .00002182  00000-0  13103-3 0  9996',
    'line2': '2 25544  51.6416  45.1234 0002329  75.6910 284.4861 15.50000000123457',
}


class ServiceConfig:
    """
    Service settings read from the environment.

    Every attribute can be overridden by keyword, which is how tests build
    configurations without touching ``os.environ``::

        config = ServiceConfig(RETRY_BACKOFF_SECONDS=0, REDIS_URL="")
    """

    CELESTRAK_BASE = os.getenv('CELESTRAK_API_BASE', 'https://celestrak.org')
    NOAA_SWPC_BASE = os.getenv('NOAA_SWPC_BASE', 'https://services.swpc.noaa.gov')
    REDIS_URL = os.getenv('REDIS_URL', '')
    TLE_CACHE_TTL = int(os.getenv('TLE_CACHE_TTL', '3600'))  # 1 hour
    KP_CACHE_TTL = int(os.getenv('KP_CACHE_TTL', '300'))
    SOLAR_CACHE_TTL = int(os.getenv('SOLAR_CACHE_TTL', '60'))
    REQUEST_TIMEOUT = float(os.getenv('REQUEST_TIMEOUT', '10'))
    RETRY_ATTEMPTS = int(os.getenv('RETRY_ATTEMPTS', '3'))
    RETRY_BACKOFF_SECONDS = float(os.getenv('RETRY_BACKOFF_SECONDS', '1'))
    RETRY_MAX_WAIT_SECONDS = float(os.getenv('RETRY_MAX_WAIT_SECONDS', '10'))
    MAX_SATELLITES = int(os.getenv('MAX_SATELLITES_RENDER', '20000'))
    HOST = os.getenv('HOST', '0.0.0.0')
    PORT = int(os.getenv('PORT', '5001'))

    def __init__(self, **overrides: Any):
        for key, value in overrides.items():
            if not hasattr(type(self), key):
                raise AttributeError(f"Unknown configuration key: {key}")
            setattr(self, key, value)

    def as_dict(self) -> Dict[str, Any]:
        """Settings that are safe to expose on the health endpoint."""
        return {
            "celestrak_base": self.CELESTRAK_BASE,
            "noaa_swpc_base": self.NOAA_SWPC_BASE,
            "cache_enabled": bool(self.REDIS_URL),
            "request_timeout": self.REQUEST_TIMEOUT,
            "retry_attempts": self.RETRY_ATTEMPTS,
            "max_satellites": self.MAX_SATELLITES,
        }
