"""
Orbital Tracker Package

Satellite tracking backend: TLE retrieval from CelesTrak, SGP4 propagation
through the sgp4 library, coordinate conversion for display, instanced
rendering bookkeeping for large satellite swarms, and a NOAA space-weather
feed proxy.

Modules:
    tle_parser: TLE validation and catalog parsing
    frames: ECI/ECEF/geodetic conversion and scene rescaling
    propagator: single and vectorized SGP4 propagation
    swarm: instance matrices, colors, selection and hover state
    celestrak: CelesTrak GP and SatCat client
    space_weather: NOAA SWPC Kp, solar wind and X-ray flux
    app: Flask service

References:
    Vallado, D. A., Crawford, P., Hujsak, R., & Kelso, T. S. (2006).
    Revisiting Spacetrack Report #3. AIAA 2006-6753.
"""

__version__ = "1.0.0"
