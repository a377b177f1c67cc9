"""
Data Models

Pydantic models exchanged between the parser, the propagator and the service
layer. Records are frozen: a category change replaces them wholesale rather
than mutating them.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from sgp4.api import Satrec

UNKNOWN = "Unknown"


class Vector3(BaseModel):
    """Cartesian vector (km or km/s depending on context)"""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class SatelliteRecord(BaseModel):
    """Satellite record with its TLE lines and catalog metadata"""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    line1: str
    line2: str
    category: str
    norad_id: int
    intl_des: str = ""
    launch_date: str = UNKNOWN
    site: str = UNKNOWN
    country: str = UNKNOWN
    launch_year: str = UNKNOWN
    object_type: str = UNKNOWN

    _satrec: Optional[Satrec] = PrivateAttr(default=None)

    @classmethod
    def from_satrec(cls, satrec: Satrec, **fields) -> "SatelliteRecord":
        """Build a record around an element set that was already parsed."""
        record = cls(**fields)
        record._satrec = satrec
        return record

    @property
    def satrec(self) -> Satrec:
        """Parsed SGP4 element set, built once per record."""
        if self._satrec is None:
            self._satrec = Satrec.twoline2rv(self.line1, self.line2)
        return self._satrec

    @property
    def epoch(self) -> datetime:
        """TLE epoch as an aware UTC datetime."""
        sat = self.satrec
        jd = (sat.jdsatepoch - 2440587.5) + sat.jdsatepochF
        return datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(days=jd)


class PositionSample(BaseModel):
    """Position of one satellite at one instant"""
    lat: float = 0.0
    lng: float = 0.0
    height: float = 0.0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    velocity: Vector3 = Field(default_factory=Vector3)


class OrbitalElements(BaseModel):
    """Mean elements of a record, angles in degrees"""
    norad_id: int
    name: str
    epoch: datetime
    mean_motion: float  # rev/day
    eccentricity: float
    inclination: float
    raan: float
    arg_perigee: float
    mean_anomaly: float
    bstar: float
    classification: str
    element_number: int
    revolution_number: int
