"""
TLE Parser Module

Provides utilities for validating Two-Line Element (TLE) sets, extracting
orbital parameters, and turning a CelesTrak three-line catalog into
satellite records joined with SatCat metadata.

Parsing of the element set itself is delegated to the sgp4 library.
"""

import math
from datetime import datetime, timezone, timedelta
from typing import Any, Dict, Iterable, List, Optional

from sgp4.api import Satrec

from logging_config import get_logger
from orbital_tracker.exceptions import TLEFormatError
from orbital_tracker.models import SatelliteRecord, UNKNOWN

logger = get_logger(__name__)

TLE_LINE_LENGTH = 69
# Two-digit years at or above the pivot belong to the 1900s (Sputnik, 1957)
YEAR_PIVOT = 57


class TLEParser:
    """
    Parser and utilities for Two-Line Element (TLE) sets.

    Provides methods for:
    - Structural validation of TLE line pairs (optionally with checksums)
    - Parsing TLE data into structured format
    - Parsing whole CelesTrak catalogs into SatelliteRecord lists
    """

    def __init__(self, strict_checksum: bool = False):
        """
        Initialize TLE parser.

        Args:
            strict_checksum: Reject lines whose modulo-10 checksum is wrong
        """
        self.strict_checksum = strict_checksum

    def parse_tle(self, line1: str, line2: str, name: str = "") -> Dict[str, Any]:
        """
        Parse TLE lines into structured data.

        Args:
            line1: First line of TLE
            line2: Second line of TLE
            name: Optional satellite name

        Returns:
            Dictionary containing parsed TLE data
        """
        self.validate_lines(line1, line2)
        satellite = Satrec.twoline2rv(line1, line2)

        # Convert mean motion from rad/min to rev/day
        mean_motion_rev_day = satellite.no_kozai * 1440.0 / (2.0 * math.pi)

        epoch_year = satellite.epochyr
        epoch_days = satellite.epochdays

        return {
            "name": name,
            "norad_id": satellite.satnum,
            "classification": getattr(satellite, 'classification', 'U'),
            "intl_des": line1[9:17].strip(),
            "epoch_year": epoch_year,
            "epoch_days": epoch_days,
            "epoch_datetime": self.epoch_to_datetime(epoch_year, epoch_days),
            "ndot": satellite.ndot,
            "nddot": satellite.nddot,
            "bstar_drag": satellite.bstar,
            "element_number": getattr(satellite, 'elnum', 0),
            "inclination_deg": math.degrees(satellite.inclo),
            "raan_deg": math.degrees(satellite.nodeo),
            "eccentricity": satellite.ecco,
            "arg_perigee_deg": math.degrees(satellite.argpo),
            "mean_anomaly_deg": math.degrees(satellite.mo),
            "mean_motion_rev_per_day": mean_motion_rev_day,
            "revolution_number": getattr(satellite, 'revnum', 0),
            "line1": line1,
            "line2": line2,
        }

    def validate_lines(self, line1: str, line2: str) -> None:
        """
        Check the layout of a TLE line pair.

        Raises:
            TLEFormatError: if the lines cannot be a TLE pair
        """
        if not line1.startswith("1 ") or not line2.startswith("2 "):
            raise TLEFormatError("TLE lines must start with '1 ' and '2 '")

        if len(line1) < TLE_LINE_LENGTH or len(line2) < TLE_LINE_LENGTH:
            raise TLEFormatError(
                f"TLE lines must be {TLE_LINE_LENGTH} characters "
                f"(got {len(line1)} and {len(line2)})"
            )

        if line1[2:7] != line2[2:7]:
            raise TLEFormatError(
                f"Catalog numbers differ between lines: {line1[2:7]!r} != {line2[2:7]!r}"
            )

        if self.strict_checksum:
            for line in (line1, line2):
                expected = line[68]
                if not expected.isdigit() or int(expected) != self.checksum(line):
                    raise TLEFormatError(f"Checksum mismatch on line {line[0]}")

    def parse_catalog(self, text: str, category: str,
                      satcat: Iterable[Dict[str, Any]] = ()) -> List[SatelliteRecord]:
        """
        Parse a three-line TLE catalog (name, line 1, line 2 per satellite).

        Args:
            text: Catalog body as returned by CelesTrak
            category: Category tag stored on every record
            satcat: SatCat JSON records used for launch/owner metadata

        Returns:
            Records in catalog order; groups that fail to parse are skipped
        """
        metadata = {}
        for item in satcat or ():
            norad_id = item.get("NORAD_CAT_ID") if isinstance(item, dict) else None
            if norad_id:
                metadata[int(norad_id)] = item

        lines = [line.strip() for line in text.splitlines()]
        lines = [line for line in lines if line]

        records = []
        skipped = 0
        for i in range(0, len(lines) - 2, 3):
            name, line1, line2 = lines[i], lines[i + 1], lines[i + 2]
            try:
                record = self._build_record(len(records), name, line1, line2,
                                            category, metadata)
            except ValueError as e:
                skipped += 1
                logger.debug(f"Skipping invalid TLE for {name!r}: {e}")
                continue
            records.append(record)

        if len(lines) % 3:
            logger.warning(f"Catalog has {len(lines) % 3} trailing line(s) outside a TLE group")
        if skipped:
            logger.warning(f"Skipped {skipped} invalid TLE group(s) in {category} catalog")

        return records

    def _build_record(self, index: int, name: str, line1: str, line2: str,
                      category: str, metadata: Dict[int, Dict[str, Any]]) -> SatelliteRecord:
        self.validate_lines(line1, line2)

        satrec = Satrec.twoline2rv(line1, line2)
        if satrec.error != 0:
            raise TLEFormatError(f"SGP4 initialisation failed with error {satrec.error}")

        norad_id = satrec.satnum
        intl_des = line1[9:17].strip()
        meta = metadata.get(norad_id, {})
        launch_date = meta.get("LAUNCH_DATE") or UNKNOWN

        return SatelliteRecord.from_satrec(
            satrec,
            id=index,
            name=name,
            line1=line1,
            line2=line2,
            category=str(category),
            norad_id=norad_id,
            intl_des=intl_des,
            launch_date=launch_date,
            site=meta.get("LAUNCH_SITE") or UNKNOWN,
            country=meta.get("OWNER") or UNKNOWN,
            launch_year=self.launch_year(meta.get("LAUNCH_DATE"), intl_des),
            object_type=meta.get("OBJECT_TYPE") or UNKNOWN,
        )

    def launch_year(self, launch_date: Optional[str], intl_des: str) -> str:
        """Launch year from the SatCat date, else from the designator."""
        if launch_date:
            return launch_date[:4]
        if len(intl_des) >= 2 and intl_des[:2].isdigit():
            yy = int(intl_des[:2])
            return str(1900 + yy if yy >= YEAR_PIVOT else 2000 + yy)
        return UNKNOWN

    def epoch_to_datetime(self, epoch_year: int, epoch_days: float) -> datetime:
        """
        Convert TLE epoch to datetime.

        Args:
            epoch_year: Two-digit year
            epoch_days: Day of year with fractional part

        Returns:
            Datetime object in UTC
        """
        year = 1900 + epoch_year if epoch_year >= YEAR_PIVOT else 2000 + epoch_year
        return datetime(year, 1, 1, tzinfo=timezone.utc) + timedelta(days=epoch_days - 1.0)

    @staticmethod
    def checksum(line: str) -> int:
        """Calculate TLE checksum."""
        checksum = 0
        for char in line[:68]:
            if char.isdigit():
                checksum += int(char)
            elif char == "-":
                checksum += 1
        return checksum % 10
