"""
Satellite Categories

Maps the category filter of the tracker onto CelesTrak GP (TLE) and SatCat
(metadata) queries.
"""

from enum import Enum
from typing import Dict, List, Union

from orbital_tracker.exceptions import UnknownCategoryError


class Category(str, Enum):
    STARLINK = "STARLINK"
    GPS = "GPS"
    ISS = "ISS"
    WEATHER = "WEATHER"
    ALL = "ALL"

    @classmethod
    def resolve(cls, name: Union[str, "Category", None], strict: bool = False) -> "Category":
        """
        Resolve a category name (case-insensitive).

        Unknown or empty names fall back to STARLINK, the tracker's default
        view, unless ``strict`` is set.
        """
        if isinstance(name, cls):
            return name
        try:
            return cls((name or "").strip().upper())
        except ValueError:
            if strict:
                raise UnknownCategoryError(name)
            return cls.STARLINK

    @property
    def query(self) -> str:
        return CATEGORY_QUERIES[self]

    @property
    def description(self) -> str:
        return CATEGORY_DESCRIPTIONS[self]

    def tle_url(self, base: str) -> str:
        return f"{base.rstrip('/')}/NORAD/elements/gp.php?{self.query}&FORMAT=tle"

    def satcat_url(self, base: str) -> str:
        return f"{base.rstrip('/')}/satcat/records.php?{self.query}&FORMAT=json"


CATEGORY_QUERIES: Dict[Category, str] = {
    Category.STARLINK: "GROUP=starlink",
    Category.GPS: "GROUP=gps-ops",
    Category.ISS: "CATNR=25544",
    Category.WEATHER: "GROUP=weather",
    Category.ALL: "GROUP=active",  # large: every active payload
}

CATEGORY_DESCRIPTIONS: Dict[Category, str] = {
    Category.STARLINK: "Starlink – private broadband satellite constellation orbiting Earth to provide global internet coverage.",
    Category.GPS: "GPS – Global Positioning System satellites used for navigation and timing.",
    Category.ISS: "ISS – International Space Station, crewed research platform in low Earth orbit.",
    Category.WEATHER: "Weather – meteorological satellites used to monitor clouds, storms, climate, and environmental conditions.",
    Category.ALL: "All active satellites tracked by CelesTrak.",
}


def list_categories() -> List[Dict[str, str]]:
    """Categories with their descriptions, in display order."""
    return [{"name": c.value, "description": c.description} for c in Category]
