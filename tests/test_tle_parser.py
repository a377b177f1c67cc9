"""
Unit Tests for TLE Parser

Run with:
    python -m pytest tests/test_tle_parser.py -v
"""

import unittest
from datetime import datetime, timezone

from pydantic import ValidationError

from orbital_tracker.catalog import Category, list_categories
from orbital_tracker.exceptions import TLEFormatError, UnknownCategoryError
from orbital_tracker.models import SatelliteRecord
from orbital_tracker.tle_parser import TLEParser

ISS_LINE1 = "1 25544U 98067A   23259.57580000  .00012022  00000-0  21844-3 0  9995"
ISS_LINE2 = "2 25544  51.6416 220.9944 0004263 122.0101 312.2755 15.49541986415598"

# Vanguard 1, the first test case of Vallado et al. (2006)
VANGUARD_LINE1 = "1 00005U 58002B   00179.78495062  .00000023  00000-0  28098-4 0  4753"
VANGUARD_LINE2 = "2 00005  34.2682 348.7242 1859667 331.7664  19.3264 10.82419157413667"

CATALOG = "\r\n".join([
    "ISS (ZARYA)             ",
    ISS_LINE1,
    ISS_LINE2,
    "",
    "VANGUARD 1",
    VANGUARD_LINE1,
    VANGUARD_LINE2,
    "",
])

SATCAT = [
    {
        "OBJECT_NAME": "ISS (ZARYA)",
        "NORAD_CAT_ID": 25544,
        "OBJECT_TYPE": "PAY",
        "OWNER": "ISS",
        "LAUNCH_DATE": "1998-11-20",
        "LAUNCH_SITE": "TTMTR",
    },
]


class TestTLEParser(unittest.TestCase):
    """Test cases for TLE parser functionality"""

    def setUp(self):
        """Set up test parser"""
        self.parser = TLEParser()

    def test_parse_tle_basic(self):
        """Test basic TLE parsing"""
        tle_data = self.parser.parse_tle(ISS_LINE1, ISS_LINE2, "ISS (ZARYA)")

        self.assertEqual(tle_data['norad_id'], 25544)
        self.assertEqual(tle_data['name'], "ISS (ZARYA)")
        self.assertEqual(tle_data['intl_des'], "98067A")
        self.assertAlmostEqual(tle_data['inclination_deg'], 51.6416, places=4)
        self.assertAlmostEqual(tle_data['eccentricity'], 0.0004263, places=7)
        self.assertAlmostEqual(tle_data['mean_motion_rev_per_day'], 15.49541986, places=6)

    def test_epoch_datetime(self):
        """Day 259.5758 of 2023 is 16 September, 13:49 UTC"""
        epoch = self.parser.parse_tle(ISS_LINE1, ISS_LINE2)['epoch_datetime']

        self.assertEqual((epoch.year, epoch.month, epoch.day), (2023, 9, 16))
        self.assertEqual((epoch.hour, epoch.minute), (13, 49))
        self.assertEqual(epoch.tzinfo, timezone.utc)

    def test_epoch_year_pivot(self):
        self.assertEqual(self.parser.epoch_to_datetime(57, 1.0),
                         datetime(1957, 1, 1, tzinfo=timezone.utc))
        self.assertEqual(self.parser.epoch_to_datetime(0, 1.5),
                         datetime(2000, 1, 1, 12, tzinfo=timezone.utc))

    def test_checksum(self):
        """Test TLE checksum calculation"""
        self.assertEqual(TLEParser.checksum(VANGUARD_LINE1), 3)
        self.assertEqual(TLEParser.checksum(VANGUARD_LINE2), 7)
        self.assertEqual(TLEParser.checksum(ISS_LINE1), 5)

    def test_strict_checksum_rejects_corrupt_line(self):
        corrupt = ISS_LINE1[:68] + "0"

        # Lenient by default
        self.parser.validate_lines(corrupt, ISS_LINE2)

        with self.assertRaises(TLEFormatError):
            TLEParser(strict_checksum=True).validate_lines(corrupt, ISS_LINE2)

    def test_validate_lines_layout(self):
        """Test structural validation of line pairs"""
        with self.assertRaises(TLEFormatError):
            self.parser.validate_lines(ISS_LINE2, ISS_LINE1)
        with self.assertRaises(TLEFormatError):
            self.parser.validate_lines(ISS_LINE1[:60], ISS_LINE2)
        with self.assertRaises(TLEFormatError):
            self.parser.validate_lines(ISS_LINE1, VANGUARD_LINE2)

    def test_parse_catalog(self):
        """Test parsing a three-line catalog with SatCat metadata"""
        records = self.parser.parse_catalog(CATALOG, "ISS", SATCAT)

        self.assertEqual(len(records), 2)
        iss, vanguard = records

        self.assertEqual([r.id for r in records], [0, 1])
        self.assertEqual(iss.name, "ISS (ZARYA)")
        self.assertEqual(iss.norad_id, 25544)
        self.assertEqual(iss.category, "ISS")
        self.assertEqual(iss.line1, ISS_LINE1)
        self.assertEqual(iss.launch_date, "1998-11-20")
        self.assertEqual(iss.launch_year, "1998")
        self.assertEqual(iss.site, "TTMTR")
        self.assertEqual(iss.country, "ISS")
        self.assertEqual(iss.object_type, "PAY")

        # No metadata: fields stay unknown, the year comes from the designator
        self.assertEqual(vanguard.norad_id, 5)
        self.assertEqual(vanguard.intl_des, "58002B")
        self.assertEqual(vanguard.launch_year, "1958")
        self.assertEqual(vanguard.country, "Unknown")
        self.assertEqual(vanguard.launch_date, "Unknown")

    def test_parse_catalog_skips_invalid_groups(self):
        text = "\n".join([
            "BROKEN",
            "1 this is not a tle",
            "2 neither is this",
            "ISS (ZARYA)",
            ISS_LINE1,
            ISS_LINE2,
            "DANGLING",
        ])

        records = self.parser.parse_catalog(text, Category.ISS.value)

        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].id, 0)
        self.assertEqual(records[0].norad_id, 25544)

    def test_parse_catalog_alpha5(self):
        """Alpha-5 catalog numbers (letter prefix above 99999) are kept"""
        line1 = ISS_LINE1.replace("25544", "A0001")
        line2 = ISS_LINE2.replace("25544", "A0001")

        records = self.parser.parse_catalog("\n".join(["ALPHA FIVE", line1, line2]), "ISS")

        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].norad_id, 100001)

    def test_parse_catalog_empty(self):
        self.assertEqual(self.parser.parse_catalog("", "GPS"), [])

    def test_launch_year(self):
        self.assertEqual(self.parser.launch_year("2019-05-24", "19029A"), "2019")
        self.assertEqual(self.parser.launch_year(None, "23001A"), "2023")
        self.assertEqual(self.parser.launch_year(None, "98067A"), "1998")
        self.assertEqual(self.parser.launch_year(None, ""), "Unknown")


class TestSatelliteRecord(unittest.TestCase):
    """Test cases for satellite records"""

    def setUp(self):
        self.record = SatelliteRecord(
            id=0, name="ISS (ZARYA)", line1=ISS_LINE1, line2=ISS_LINE2,
            category="ISS", norad_id=25544,
        )

    def test_satrec_built_lazily(self):
        satrec = self.record.satrec
        self.assertEqual(satrec.satnum, 25544)
        self.assertIs(self.record.satrec, satrec)

    def test_epoch(self):
        epoch = self.record.epoch
        self.assertEqual((epoch.year, epoch.month, epoch.day, epoch.hour), (2023, 9, 16, 13))

    def test_record_is_frozen(self):
        with self.assertRaises(ValidationError):
            self.record.name = "renamed"

    def test_satrec_not_serialized(self):
        data = self.record.model_dump()
        self.assertNotIn("_satrec", data)
        self.assertEqual(data["launch_year"], "Unknown")


class TestCategory(unittest.TestCase):
    """Test cases for category resolution"""

    def test_resolve(self):
        self.assertIs(Category.resolve("gps"), Category.GPS)
        self.assertIs(Category.resolve(" Weather "), Category.WEATHER)
        self.assertIs(Category.resolve(Category.ALL), Category.ALL)

    def test_unknown_falls_back_to_starlink(self):
        self.assertIs(Category.resolve("galileo"), Category.STARLINK)
        self.assertIs(Category.resolve(None), Category.STARLINK)

    def test_unknown_strict(self):
        with self.assertRaises(UnknownCategoryError) as ctx:
            Category.resolve("galileo", strict=True)
        self.assertEqual(ctx.exception.name, "galileo")

    def test_urls(self):
        base = "https://celestrak.org/"
        self.assertEqual(
            Category.ISS.tle_url(base),
            "https://celestrak.org/NORAD/elements/gp.php?CATNR=25544&FORMAT=tle",
        )
        self.assertEqual(
            Category.GPS.satcat_url(base),
            "https://celestrak.org/satcat/records.php?GROUP=gps-ops&FORMAT=json",
        )

    def test_list_categories(self):
        names = [c["name"] for c in list_categories()]
        self.assertEqual(names, ["STARLINK", "GPS", "ISS", "WEATHER", "ALL"])


if __name__ == '__main__':
    unittest.main()
