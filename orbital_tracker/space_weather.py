"""
Space Weather

NOAA SWPC telemetry reshaped for the weather dashboard: planetary Kp index,
solar wind magnetic field (Bt, Bz) and GOES X-ray flux with its flare class.

NOAA publishes two shapes: the ``/products`` feeds are arrays of rows whose
first row is a header, and the ``/json`` feeds are arrays of objects. Rows
are looked up by column name whenever a header is present.
"""

import math
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from logging_config import get_logger
from orbital_tracker.exceptions import FeedError
from orbital_tracker.http_client import FeedClient

logger = get_logger(__name__)

KP_FEED = "/products/noaa-planetary-k-index.json"
MAG_5_MINUTE_FEED = "/products/solar-wind/mag-5-minute.json"
MAG_24_HOUR_FEED = "/products/solar-wind/mag-24-hour.json"
XRAY_6_HOUR_FEED = "/json/goes/primary/xrays-6-hour.json"
XRAY_1_DAY_FEED = "/json/goes/primary/xrays-1-day.json"

# Long-wavelength GOES channel, the one flare classes are defined on
FLARE_BAND = "0.1-0.8nm"

CURRENT_KP_POINTS = 24
CURRENT_WIND_POINTS = 100
CURRENT_FLARE_POINTS = 100
HISTORY_DOWNSAMPLE = 10

# Column positions used when a /products feed arrives without a header
MAG_FALLBACK_COLUMNS = {"time_tag": 0, "bz_gsm": 3, "bt": 6}
KP_FALLBACK_COLUMNS = {"time_tag": 0, "kp": 1}

STORM_KP = 5
ACTIVE_KP = 4
SOUTHWARD_BZ_ALERT = -5.0


def flare_class(flux: float) -> str:
    """GOES flare class (A, B, C, M, X) for a 0.1-0.8 nm flux in W/m²."""
    if flux < 1e-8:
        return "A"
    if flux < 1e-7:
        return "B"
    if flux < 1e-6:
        return "C"
    if flux < 1e-5:
        return "M"
    return "X"


def kp_level(kp: float) -> str:
    """Severity bucket for a Kp value: quiet, active or storm."""
    if kp >= STORM_KP:
        return "storm"
    if kp >= ACTIVE_KP:
        return "active"
    return "quiet"


def magnetosphere_status(kp: float) -> str:
    return "Magnetosphere Stable" if kp < ACTIVE_KP else "Storm Conditions Detected"


def bz_southward(bz: float) -> bool:
    """Strongly southward IMF couples into the magnetosphere."""
    return bz < SOUTHWARD_BZ_ALERT


def parse_time(value: str) -> datetime:
    """NOAA time tag to an aware UTC datetime (naive tags are UTC)."""
    dt = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_epoch_ms(value: str) -> int:
    return int(parse_time(value).timestamp() * 1000)


def _epoch_ms(value) -> Optional[int]:
    try:
        return to_epoch_ms(value)
    except ValueError:
        return None


def _number(value) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _table(payload: Any, fallback: Dict[str, int]) -> List[Dict[str, Any]]:
    """
    Normalise a /products feed into dictionaries keyed by column name.

    Accepts header-led arrays of rows, header-less arrays (columns from
    ``fallback``) and arrays of objects.
    """
    if not isinstance(payload, list) or not payload:
        return []

    first = payload[0]
    if isinstance(first, dict):
        return [{str(k).lower(): v for k, v in row.items()} for row in payload if isinstance(row, dict)]

    if isinstance(first, list) and all(isinstance(c, str) for c in first) and _number(first[1] if len(first) > 1 else None) is None:
        columns = {str(name).lower(): i for i, name in enumerate(first)}
        rows = payload[1:]
    else:
        columns = fallback
        rows = payload

    table = []
    for row in rows:
        if not isinstance(row, list):
            continue
        table.append({name: row[i] for name, i in columns.items() if i < len(row)})
    return table


class SpaceWeatherClient(FeedClient):
    """Client for the NOAA SWPC feeds behind the weather dashboard."""

    source = "noaa-swpc"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._executor = ThreadPoolExecutor(max_workers=3, thread_name_prefix="swpc")

    def _feed(self, path: str, ttl: int) -> Any:
        url = f"{self.config.NOAA_SWPC_BASE.rstrip('/')}{path}"
        return self.get_json(url, cache_key=f"swpc:{path}", ttl=ttl)

    def _fetch_all(self, feeds: Sequence[tuple]) -> List[Any]:
        futures = [self._executor.submit(self._feed, path, ttl) for path, ttl in feeds]
        return [future.result() for future in futures]

    def current(self) -> Dict[str, Any]:
        """
        Latest conditions plus short recent series (times in epoch ms).

        Raises:
            FeedError: when any of the three feeds is unavailable
        """
        kp_json, wind_json, xray_json = self._fetch_all([
            (KP_FEED, self.config.KP_CACHE_TTL),
            (MAG_5_MINUTE_FEED, self.config.SOLAR_CACHE_TTL),
            (XRAY_6_HOUR_FEED, self.config.SOLAR_CACHE_TTL),
        ])

        # Rows whose time tag does not parse are dropped
        kp_history = [
            {"time": ms, "kp": kp}
            for ms, kp in ((_epoch_ms(t), kp) for t, kp in self._kp_series(kp_json))
            if ms is not None
        ][-CURRENT_KP_POINTS:]

        wind_history = [
            {"time": ms, "bt": bt, "bz": bz}
            for ms, bt, bz in ((_epoch_ms(t), bt, bz) for t, bt, bz in self._wind_series(wind_json))
            if ms is not None
        ][-CURRENT_WIND_POINTS:]

        flare_history = [
            {"time": ms, "flux": flux}
            for ms, flux in ((_epoch_ms(t), flux) for t, flux in self._flare_series(xray_json))
            if ms is not None
        ][-CURRENT_FLARE_POINTS:]

        latest_kp = kp_history[-1]["kp"] if kp_history else 0
        latest_wind = wind_history[-1] if wind_history else {"bt": 0, "bz": 0}
        latest_flux = flare_history[-1]["flux"] if flare_history else 0

        return {
            "current": {
                "kpIndex": latest_kp,
                "kpLevel": kp_level(latest_kp),
                "status": magnetosphere_status(latest_kp),
                "solarWind": {
                    "bt": latest_wind["bt"],
                    "bz": latest_wind["bz"],
                    "southwardAlert": bz_southward(latest_wind["bz"]),
                },
                "solarFlare": {
                    "flux": latest_flux,
                    "class": flare_class(latest_flux),
                },
            },
            "history": {
                "kp": kp_history,
                "wind": wind_history,
                "flare": flare_history,
            },
        }

    def history(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        Longer series for the history charts (raw NOAA time strings).

        Kp is returned in full; the 24-hour magnetometer and 1-day X-ray
        series are downsampled to every 10th point.
        """
        kp_json, mag_json, xray_json = self._fetch_all([
            (KP_FEED, self.config.KP_CACHE_TTL),
            (MAG_24_HOUR_FEED, self.config.SOLAR_CACHE_TTL),
            (XRAY_1_DAY_FEED, self.config.SOLAR_CACHE_TTL),
        ])

        kp = [{"time": t, "kp": value} for t, value in self._kp_series(kp_json)]

        mag = [
            {"time": t, "bt": bt, "bz": bz}
            for t, bt, bz in self._wind_series(mag_json, step=HISTORY_DOWNSAMPLE)
        ]

        flare = [
            {"time": t, "flux": flux}
            for t, flux in self._flare_series(xray_json, step=HISTORY_DOWNSAMPLE)
        ]

        return {"kp": kp, "mag": mag, "flare": flare}

    # Series extraction

    def _kp_series(self, payload):
        if not isinstance(payload, list):
            raise FeedError(self.source, "Kp feed is not an array")
        for row in _table(payload, KP_FALLBACK_COLUMNS):
            time_tag = row.get("time_tag")
            kp = _number(row.get("kp"))
            if time_tag and kp is not None:
                yield time_tag, kp

    def _wind_series(self, payload, step: int = 1):
        if not isinstance(payload, list):
            raise FeedError(self.source, "Solar wind feed is not an array")
        rows = _table(payload, MAG_FALLBACK_COLUMNS)[::step]
        for row in rows:
            time_tag = row.get("time_tag")
            bt = _number(row.get("bt"))
            bz = _number(row.get("bz_gsm"))
            if time_tag and bt is not None and bz is not None:
                yield time_tag, bt, bz

    def _flare_series(self, payload, step: int = 1):
        if not isinstance(payload, list):
            raise FeedError(self.source, "X-ray feed is not an array")
        rows = [
            item for item in payload
            if isinstance(item, dict) and item.get("energy") == FLARE_BAND
        ][::step]
        for item in rows:
            time_tag = item.get("time_tag")
            flux = _number(item.get("flux"))
            if time_tag and flux is not None:
                yield time_tag, flux

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        self.session.close()
