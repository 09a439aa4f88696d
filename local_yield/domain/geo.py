"""ZIP code geo index: centroid lookup and great-circle distance.

Centroids come from the ``zipcodes`` package, which bundles every US ZIP.
Setting ``zip_table_path`` swaps in a CSV table (``zip,lat,lng``) instead.
Lookups never raise: malformed or unknown ZIPs resolve to ``None`` and
callers treat that as "distance unknown".
"""

import csv
import math
import re
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

import zipcodes

from local_yield.config import settings
from local_yield.domain.models import ZipPoint

EARTH_RADIUS_MILES = 3958.76

_ZIP_RE = re.compile(r"^\d{5}$")


def validate_zip(zip_code: str) -> bool:
    """Strict check used by request validators: exactly five digits"""
    return bool(_ZIP_RE.match(str(zip_code).strip()))


def normalize_zip(zip_code: str) -> Optional[str]:
    """Trim and keep the first five characters; None unless they are digits"""
    if zip_code is None:
        return None
    candidate = str(zip_code).strip()[:5]
    return candidate if _ZIP_RE.match(candidate) else None


@lru_cache(maxsize=4)
def load_zip_table(path: str) -> Dict[str, ZipPoint]:
    """Load an override centroid table into memory (cached per path)"""
    table: Dict[str, ZipPoint] = {}
    with Path(path).open(newline="", encoding="utf-8") as fh:
        for row in csv.DictReader(fh):
            zip_code = normalize_zip(row["zip"])
            if zip_code is None:
                continue
            table[zip_code] = ZipPoint(zip=zip_code, lat=float(row["lat"]), lng=float(row["lng"]))
    return table


@lru_cache(maxsize=16384)
def _lookup_us_zip(zip_code: str) -> Optional[ZipPoint]:
    matches = zipcodes.matching(zip_code)
    if not matches:
        return None
    try:
        lat, lng = float(matches[0]["lat"]), float(matches[0]["long"])
    except (KeyError, TypeError, ValueError):
        return None
    return ZipPoint(zip=zip_code, lat=lat, lng=lng)


def lookup_zip(zip_code: str) -> Optional[ZipPoint]:
    """Resolve a ZIP to its centroid, or None if malformed/unknown"""
    normalized = normalize_zip(zip_code)
    if normalized is None:
        return None
    if settings.zip_table_path:
        return load_zip_table(settings.zip_table_path).get(normalized)
    return _lookup_us_zip(normalized)


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def distance_miles(zip_a: str, zip_b: str) -> Optional[float]:
    """Distance in statute miles between two ZIPs, one decimal; None if either is unknown"""
    point_a = lookup_zip(zip_a)
    point_b = lookup_zip(zip_b)
    if point_a is None or point_b is None:
        return None
    return round(haversine_miles(point_a.lat, point_a.lng, point_b.lat, point_b.lng), 1)
