"""Radius matching for ZIP-based discovery (market listings, caregivers, job postings)"""

import math
from typing import Callable, Iterable, List, TypeVar

from local_yield.config import settings
from local_yield.domain.geo import distance_miles
from local_yield.domain.models import RadiusMatch

T = TypeVar("T")

def radius_options() -> List[int]:
    """Selectable search radii in miles, from configuration"""
    return list(settings.radius_options_miles)


def is_valid_radius(radius_miles: int) -> bool:
    """Caller-side check: radius must be one of the configured options"""
    return radius_miles in settings.radius_options_miles


def is_within_radius(viewer_zip: str, entity_zip: str, radius_miles: float) -> bool:
    distance = distance_miles(viewer_zip, entity_zip)
    return distance is not None and distance <= radius_miles


def _zip_code_attr(entity) -> str:
    return getattr(entity, "zip_code", None) or ""


def match_by_radius(
    viewer_zip: str,
    radius_miles: float,
    entities: Iterable[T],
    zip_of: Callable[[T], str] = _zip_code_attr,
) -> List[RadiusMatch[T]]:
    """
    Annotate entities with distance from the viewer and order them for display.

    Ordering:
    - Entities within the radius come first
    - Within each group, ascending by distance
    - Unknown distance (unresolvable ZIP) sorts as +inf, i.e. last

    sorted() is stable, so entities at equal distance keep their input order.
    """
    matches: List[RadiusMatch[T]] = []
    for entity in entities:
        entity_zip = zip_of(entity)
        distance = distance_miles(viewer_zip, entity_zip) if viewer_zip and entity_zip else None
        within = distance is not None and distance <= radius_miles
        matches.append(RadiusMatch(entity=entity, distance_miles=distance, within_radius=within))

    return sorted(
        matches,
        key=lambda m: (
            not m.within_radius,
            m.distance_miles if m.distance_miles is not None else math.inf,
        ),
    )
