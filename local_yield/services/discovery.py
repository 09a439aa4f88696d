"""Browse-near-me discovery for market listings, caregivers and job postings"""

from typing import List, Sequence, TypeVar

from sqlalchemy.orm import Session

from local_yield.domain.models import Capability, RadiusMatch
from local_yield.domain.radius import match_by_radius
from local_yield.infrastructure.database.repositories import (
    AccountRepository,
    JobPostingRepository,
    ProductRepository,
)
from local_yield.infrastructure.observability.metrics import discovery_latency_histogram

T = TypeVar("T")


def _discover(surface: str, viewer_zip: str, radius_miles: int, entities: Sequence[T], nearby_only: bool) -> List[RadiusMatch[T]]:
    with discovery_latency_histogram.labels(surface=surface).time():
        matches = match_by_radius(viewer_zip, radius_miles, entities)
    if nearby_only:
        return [m for m in matches if m.within_radius]
    return matches


def discover_products(db: Session, viewer_zip: str, radius_miles: int, nearby_only: bool = False):
    return _discover("products", viewer_zip, radius_miles, ProductRepository(db).list_active(), nearby_only)


def discover_caregivers(db: Session, viewer_zip: str, radius_miles: int, nearby_only: bool = False):
    caregivers = AccountRepository(db).list_with_capability(Capability.CAREGIVER)
    return _discover("caregivers", viewer_zip, radius_miles, caregivers, nearby_only)


def discover_jobs(db: Session, viewer_zip: str, radius_miles: int, nearby_only: bool = False):
    return _discover("jobs", viewer_zip, radius_miles, JobPostingRepository(db).list_open(), nearby_only)
