"""GET /v1/discovery/* - Browse near me by ZIP and radius"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from local_yield.api.dependencies import get_radius
from local_yield.api.v1.schemas import DiscoveryItem, DiscoveryResponse, ZIP_PATTERN
from local_yield.infrastructure.database.session import get_db
from local_yield.services import discovery

router = APIRouter()


@router.get("/discovery/products", response_model=DiscoveryResponse)
def discover_products(
    zip: str = Query(..., pattern=ZIP_PATTERN, description="Viewer ZIP"),
    radius: int = Depends(get_radius),
    nearby_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    matches = discovery.discover_products(db, zip, radius, nearby_only=nearby_only)
    results = [
        DiscoveryItem(
            id=m.entity.id,
            kind="product",
            title=m.entity.title,
            zip_code=m.entity.zip_code,
            price_cents=m.entity.price_cents,
            distance_miles=m.distance_miles,
            within_radius=m.within_radius,
        )
        for m in matches
    ]
    return DiscoveryResponse(zip=zip, radius=radius, results=results)


@router.get("/discovery/caregivers", response_model=DiscoveryResponse)
def discover_caregivers(
    zip: str = Query(..., pattern=ZIP_PATTERN),
    radius: int = Depends(get_radius),
    nearby_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    matches = discovery.discover_caregivers(db, zip, radius, nearby_only=nearby_only)
    results = [
        DiscoveryItem(
            id=m.entity.id,
            kind="caregiver",
            title=m.entity.name,
            zip_code=m.entity.zip_code,
            distance_miles=m.distance_miles,
            within_radius=m.within_radius,
        )
        for m in matches
    ]
    return DiscoveryResponse(zip=zip, radius=radius, results=results)


@router.get("/discovery/jobs", response_model=DiscoveryResponse)
def discover_jobs(
    zip: str = Query(..., pattern=ZIP_PATTERN),
    radius: int = Depends(get_radius),
    nearby_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    matches = discovery.discover_jobs(db, zip, radius, nearby_only=nearby_only)
    results = [
        DiscoveryItem(
            id=m.entity.id,
            kind="job",
            title=m.entity.title,
            zip_code=m.entity.zip_code,
            distance_miles=m.distance_miles,
            within_radius=m.within_radius,
        )
        for m in matches
    ]
    return DiscoveryResponse(zip=zip, radius=radius, results=results)
