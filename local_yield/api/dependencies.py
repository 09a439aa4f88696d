"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Header, HTTPException, Query, Request
from sqlalchemy.orm import Session

from local_yield.config import settings
from local_yield.domain.models import Capability
from local_yield.domain.radius import is_valid_radius, radius_options
from local_yield.infrastructure.clients.events import EventWebhookClient
from local_yield.infrastructure.database.repositories import AccountRepository
from local_yield.infrastructure.database.session import get_db


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_actor_id(x_actor_id: str | None = Header(default=None)) -> str:
    """Authenticated actor, resolved upstream and passed explicitly"""
    if not x_actor_id:
        raise HTTPException(status_code=401, detail={"code": "UNAUTHORIZED", "message": "Unauthorized"})
    return x_actor_id


def get_actor_is_admin(actor_id: str = Depends(get_actor_id), db: Session = Depends(get_db)) -> bool:
    return AccountRepository(db).has_capability(actor_id, Capability.ADMIN)


def get_event_client() -> EventWebhookClient:
    """Provide domain event webhook client instance"""
    return EventWebhookClient()


def get_radius(radius: int | None = Query(default=None, description="Search radius in miles")) -> int:
    """Radius must come from the configured option set"""
    if radius is None:
        return settings.default_radius_miles
    if not is_valid_radius(radius):
        raise HTTPException(
            status_code=422,
            detail={
                "code": "VALIDATION_ERROR",
                "message": f"radius must be one of {radius_options()}",
            },
        )
    return radius
