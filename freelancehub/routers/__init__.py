"""API routers for the FreelanceHub backend."""
from fastapi import APIRouter

from . import alerts, apikeys, bids, disputes, escrows, health, messages, notifications, projects, reviews, users


def get_api_router() -> APIRouter:
    """Return the root API router."""

    api_router = APIRouter()
    api_router.include_router(health.router)
    api_router.include_router(users.router)
    api_router.include_router(apikeys.router)
    api_router.include_router(projects.router)
    api_router.include_router(bids.router)
    api_router.include_router(messages.router)
    api_router.include_router(escrows.router)
    api_router.include_router(notifications.router)
    api_router.include_router(disputes.router)
    api_router.include_router(reviews.router)
    api_router.include_router(alerts.router)
    return api_router
