"""
API router initialization and setup.
"""
from fastapi import APIRouter
from .endpoints import registration, portal

api_router = APIRouter()

api_router.include_router(
    registration.router,
    tags=["registration"]
)

api_router.include_router(
    portal.router,
    prefix="/affiliate",
    tags=["portal"]
)
