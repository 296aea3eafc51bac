"""Top-level API router aggregation."""

from fastapi import APIRouter

from . import stratus

api_router = APIRouter(prefix="/api")

api_router.include_router(stratus.router)
