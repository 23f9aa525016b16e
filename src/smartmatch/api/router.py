"""Aggregate all API routers."""

from fastapi import APIRouter

from . import matching, system

api_router = APIRouter()
api_router.include_router(matching.router)
api_router.include_router(system.router)
