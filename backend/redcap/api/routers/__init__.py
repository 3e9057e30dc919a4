"""
Routers HTTP de RedCap, montes sous API_PREFIX.
"""
from fastapi import FastAPI

from redcap.api.routers import activity_router, garmin_router

API_PREFIX = "/api/v1"


def mount_routers(app: FastAPI) -> None:
    for module in (activity_router, garmin_router):
        app.include_router(module.router, prefix=API_PREFIX)
