"""API Routes Module."""

from fastapi import APIRouter

from zigbridge.api import config, devices

router = APIRouter()

router.include_router(devices.router, tags=["Devices"])
router.include_router(config.router, tags=["Configuration"])
