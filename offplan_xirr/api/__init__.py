"""
API routes for the XIRR calculator.
"""

from fastapi import APIRouter

from offplan_xirr.api import calculations, rates

router = APIRouter()

# Include sub-routers
router.include_router(calculations.router, prefix="/calculate", tags=["calculations"])
router.include_router(rates.router, prefix="/rates", tags=["rates"])
