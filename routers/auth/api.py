from fastapi import APIRouter

from . import otp, profile

router = APIRouter()
router.include_router(otp.router)
router.include_router(profile.router)
