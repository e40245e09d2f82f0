from fastapi import APIRouter

from . import earning, invites

router = APIRouter()
router.include_router(earning.router)
router.include_router(invites.router)
