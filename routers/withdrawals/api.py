from fastapi import APIRouter

from . import admin, withdrawals

router = APIRouter()
router.include_router(withdrawals.router)
router.include_router(admin.router)
