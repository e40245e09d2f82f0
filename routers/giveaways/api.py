from fastapi import APIRouter

from . import giveaways

router = APIRouter()
router.include_router(giveaways.router)
