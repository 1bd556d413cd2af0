# equiprent/routes/__init__.py
from fastapi import APIRouter
from .whoami import router as whoami_router
from .resources import router as resources_router
from .returns import router as returns_router

router = APIRouter()
router.include_router(whoami_router)
router.include_router(resources_router)
router.include_router(returns_router)
