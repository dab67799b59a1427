"""FastAPI API endpoints under /api.

Endpoint groups: health and settings, heroes, campaigns. Each campaign's
child resources (areas, messages, hero chats) are nested under
/api/campaigns/{campaign_id}/.
"""

from fastapi import APIRouter

from .campaign import router as campaign_router
from .heroes import router as heroes_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(heroes_router)
router.include_router(campaign_router)
