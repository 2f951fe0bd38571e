# eventhub/api/__init__.py
from fastapi import APIRouter
from eventhub.api.auth.auth import router as auth_router
from eventhub.api.users.users import router as users_router
from eventhub.api.events.events import router as events_router

router = APIRouter(prefix="/api")

router.include_router(auth_router)
router.include_router(users_router)
router.include_router(events_router)
