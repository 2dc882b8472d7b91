from fastapi import APIRouter

from renolink.api.v1.admin import router as admin_router
from renolink.api.v1.auth import router as auth_router
from renolink.api.v1.bids import router as bids_router
from renolink.api.v1.credits import router as credits_router
from renolink.api.v1.dashboard import router as dashboard_router
from renolink.api.v1.marketplace import router as marketplace_router
from renolink.api.v1.messages import router as messages_router
from renolink.api.v1.projects import router as projects_router

v1_router = APIRouter()

v1_router.include_router(auth_router)
v1_router.include_router(projects_router)
v1_router.include_router(marketplace_router)
v1_router.include_router(credits_router)
v1_router.include_router(bids_router)
v1_router.include_router(messages_router)
v1_router.include_router(dashboard_router)
v1_router.include_router(admin_router)
