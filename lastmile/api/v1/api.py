"""API v1 router composition."""

from fastapi import APIRouter

from lastmile.api.v1.endpoints import admin, auth, notifications, offers, users
from lastmile.schemas.common import ErrorResponse

ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 409)}

api_router: APIRouter = APIRouter(responses=ERROR_RESPONSES)
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(offers.router, prefix="/offers", tags=["offers"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
