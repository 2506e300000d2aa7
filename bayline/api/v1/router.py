from fastapi import APIRouter

# Public — availability and booking
from bayline.api.v1.public.availability import router as availability_router
from bayline.api.v1.public.bookings import router as bookings_router

# Admin
from bayline.api.v1.admin.bookings import router as admin_bookings_router
from bayline.api.v1.admin.resources import router as resources_router
from bayline.api.v1.admin.rules import blackout_router, buffer_router

api_router = APIRouter()

# --- Public ---
api_router.include_router(availability_router)
api_router.include_router(bookings_router)

# --- Admin ---
api_router.include_router(admin_bookings_router)
api_router.include_router(resources_router)
api_router.include_router(blackout_router)
api_router.include_router(buffer_router)
