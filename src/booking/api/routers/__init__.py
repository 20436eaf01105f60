from src.booking.api.routers.auth import router as auth_router
from src.booking.api.routers.admin_auth import router as admin_auth_router
from src.booking.api.routers.plans import router as plans_router, admin_router as admin_plans_router
from src.booking.api.routers.user import router as user_router
from src.booking.api.routers.sessions import router as sessions_router
from src.booking.api.routers.countries import router as countries_router
from src.booking.api.routers.admin import router as admin_router

__all__ = [
    "auth_router", "admin_auth_router", "plans_router", "admin_plans_router",
    "user_router", "sessions_router", "countries_router", "admin_router",
]
