from .auth import router as auth_router
from .courses import router as courses_router
from .pre_enrollments import router as pre_enrollments_router
from .payments import router as payments_router
from .enrollments import router as enrollments_router
from .certificates import router as certificates_router
from .documents import router as documents_router
from .settings import router as settings_router

__all__ = [
    "auth_router",
    "courses_router",
    "pre_enrollments_router",
    "payments_router",
    "enrollments_router",
    "certificates_router",
    "documents_router",
    "settings_router"
]
