import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dst_crm.api.v1.access.router import router as access_router
from dst_crm.api.v1.auth.router import router as auth_router
from dst_crm.api.v1.imports.router import router as imports_router
from dst_crm.api.v1.mail.router import router as mail_router
from dst_crm.api.v1.payments.router import router as payments_router
from dst_crm.api.v1.reconciliation.router import router as reconciliation_router
from dst_crm.api.v1.statistics.router import router as statistics_router
from dst_crm.api.v1.students.router import router as students_router
from dst_crm.api.v1.users.router import router as users_router
from dst_crm.core.config import settings

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    app = FastAPI(title="DST CRM")

    # CORS: allow the frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(auth_router)
    app.include_router(access_router)
    app.include_router(users_router)
    app.include_router(students_router)
    app.include_router(payments_router)
    app.include_router(imports_router)
    app.include_router(reconciliation_router)
    app.include_router(statistics_router)
    app.include_router(mail_router)

    if not settings.smtp_configured:
        logger.warning("SMTP configuration is incomplete; /api/send-mail will fail every send")

    return app


app = create_app()
