import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from secure_tasks.middleware import AuditMiddleware
from secure_tasks.config import settings
from secure_tasks.errors import AppError
from secure_tasks.routes.admin import router as admin_router
from secure_tasks.routes.audit import router as audit_router
from secure_tasks.routes.auth import router as auth_router
from secure_tasks.routes.health import router as health_router
from secure_tasks.routes.orgs import router as orgs_router
from secure_tasks.routes.tasks import router as tasks_router
from secure_tasks.routes.users import router as users_router

API_PREFIX = "/api"

def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="secure-task-api", version="0.1.0")
    app.add_exception_handler(AppError, app_error_handler)

    app.add_middleware(AuditMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(tasks_router, prefix=API_PREFIX)
    app.include_router(users_router, prefix=API_PREFIX)
    app.include_router(orgs_router, prefix=API_PREFIX)
    app.include_router(audit_router, prefix=API_PREFIX)
    app.include_router(admin_router, prefix=API_PREFIX)
    return app

app = create_app()

def run() -> None:
    import uvicorn

    uvicorn.run("secure_tasks.main:app", host=settings.app_host, port=settings.app_port)
