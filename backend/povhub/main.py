from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from povhub.core.config import settings
from povhub.core.errors import PovHubError
from povhub.core.logging_config import logger
from povhub.db.session import create_all
import povhub.models  # noqa: F401  # force model registration

from povhub.api.v1.auth import router as auth_router
from povhub.api.v1.permissions import router as permissions_router
from povhub.api.v1.povs import router as povs_router
from povhub.api.v1.launch import router as launch_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        await create_all()
    logger.info("PoV Hub API started (env=%s)", settings.ENVIRONMENT)
    yield


async def povhub_error_handler(request: Request, exc: PovHubError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("%s %s violated a constraint: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(
        status_code=409,
        content={"detail": {"code": "CONFLICT", "message": "Request conflicts with existing data"}},
    )


def create_application() -> FastAPI:
    app = FastAPI(title="PoV Hub API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            # Local development (Next.js frontend)
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(PovHubError, povhub_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)

    @app.get("/")
    def root():
        return {"status": "ok", "service": "povhub"}

    # Routers
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(permissions_router, prefix="/api/v1")
    app.include_router(povs_router, prefix="/api/v1")
    app.include_router(launch_router, prefix="/api/v1")

    return app


app = create_application()
