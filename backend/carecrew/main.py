import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.trustedhost import TrustedHostMiddleware

from carecrew import config
from carecrew.logging_config import setup_logging
from carecrew.routers import accounts, bookings, contact

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected %s %s: invalid request body", request.method, request.url.path)
    return JSONResponse(
        status_code=422,
        content={"message": "Invalid request", "errors": jsonable_encoder(exc.errors())},
    )


def create_app() -> FastAPI:
    setup_logging(config.LOG_LEVEL)

    app = FastAPI(title="CareCrew API", version="0.1.0")

    cors_origins = config.CORS_ORIGINS
    allow_any_origin = len(cors_origins) == 1 and cors_origins[0] == "*"
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        # Browsers reject wildcard CORS with credentials enabled.
        allow_credentials=not allow_any_origin,
        allow_methods=["GET", "POST", "PATCH"],
        allow_headers=["*"],
    )

    trusted_hosts = config.TRUSTED_HOSTS
    if not (len(trusted_hosts) == 1 and trusted_hosts[0] == "*"):
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=trusted_hosts)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(accounts.router)
    app.include_router(bookings.router)
    app.include_router(contact.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    # Legacy liveness probe: deployed clients expect a 500 here. Use /health instead.
    @app.post("/test")
    def legacy_test():
        return JSONResponse(status_code=500, content={"message": "Server is running"})

    return app


app = create_app()
