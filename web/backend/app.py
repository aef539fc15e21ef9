import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from momentum.exceptions import MomentumError
from momentum.logger import get_logger
from web.backend.routers import actions, calendar, common, personas, reflections

logger = get_logger("api")


def create_app() -> FastAPI:
    app = FastAPI(title="Persona Momentum API", version="1.0")

    raw_origins = os.getenv("PERSONA_MOMENTUM_ALLOWED_ORIGINS", "*")
    allow_origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
    allow_credentials = "*" not in allow_origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MomentumError)
    async def momentum_error_handler(request: Request, exc: MomentumError):
        status = common.error_status(exc)
        if status >= 500:
            logger.error("Unhandled domain error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=status, content=common.error_body(exc))

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(status_code=400, content=common.error_body(exc))

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "service": "Persona Momentum"}

    app.include_router(personas.router, prefix="/api/v1/personas", tags=["personas"])
    app.include_router(actions.router, prefix="/api/v1", tags=["actions"])
    app.include_router(calendar.router, prefix="/api/v1/calendar", tags=["calendar"])
    app.include_router(reflections.router, prefix="/api/v1/reflections", tags=["reflections"])

    return app


app = create_app()
