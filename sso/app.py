"""
FastAPI application entry point for the SSO backend.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from sso.auth import AuthError
from sso.config import get_settings
from sso.routes import router


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="MT SSO", version="0.1.0")
    app.include_router(router, prefix=settings.api_prefix)

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    return app


app = create_app()
