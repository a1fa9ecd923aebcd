"""
Route tables for the SSO API.
"""

from __future__ import annotations

from fastapi import APIRouter

from sso.routes import auth, user

router = APIRouter()
router.include_router(auth.router, prefix="/auth")
router.include_router(user.router, prefix="/users")
