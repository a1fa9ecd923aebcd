"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sso.auth import AuthService
from sso.config import get_settings
from sso.db import InMemoryUserStore, MongoUserStore, UserStore
from sso.mailer import LoggingMailer, Mailer

_user_store: UserStore | None = None
_mailer: Mailer | None = None
_auth_service: AuthService | None = None


def get_user_store() -> UserStore:
    """
    Return a singleton store for the SSO `users` collection.
    """
    global _user_store
    if _user_store:
        return _user_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.sso_db_uri:
        _user_store = InMemoryUserStore()
    else:
        _user_store = MongoUserStore(settings.sso_db_uri)
    return _user_store


def get_mailer() -> Mailer:
    global _mailer
    if _mailer:
        return _mailer
    _mailer = LoggingMailer()
    return _mailer


def get_auth_service() -> AuthService:
    global _auth_service
    if _auth_service:
        return _auth_service
    _auth_service = AuthService(
        users=get_user_store(),
        mailer=get_mailer(),
        settings=get_settings(),
    )
    return _auth_service


_bearer = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    service: AuthService = Depends(get_auth_service),
) -> dict:
    """Resolve the bearer access token to the SSO user it was issued for."""
    return service.authenticate(credentials.credentials if credentials else None)
