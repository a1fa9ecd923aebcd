"""
Auth routes. Each flow gets its own sub-router; `router` mounts them.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from sso.auth import AuthService
from sso.dependencies import get_auth_service, get_current_user
from sso.schemas import (
    AccessTokenRequest,
    AccessTokenResponse,
    AuthResponse,
    ForgotPasswordRequest,
    InfoResponse,
    LoginRequest,
    ResetPasswordRequest,
    ResetTokenResponse,
    SignupRequest,
    UserResponse,
)

login = APIRouter()
signup = APIRouter()
forgot = APIRouter()
reset = APIRouter()
access_token = APIRouter()
confirm_email = APIRouter()


@login.post("", response_model=AuthResponse)
def local_login(
    payload: LoginRequest, service: AuthService = Depends(get_auth_service)
):
    return service.login(payload.username, payload.password)


@signup.post("", response_model=AuthResponse, status_code=201)
def local_signup(
    payload: SignupRequest, service: AuthService = Depends(get_auth_service)
):
    return service.signup(
        payload.username,
        payload.password,
        email=payload.email,
        first_name=payload.firstName,
        last_name=payload.lastName,
    )


@forgot.post("/password", response_model=InfoResponse)
def forgot_password(
    payload: ForgotPasswordRequest, service: AuthService = Depends(get_auth_service)
):
    info = service.forgot_password(email=payload.email, username=payload.username)
    return InfoResponse(info=info)


@reset.get("/password/{token}", response_model=ResetTokenResponse)
def validate_reset_token(
    token: str, service: AuthService = Depends(get_auth_service)
):
    user = service.validate_reset_token(token)
    return ResetTokenResponse(isValid=True, username=user.get("username"))


@reset.post("/password/{token}", response_model=AuthResponse)
def reset_password(
    token: str,
    payload: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
):
    return service.reset_password(token, payload.password)


@access_token.post("", response_model=AccessTokenResponse)
def refresh_access_token(
    payload: AccessTokenRequest, service: AuthService = Depends(get_auth_service)
):
    return AccessTokenResponse(
        accessToken=service.refresh_access_token(payload.refreshToken)
    )


@confirm_email.get("/confirm/{token}", response_model=UserResponse)
def confirm(token: str, service: AuthService = Depends(get_auth_service)):
    return service.confirm_email(token)


@confirm_email.post("/resend", response_model=InfoResponse)
def resend(
    current_user: dict = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return InfoResponse(info=service.resend_confirm_email(current_user))


router = APIRouter()
router.include_router(login, prefix="/login")
router.include_router(signup, prefix="/signup")
router.include_router(forgot, prefix="/forgot")
router.include_router(reset, prefix="/reset")
router.include_router(access_token, prefix="/accessToken")
router.include_router(confirm_email, prefix="/confirmEmail")
