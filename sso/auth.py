"""
Authentication service behind the /auth and /users routes.

Users live in the SSO `users` collection. The service raises `AuthError`
with an HTTP status; the exception handler registered in `sso.app` turns it
into a JSON error response.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId

from sso.config import Settings
from sso.db import UserStore
from sso.mailer import MailMessage, Mailer
from sso.schemas import AuthResponse, UserResponse
from sso.security import (
    ACCESS_TOKEN_TYPE,
    MAX_PASSWORD_BYTES,
    REFRESH_TOKEN_TYPE,
    InvalidTokenError,
    decode_token,
    encode_token,
    hash_password,
    random_token,
    verify_password,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Incorrect username or password"
INVALID_RESET_TOKEN = "Password reset token is invalid or has expired"
INVALID_CONFIRM_TOKEN = "Confirm email token is invalid or has expired"
FORGOT_PASSWORD_INFO = (
    "If an account with a matching email exists, "
    "a password reset link has been sent to it"
)
UPDATABLE_FIELDS = (
    "firstName",
    "lastName",
    "email",
    "isTrashed",
    "doForcePasswordChange",
    "encUserId",
    "vmtUserId",
)
ID_FIELDS = ("encUserId", "vmtUserId")
ADMIN_ONLY_FIELDS = ("isTrashed", "encUserId", "vmtUserId")


class AuthError(Exception):
    """Client-facing failure of an auth operation."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _is_expired(expires: Any) -> bool:
    if not isinstance(expires, datetime):
        return True
    if expires.tzinfo is None:
        # pymongo hands back naive datetimes that are in UTC.
        expires = expires.replace(tzinfo=timezone.utc)
    return expires <= _utcnow()


def _to_object_id(value: Any) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _normalize_email(email: Optional[str]) -> Optional[str]:
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


def email_filter(email: str) -> dict:
    """Case-insensitive exact match; migrated accounts keep their original case."""
    return {"$regex": f"^{re.escape(email)}$", "$options": "i"}


def _check_password_length(password: str) -> None:
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise AuthError(400, f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


def public_user(user: dict) -> UserResponse:
    """User payload without the password hash or any token fields."""

    def as_str(value: Any) -> Optional[str]:
        return str(value) if value is not None else None

    return UserResponse(
        id=str(user["_id"]),
        username=user.get("username"),
        email=user.get("email"),
        firstName=user.get("firstName"),
        lastName=user.get("lastName"),
        isEmailConfirmed=bool(user.get("isEmailConfirmed")),
        doForcePasswordChange=bool(user.get("doForcePasswordChange")),
        isTrashed=bool(user.get("isTrashed")),
        isAdmin=bool(user.get("isAdmin")),
        encUserId=as_str(user.get("encUserId")),
        vmtUserId=as_str(user.get("vmtUserId")),
        googleId=user.get("googleId"),
        confirmEmailDate=user.get("confirmEmailDate"),
        createdAt=user.get("createdAt"),
        updatedAt=user.get("updatedAt"),
    )


@dataclass
class AuthService:
    users: UserStore
    mailer: Mailer
    settings: Settings

    def _access_token(self, user: dict) -> str:
        return encode_token(
            str(user["_id"]),
            ACCESS_TOKEN_TYPE,
            timedelta(minutes=self.settings.access_token_minutes),
            self.settings.jwt_secret,
        )

    def _refresh_token(self, user: dict) -> str:
        return encode_token(
            str(user["_id"]),
            REFRESH_TOKEN_TYPE,
            timedelta(days=self.settings.refresh_token_days),
            self.settings.jwt_secret,
        )

    def _auth_response(self, user: dict) -> AuthResponse:
        return AuthResponse(
            user=public_user(user),
            accessToken=self._access_token(user),
            refreshToken=self._refresh_token(user),
        )

    def _live_user(self, user_id: Any) -> Optional[dict]:
        object_id = _to_object_id(user_id)
        if object_id is None:
            return None
        user = self.users.find_one({"_id": object_id})
        if user is None or user.get("isTrashed"):
            return None
        return user

    def _send_confirm_email(self, user: dict) -> dict:
        token = random_token()
        expires = _utcnow() + timedelta(hours=self.settings.confirm_email_hours)
        updated = self.users.update_one(
            {"_id": user["_id"]},
            {"confirmEmailToken": token, "confirmEmailExpires": expires},
        )
        self.mailer.send(
            MailMessage(
                to=user["email"],
                subject="Confirm your email",
                body=f"Confirm your email address with this token: {token}",
            )
        )
        return updated or user

    def login(self, username: str, password: str) -> AuthResponse:
        user = self.users.find_one({"username": username.strip()})
        if user is None or user.get("isTrashed"):
            raise AuthError(401, INVALID_CREDENTIALS)
        if not verify_password(password, user.get("password")):
            raise AuthError(401, INVALID_CREDENTIALS)
        logger.info("User %s logged in", user["_id"])
        return self._auth_response(user)

    def signup(
        self,
        username: str,
        password: str,
        email: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> AuthResponse:
        username = username.strip()
        email = _normalize_email(email)
        if not username:
            raise AuthError(400, "Username is required")
        _check_password_length(password)
        if self.users.find_one({"username": username}) is not None:
            raise AuthError(409, "That username is already taken")
        if email and self.users.find_one({"email": email_filter(email)}) is not None:
            raise AuthError(409, "That email address is already in use")

        now = _utcnow()
        document = {
            "username": username,
            "password": hash_password(password, self.settings.bcrypt_rounds),
            "email": email,
            "firstName": first_name,
            "lastName": last_name,
            "isEmailConfirmed": False,
            "doForcePasswordChange": False,
            "isTrashed": False,
            "createdAt": now,
            "updatedAt": now,
        }
        user_id = self.users.insert_one(
            {key: value for key, value in document.items() if value is not None}
        )
        user = self.users.find_one({"_id": user_id})
        if email:
            user = self._send_confirm_email(user)
        logger.info("Created sso user %s", user_id)
        return self._auth_response(user)

    def forgot_password(
        self, email: Optional[str] = None, username: Optional[str] = None
    ) -> str:
        email = _normalize_email(email)
        username = username.strip() if username else None
        if not email and not username:
            raise AuthError(400, "Provide an email or a username")

        query = {"email": email_filter(email)} if email else {"username": username}
        user = self.users.find_one(query)
        if user is None or user.get("isTrashed") or not user.get("email"):
            logger.info("Password reset requested for unknown account")
            return FORGOT_PASSWORD_INFO

        token = random_token()
        self.users.update_one(
            {"_id": user["_id"]},
            {
                "resetPasswordToken": token,
                "resetPasswordExpires": _utcnow()
                + timedelta(hours=self.settings.reset_password_hours),
            },
        )
        self.mailer.send(
            MailMessage(
                to=user["email"],
                subject="Password reset",
                body=f"Reset the password for {user.get('username')} with this token: {token}",
            )
        )
        return FORGOT_PASSWORD_INFO

    def _user_for_reset_token(self, token: str) -> dict:
        user = self.users.find_one({"resetPasswordToken": token}) if token else None
        if user is None or _is_expired(user.get("resetPasswordExpires")):
            raise AuthError(400, INVALID_RESET_TOKEN)
        return user

    def validate_reset_token(self, token: str) -> dict:
        return self._user_for_reset_token(token)

    def reset_password(self, token: str, password: str) -> AuthResponse:
        user = self._user_for_reset_token(token)
        _check_password_length(password)
        updated = self.users.update_one(
            {"_id": user["_id"]},
            {
                "password": hash_password(password, self.settings.bcrypt_rounds),
                "resetPasswordToken": None,
                "resetPasswordExpires": None,
                "doForcePasswordChange": False,
                "updatedAt": _utcnow(),
            },
        )
        logger.info("Reset password for user %s", user["_id"])
        return self._auth_response(updated or user)

    def refresh_access_token(self, refresh_token: str) -> str:
        try:
            user_id = decode_token(
                refresh_token, REFRESH_TOKEN_TYPE, self.settings.jwt_secret
            )
        except InvalidTokenError as exc:
            raise AuthError(401, "Invalid refresh token") from exc
        user = self._live_user(user_id)
        if user is None:
            raise AuthError(401, "Invalid refresh token")
        return self._access_token(user)

    def authenticate(self, access_token: Optional[str]) -> dict:
        """Return the live user an access token belongs to."""
        if not access_token:
            raise AuthError(401, "Not authenticated")
        try:
            user_id = decode_token(
                access_token, ACCESS_TOKEN_TYPE, self.settings.jwt_secret
            )
        except InvalidTokenError as exc:
            raise AuthError(401, "Invalid access token") from exc
        user = self._live_user(user_id)
        if user is None:
            raise AuthError(401, "Invalid access token")
        return user

    def confirm_email(self, token: str) -> UserResponse:
        user = self.users.find_one({"confirmEmailToken": token}) if token else None
        if user is None or _is_expired(user.get("confirmEmailExpires")):
            raise AuthError(400, INVALID_CONFIRM_TOKEN)
        updated = self.users.update_one(
            {"_id": user["_id"]},
            {
                "isEmailConfirmed": True,
                "confirmEmailDate": _utcnow(),
                "confirmEmailToken": None,
                "confirmEmailExpires": None,
            },
        )
        return public_user(updated or user)

    def resend_confirm_email(self, user: dict) -> str:
        if not user.get("email"):
            raise AuthError(400, "There is no email address associated with this account")
        if user.get("isEmailConfirmed"):
            raise AuthError(400, "Email has already been confirmed")
        self._send_confirm_email(user)
        return f"Confirmation email sent to {user['email']}"

    def update_user(self, user_id: str, changes: dict, current_user: dict) -> UserResponse:
        target_id = _to_object_id(user_id)
        if current_user["_id"] != target_id and not current_user.get("isAdmin"):
            raise AuthError(403, "You do not have permission to update this user")
        user = self.users.find_one({"_id": target_id}) if target_id else None
        if user is None:
            raise AuthError(404, "User not found")

        fields = {key: changes[key] for key in UPDATABLE_FIELDS if key in changes}
        if not current_user.get("isAdmin"):
            restricted = [key for key in ADMIN_ONLY_FIELDS if key in fields]
            if restricted:
                raise AuthError(
                    403, f"Only an admin can change {', '.join(restricted)}"
                )
        for key in ID_FIELDS:
            if fields.get(key) is not None:
                object_id = _to_object_id(fields[key])
                if object_id is None:
                    raise AuthError(400, f"Invalid {key}")
                fields[key] = object_id
        if "email" in fields:
            email = _normalize_email(fields["email"])
            if email != _normalize_email(user.get("email")):
                if email and self.users.find_one(
                    {"_id": {"$ne": target_id}, "email": email_filter(email)}
                ):
                    raise AuthError(409, "That email address is already in use")
                fields["isEmailConfirmed"] = False
            fields["email"] = email
        fields["updatedAt"] = _utcnow()

        updated = self.users.update_one({"_id": target_id}, fields)
        if updated is None:
            raise AuthError(404, "User not found")
        return public_user(updated)
