"""
Pydantic schemas for the auth and user routes.

Field names follow the JSON the Encompass and VMT clients already send.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=128)
    password: str = Field(..., min_length=1)


class SignupRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=128)
    password: str = Field(..., min_length=4)
    email: Optional[str] = Field(default=None, max_length=254)
    firstName: Optional[str] = None
    lastName: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None
    username: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=4)


class AccessTokenRequest(BaseModel):
    refreshToken: str


class UpdateUserRequest(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = Field(default=None, max_length=254)
    isTrashed: Optional[bool] = None
    doForcePasswordChange: Optional[bool] = None
    encUserId: Optional[str] = None
    vmtUserId: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    isEmailConfirmed: bool = False
    doForcePasswordChange: bool = False
    isTrashed: bool = False
    isAdmin: bool = False
    encUserId: Optional[str] = None
    vmtUserId: Optional[str] = None
    googleId: Optional[str] = None
    confirmEmailDate: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class AuthResponse(BaseModel):
    user: UserResponse
    accessToken: str
    refreshToken: str


class AccessTokenResponse(BaseModel):
    accessToken: str


class InfoResponse(BaseModel):
    info: str


class ResetTokenResponse(BaseModel):
    isValid: bool
    username: Optional[str] = None
