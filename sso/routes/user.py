"""
User routes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from sso.auth import AuthService
from sso.dependencies import get_auth_service, get_current_user
from sso.schemas import UpdateUserRequest, UserResponse

router = APIRouter()


@router.put("/{user_id}", response_model=UserResponse)
def put(
    user_id: str,
    payload: UpdateUserRequest,
    current_user: dict = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return service.update_user(
        user_id, payload.model_dump(exclude_unset=True), current_user
    )
