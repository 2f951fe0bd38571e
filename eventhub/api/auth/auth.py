# eventhub/api/auth/auth.py
import logging

from fastapi import APIRouter, Depends, status

from eventhub.db.models import User
from eventhub.api.schemas import (
    ApiResponse,
    MessageResponse,
    PasswordChange,
    ProfileUpdate,
    TokenData,
    UserLogin,
    UserRegister,
    UserResponse,
)
from eventhub.api.dependencies import get_current_user
from eventhub.services.auth import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(user: User, message: str) -> ApiResponse[TokenData]:
    return ApiResponse(
        data=TokenData(
            access_token=auth_service.create_token(user),
            user=UserResponse.model_validate(user),
        ),
        message=message,
    )


@router.post("/register", response_model=ApiResponse[TokenData], status_code=status.HTTP_201_CREATED)
async def register(user_data: UserRegister):
    user = await auth_service.register_user(
        email=user_data.email,
        name=user_data.name,
        password=user_data.password,
        role=user_data.role,
    )
    return _token_response(user, "User registered successfully")


@router.post("/login", response_model=ApiResponse[TokenData])
async def login(credentials: UserLogin):
    user = await auth_service.authenticate_user(credentials.email, credentials.password)
    logger.info("User %s logged in", user.id)
    return _token_response(user, "Logged in successfully")


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_me(current_user: User = Depends(get_current_user)):
    return ApiResponse(data=UserResponse.model_validate(current_user))


@router.put("/me", response_model=ApiResponse[UserResponse])
async def update_me(
        user_data: ProfileUpdate,
        current_user: User = Depends(get_current_user)
):
    update_data = user_data.model_dump(exclude_unset=True, exclude_none=True)
    user = await auth_service.update_user_profile(current_user, update_data)
    return ApiResponse(data=UserResponse.model_validate(user), message="Profile updated successfully")


@router.put("/changepassword", response_model=MessageResponse)
async def change_password(
        password_data: PasswordChange,
        current_user: User = Depends(get_current_user)
):
    await auth_service.change_password(
        current_user,
        password_data.old_password,
        password_data.new_password,
    )
    return MessageResponse(message="Password changed successfully")


@router.post("/logout", response_model=MessageResponse)
async def logout(current_user: User = Depends(get_current_user)):
    # In JWT implementation, logout is handled client-side
    return MessageResponse(message="Successfully logged out")
