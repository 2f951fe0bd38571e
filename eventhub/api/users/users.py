# eventhub/api/users/users.py
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends
from fastapi_pagination.ext.tortoise import paginate as tortoise_paginate

from eventhub.db.models import User
from eventhub.api.schemas import (
    AdminUserUpdate,
    ApiResponse,
    ListPage,
    MessageResponse,
    UserResponse,
    UserStats,
)
from eventhub.api.dependencies import get_current_user, get_user_service, require_admin
from eventhub.domain import UserRole
from eventhub.services.event import actor_for
from eventhub.services.user import UserService

router = APIRouter(prefix="/users", tags=["users"])

UserSortOption = Literal["name", "email", "role", "lastLogin", "created"]


def _to_responses(users: List[User]) -> List[UserResponse]:
    return [UserResponse.model_validate(user) for user in users]


@router.get("/", response_model=ListPage[UserResponse])
async def get_users(
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
        sort: UserSortOption = "created",
        admin: User = Depends(require_admin),
        service: UserService = Depends(get_user_service),
):
    query = service.users_query(role=role, search=search, sort=sort)
    return await tortoise_paginate(query, transformer=_to_responses)


# Declared before /{user_id}
@router.get("/stats/overview", response_model=ApiResponse[UserStats])
async def get_stats_overview(
        admin: User = Depends(require_admin),
        service: UserService = Depends(get_user_service),
):
    stats = await service.get_stats_overview()
    return ApiResponse(data=UserStats(**stats))


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user(
        user_id: int,
        current_user: User = Depends(get_current_user),
        service: UserService = Depends(get_user_service),
):
    user = await service.get_user(user_id, actor_for(current_user))
    return ApiResponse(data=UserResponse.model_validate(user))


@router.put("/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(
        user_id: int,
        user_data: AdminUserUpdate,
        admin: User = Depends(require_admin),
        service: UserService = Depends(get_user_service),
):
    update_data = user_data.model_dump(exclude_unset=True, exclude_none=True)
    user = await service.update_user(user_id, update_data)
    return ApiResponse(data=UserResponse.model_validate(user), message="User updated successfully")


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
        user_id: int,
        admin: User = Depends(require_admin),
        service: UserService = Depends(get_user_service),
):
    await service.delete_user(user_id)
    return MessageResponse(message="User deleted successfully")
