"""Administrative account routes"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finsmart.api.deps import get_current_admin
from finsmart.core.database import get_db
from finsmart.schemas.auth import Principal
from finsmart.schemas.response import MessageCode, success
from finsmart.schemas.user import UserResponse, UserStatusUpdate
from finsmart.services.user_service import user_service

router = APIRouter()


def _admin_view(user) -> dict:
    return {
        "user": {
            **UserResponse.model_validate(user).model_dump(),
            "status": user.status,
            "failed_login_count": user.failed_login_count,
        }
    }


@router.patch("/users/{user_id}/status")
async def set_user_status(
    user_id: int,
    body: UserStatusUpdate,
    current_admin: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Enable or disable an account (admin only)"""
    user = await user_service.set_status(db, user_id, body.status)
    return success(MessageCode.UPDATE_SUCCESS, _admin_view(user))


@router.post("/users/{user_id}/unlock")
async def unlock_user(
    user_id: int,
    current_admin: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Reset the failed-login counter of a locked account (admin only)"""
    user = await user_service.reset_failed_logins(db, user_id)
    return success(MessageCode.UPDATE_SUCCESS, _admin_view(user))


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    current_admin: Principal = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete an account (admin only)"""
    await user_service.soft_delete(db, user_id)
    return success(MessageCode.SUCCESS, custom_message=f"User {user_id} deleted successfully")
