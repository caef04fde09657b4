from fastapi import APIRouter, Depends

from sharehub.api.deps import get_current_user
from sharehub.schemas.user import User
from sharehub.models.user import User as UserModel

router = APIRouter()


@router.get("/me", response_model=User)
async def get_current_user_profile(
    current_user: UserModel = Depends(get_current_user)
):
    """Get current user profile"""
    return current_user
