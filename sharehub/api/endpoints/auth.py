from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from sharehub.core.database import get_db
from sharehub.schemas.auth import AuthResponse, LoginRequest
from sharehub.schemas.user import UserCreate
from sharehub.services.auth import AuthService

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """Register a new user and sign them in"""
    auth_service = AuthService(db)
    user = await auth_service.register(user_data)
    return auth_service.issue_token(user)


@router.post("/login", response_model=AuthResponse)
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Login with email and password"""
    auth_service = AuthService(db)
    user = await auth_service.authenticate(login_data.email, login_data.password)
    return auth_service.issue_token(user)
