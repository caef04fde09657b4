from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from sharehub.core.database import get_db
from sharehub.models.user import User
from sharehub.services.auth import AuthService

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Resolve the caller from the Authorization bearer token"""
    token = credentials.credentials if credentials else None
    return await AuthService(db).resolve_user(token)
