from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import uuid

from sharehub.core.security import create_access_token, decode_token, verify_password
from sharehub.repositories.user import UserRepository
from sharehub.schemas.user import UserCreate
from sharehub.schemas.auth import AuthResponse
from sharehub.models.user import User
from sharehub.utils.exceptions import AuthenticationError, ConflictError

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: AsyncSession):
        self.user_repo = UserRepository(db)

    async def register(self, user_data: UserCreate) -> User:
        """Register a new user"""
        existing_user = await self.user_repo.get_by_email(user_data.email)
        if existing_user:
            raise ConflictError("User already exists")

        # The unique index still catches a concurrent registration
        user = await self.user_repo.create(user_data)
        if not user:
            raise ConflictError("User already exists")

        logger.info(f"Registered user {user.id}")
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """Authenticate user with email and password"""
        user = await self.user_repo.get_by_email(email)
        if not user or not verify_password(password, user.hashed_password):
            raise AuthenticationError("Invalid credentials")
        return user

    def issue_token(self, user: User) -> AuthResponse:
        return AuthResponse(token=create_access_token(user.id), user=user)

    async def resolve_user(self, token: Optional[str]) -> User:
        """Map a presented bearer token to its user"""
        if not token:
            raise AuthenticationError()

        payload = decode_token(token)
        if not payload or payload.get("type") != "access":
            raise AuthenticationError()

        try:
            user_id = uuid.UUID(str(payload.get("sub")))
        except ValueError:
            raise AuthenticationError()

        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise AuthenticationError()
        return user
