from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, List, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import UploadFile
import logging
import secrets
import uuid

from sharehub.core.config import settings
from sharehub.core.storage import LocalStorage, StoredFile, storage as default_storage
from sharehub.repositories.resource import ResourceRepository
from sharehub.schemas.resource import ResourceCreate, ResourceStatus
from sharehub.models.resource import Resource
from sharehub.utils.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# 32 random bytes, 64 hex characters
ACCESS_TOKEN_BYTES = 32


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC, convert aware ones"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_access_token() -> str:
    return secrets.token_hex(ACCESS_TOKEN_BYTES)


class ResourceService:
    def __init__(self, db: AsyncSession, storage: Optional[LocalStorage] = None):
        self.resource_repo = ResourceRepository(db)
        self.storage = storage or default_storage

    def _default_expiration(self, now: datetime) -> datetime:
        return now + timedelta(days=settings.DEFAULT_EXPIRY_DAYS)

    def _resolve_name(self, name: Optional[str], stored: Optional[StoredFile]) -> str:
        if name:
            return name
        if stored:
            return stored.original_name
        return f"Untitled_Resource_{uuid.uuid4()}"

    async def create_resource(
        self,
        owner_id: uuid.UUID,
        resource_data: ResourceCreate,
        upload: Optional[UploadFile] = None
    ) -> Resource:
        """Create a file or link resource with a fresh access token"""
        if upload is None and not resource_data.resource_url:
            raise ValidationError("Either a file or a resource URL is required")

        now = utcnow()
        if resource_data.expiration_time is not None:
            expiration_time = as_utc(resource_data.expiration_time)
        else:
            expiration_time = self._default_expiration(now)

        stored = await self.storage.save(upload) if upload is not None else None

        try:
            resource = await self.resource_repo.create(
                name=self._resolve_name(resource_data.name, stored),
                resource_url=f"/uploads/{stored.key}" if stored else resource_data.resource_url,
                access_token=generate_access_token(),
                expiration_time=expiration_time,
                owner_id=owner_id,
                file_key=stored.key if stored else None,
                file_name=stored.original_name if stored else None,
                file_size=stored.size if stored else None,
                mime_type=stored.content_type if stored else None
            )
        except Exception:
            if stored:
                self.storage.delete(stored.key)
            raise

        if resource is None:
            if stored:
                self.storage.delete(stored.key)
            raise ConflictError("Access token already in use")

        logger.info(f"Created resource {resource.id} for user {owner_id}")
        return resource

    async def list_resources(
        self,
        owner_id: uuid.UUID,
        status: Optional[ResourceStatus] = None
    ) -> List[Resource]:
        return await self.resource_repo.list_owned(owner_id, utcnow(), status)

    async def get_resource(self, resource_id: str, owner_id: uuid.UUID) -> Resource:
        """Get an owned, non-deleted resource

        Unknown, foreign and deleted resources all raise the same NotFoundError.
        """
        try:
            parsed_id = uuid.UUID(str(resource_id))
        except ValueError:
            raise NotFoundError("Resource not found")

        resource = await self.resource_repo.get_owned(parsed_id, owner_id)
        if not resource:
            raise NotFoundError("Resource not found")
        return resource

    async def delete_resource(self, resource_id: str, owner_id: uuid.UUID) -> None:
        """Soft delete; the row and any stored file stay in place"""
        resource = await self.get_resource(resource_id, owner_id)
        await self.resource_repo.soft_delete(resource, utcnow())
        logger.info(f"Soft deleted resource {resource.id}")

    async def access_resource(self, access_token: str) -> Tuple[Resource, Optional[Path]]:
        """Resolve a public access token

        Returns the resource and, for file resources, the path to stream.
        """
        resource = await self.resource_repo.get_accessible_by_token(access_token, utcnow())
        if not resource:
            raise NotFoundError("Resource not found or has expired")

        if not resource.file_key:
            return resource, None

        if not self.storage.exists(resource.file_key):
            logger.warning(f"Stored file {resource.file_key} missing for resource {resource.id}")
            raise NotFoundError("File not found")
        return resource, self.storage.path_for(resource.file_key)

    async def mark_expired_resources(self, now: Optional[datetime] = None) -> int:
        """Flag resources whose expiration time has passed"""
        return await self.resource_repo.mark_expired(now or utcnow())
