from datetime import datetime
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_
from sqlalchemy.exc import IntegrityError
import uuid

from sharehub.models.resource import Resource
from sharehub.schemas.resource import ResourceStatus


class ResourceRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        name: str,
        resource_url: str,
        access_token: str,
        expiration_time: datetime,
        owner_id: uuid.UUID,
        file_key: Optional[str] = None,
        file_name: Optional[str] = None,
        file_size: Optional[int] = None,
        mime_type: Optional[str] = None
    ) -> Optional[Resource]:
        """Create a new resource record, None on a unique constraint clash"""
        db_resource = Resource(
            name=name,
            resource_url=resource_url,
            access_token=access_token,
            expiration_time=expiration_time,
            owner_id=owner_id,
            file_key=file_key,
            file_name=file_name,
            file_size=file_size,
            mime_type=mime_type,
            is_expired=False
        )
        try:
            self.db.add(db_resource)
            await self.db.commit()
            await self.db.refresh(db_resource)
            return db_resource
        except IntegrityError:
            await self.db.rollback()
            return None

    async def get_owned(self, resource_id: uuid.UUID, owner_id: uuid.UUID) -> Optional[Resource]:
        """Get a non-deleted resource belonging to owner"""
        query = select(Resource).filter(
            and_(
                Resource.id == resource_id,
                Resource.owner_id == owner_id,
                Resource.deleted_at.is_(None)
            )
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_owned(
        self,
        owner_id: uuid.UUID,
        now: datetime,
        status: Optional[ResourceStatus] = None
    ) -> List[Resource]:
        """List owner's non-deleted resources, oldest first"""
        query = select(Resource).filter(
            Resource.owner_id == owner_id,
            Resource.deleted_at.is_(None)
        )
        if status == ResourceStatus.ACTIVE:
            query = query.filter(Resource.is_accessible_at(now))
        elif status == ResourceStatus.EXPIRED:
            query = query.filter(Resource.is_expired.is_(True))

        result = await self.db.execute(query.order_by(Resource.created_at.asc()))
        return list(result.scalars().all())

    async def get_accessible_by_token(self, access_token: str, now: datetime) -> Optional[Resource]:
        """Get resource by access token if it can still be shared"""
        query = select(Resource).filter(
            Resource.access_token == access_token,
            Resource.is_accessible_at(now)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def soft_delete(self, resource: Resource, now: datetime) -> Resource:
        """Set the deletion marker, keeping the row"""
        resource.deleted_at = now
        await self.db.commit()
        await self.db.refresh(resource)
        return resource

    async def mark_expired(self, now: datetime) -> int:
        """Flag every resource past its expiration time, returns rows flagged"""
        query = (
            update(Resource)
            .where(Resource.is_due_for_expiry_at(now))
            .values(is_expired=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(query)
        await self.db.commit()
        return result.rowcount or 0
