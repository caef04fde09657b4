from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, String, ForeignKey, DateTime, BigInteger, Boolean, Uuid, and_
from sqlalchemy.orm import relationship

from sharehub.core.database import Base


class Resource(Base):
    __tablename__ = "resources"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String, nullable=False)
    resource_url = Column(String, nullable=False)

    # Public credential for anonymous retrieval
    access_token = Column(String(64), unique=True, nullable=False, index=True)

    # Lifecycle
    expiration_time = Column(DateTime(timezone=True), nullable=False)
    is_expired = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    # Owner relationship
    owner_id = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    owner = relationship("User", back_populates="resources")

    # Uploaded file info, empty for link resources
    file_key = Column(String, nullable=True)
    file_name = Column(String, nullable=True)
    file_size = Column(BigInteger, nullable=True)
    mime_type = Column(String, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    @classmethod
    def is_live(cls):
        """Not soft-deleted and not flagged by the sweep"""
        return and_(cls.deleted_at.is_(None), cls.is_expired.is_(False))

    @classmethod
    def is_accessible_at(cls, now: datetime):
        """Reachable through its access token at `now`"""
        return and_(cls.is_live(), cls.expiration_time > now)

    @classmethod
    def is_due_for_expiry_at(cls, now: datetime):
        """Past its expiration time but not flagged yet"""
        return and_(cls.is_live(), cls.expiration_time < now)
