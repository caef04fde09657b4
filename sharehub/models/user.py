from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.orm import relationship

from sharehub.core.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    resources = relationship("Resource", back_populates="owner")
