from pydantic import BaseModel, EmailStr, ConfigDict, Field
from datetime import datetime
import uuid


class UserBase(BaseModel):
    name: str
    email: EmailStr


class UserCreate(UserBase):
    name: str = Field(min_length=1)
    password: str = Field(min_length=1)


class User(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_at: datetime
