from pydantic import BaseModel, EmailStr

from sharehub.schemas.user import User


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AuthResponse(BaseModel):
    status: str = "success"
    token: str
    token_type: str = "bearer"
    user: User
