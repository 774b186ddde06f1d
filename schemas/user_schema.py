from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field

from core.permissions import Role


class UserBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr = Field(..., max_length=255)


class UserCreate(UserBase):
    password: str = Field(..., min_length=6, max_length=72)


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)


class UserResponse(BaseModel):
    uuid: UUID
    name: str
    email: str
    role: Role
    created_at: datetime

    model_config = {"from_attributes": True}


class RegisterResponse(BaseModel):
    message: str = "User registered successfully"
    user: UserResponse


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UpdateUserRoleRequest(BaseModel):
    user_uuid: UUID
    role: Role


class UpdateUserRoleResponse(BaseModel):
    message: str = "User role updated successfully"
    user: UserResponse
