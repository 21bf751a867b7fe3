from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from secure_tasks.models.enums import Role

class UserCreateIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str
    last_name: str
    role: Role | None = None
    organization_id: int | None = None

class UserUpdateIn(BaseModel):
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=6)
    first_name: str | None = None
    last_name: str | None = None
    role: Role | None = None
    organization_id: int | None = None

class RoleUpdateIn(BaseModel):
    role: Role

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str
    last_name: str
    role: Role
    organization_id: int | None
    created_at: datetime

class UserBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str
    last_name: str
    role: Role
