from pydantic import BaseModel, EmailStr, Field

from secure_tasks.models.enums import Role

class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)

class RegisterIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=50)
    first_name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)

class AuthUserOut(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: Role
    organization_id: int | None

class AuthOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: AuthUserOut

class ProfileOut(BaseModel):
    user_id: int
    email: str
    role: Role
    organization_id: int | None

class PromoteIn(BaseModel):
    email: EmailStr
    role: Role

class MessageOut(BaseModel):
    message: str
