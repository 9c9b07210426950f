"""
Pydantic schemas for accounts, login and profile.
"""
from datetime import datetime
from typing import Optional, Dict
from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator, model_validator

from mktdash.config import MIN_PASSWORD_LENGTH, MIN_USERNAME_LENGTH
from ..db.enums import UserRole


class UserRegister(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    username: str = Field(min_length=MIN_USERNAME_LENGTH, max_length=100)
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=128)
    confirm_password: str
    team: str = Field(default="", max_length=200)

    @field_validator("name", "username")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @model_validator(mode="after")
    def passwords_match(self) -> "UserRegister":
        if self.password != self.confirm_password:
            raise ValueError("Password confirmation does not match")
        return self

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Nguyen Van A",
            "username": "nguyenvana",
            "email": "vana@company.vn",
            "password": "secret123",
            "confirm_password": "secret123",
        }
    })


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class UserRead(BaseModel):
    id: int
    username: str
    email: str
    display_name: str
    team: str
    branch: str
    position: str
    department: str
    shift: str
    role: UserRole
    is_active: bool
    created_at: Optional[datetime] = None
    created_by: str

    model_config = ConfigDict(from_attributes=True)


class UserWithKey(UserRead):
    """Returned once on registration and on login."""
    api_key: Optional[str] = None


class ProfileRead(UserRead):
    """Account merged with the roster entry sharing its email, when there is one."""
    roster_id: Optional[int] = None
    employee_code: Optional[str] = None


class ProfileUpdate(BaseModel):
    """Only the display name is self-editable; email and team decide row scope."""
    display_name: Optional[str] = Field(None, min_length=1, max_length=200)

    model_config = ConfigDict(extra="forbid")


class AccountUpdate(BaseModel):
    """Admin edit of another account, including the scope-bearing fields."""
    display_name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    team: Optional[str] = Field(None, max_length=200)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")


class ProvisionSummary(BaseModel):
    created: int
    skipped: int
    role_stats: Dict[str, int]
    created_usernames: list[str] = []

    model_config = ConfigDict(from_attributes=True)
