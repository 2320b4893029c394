"""Domain Entities - Auth"""
from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from typing import Optional

from domain.enums import Role


class User(BaseModel):
    """User Entity"""
    user_id: UUID = Field(default_factory=uuid4)
    username: str
    full_name: Optional[str] = None
    role: Role = Role.USER
    disabled: bool = False

    class Config:
        from_attributes = True

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class UserInDB(User):
    """User with hashed password for storage"""
    hashed_password: str
