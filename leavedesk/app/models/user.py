"""User validation schema."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Role = Literal["admin", "hr", "manager", "employee"]


class UserSchema(BaseModel):
    """Fields a client may write on a user record."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    email: str = Field(..., min_length=3, max_length=320)
    name: str = Field(..., min_length=1, max_length=200)
    role: Role = "employee"

    @field_validator("email")
    @classmethod
    def email_has_at(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("email must contain '@'")
        return v.lower()
