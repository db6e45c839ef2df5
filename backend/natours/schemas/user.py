"""
User schemas. The signup payload is the contract the signup client posts.
"""

import uuid
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from natours.schemas.common import CamelModel

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class SignupRequest(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1, max_length=128)
    password_confirm: Optional[str] = Field(default=None, max_length=128)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please tell us your name!")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        # Runs ahead of the pattern check
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @model_validator(mode="after")
    def passwords_match(self) -> "SignupRequest":
        if self.password_confirm is not None and self.password_confirm != self.password:
            raise ValueError("Passwords are not the same!")
        return self


class UserOut(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    photo: str
    role: str
