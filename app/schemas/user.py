"""Pydantic schemas for user endpoints.

Request fields are all optional so that missing values reach the rule sets
in app.rules and are reported with their own messages.
"""

from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    username: str | None = None
    email: str | None = None
    password: str | None = None


class UserUpdate(BaseModel):
    username: str | None = None
    image: str | None = None


class PasswordResetRequest(BaseModel):
    email: str | None = None


class PasswordUpdate(BaseModel):
    password: str | None = None
    password_reset_token: str | None = Field(default=None, alias="passwordResetToken")

    model_config = ConfigDict(populate_by_name=True)


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    image: str | None

    model_config = {"from_attributes": True}


class UserPage(BaseModel):
    content: list[UserResponse]
    page: int
    size: int
    totalPages: int
