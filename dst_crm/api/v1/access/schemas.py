"""Whitelist and access request schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class AllowedEmailCreate(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class AllowedEmailResponse(BaseModel):
    id: UUID
    email: str
    approved_from: Optional[str] = None
    added_at: datetime

    class Config:
        from_attributes = True


class AccessRequestCreate(BaseModel):
    email: EmailStr
    message: Optional[str] = Field(None, max_length=2000)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class AccessRequestResponse(BaseModel):
    id: UUID
    email: str
    message: str
    status: str
    requested_at: datetime

    class Config:
        from_attributes = True
