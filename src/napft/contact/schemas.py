"""Request/response schemas for the contact form."""

from __future__ import annotations

from datetime import datetime

from pydantic import EmailStr, Field

from napft.schemas import CamelModel


class ContactRequest(CamelModel):
    name: str = Field(min_length=1, max_length=128)
    email: EmailStr
    message: str = Field(min_length=1, max_length=5000)


class ContactResponse(CamelModel):
    id: int
    name: str
    email: str
    message: str
    created_at: datetime
