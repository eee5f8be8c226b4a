from typing import Optional
from pydantic import BaseModel, EmailStr, UUID4, field_validator
from datetime import datetime


class ContactCreate(BaseModel):
    name: str
    email: EmailStr
    phone: str
    budget: Optional[str] = None
    message: Optional[str] = None

    @field_validator("name", "phone")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()


class ContactMessage(ContactCreate):
    id: UUID4
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ContactSubmitted(BaseModel):
    message: str
    contact: ContactMessage


class QuoteCreate(BaseModel):
    property_id: Optional[UUID4] = None
    name: str
    email: EmailStr
    contact_number: str
    message: str

    @field_validator("name", "contact_number", "message")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()


class Quote(QuoteCreate):
    id: UUID4
    user_id: Optional[UUID4] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QuoteSubmitted(BaseModel):
    message: str
    quote: Quote
