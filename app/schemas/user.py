from typing import Optional
from pydantic import BaseModel, EmailStr, UUID4, Field
from datetime import datetime


# Shared properties
class UserBase(BaseModel):
    name: str
    email: EmailStr
    phone: Optional[str] = Field(None, pattern=r"^[0-9]{10,15}$")


# Properties to receive via API on creation (POST /auth/signup)
class UserCreate(UserBase):
    password: str = Field(..., min_length=6)


# Properties to receive via API on admin creation (POST /auth/admin/register)
class AdminCreate(UserCreate):
    admin_secret: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# Properties to receive via API on update (PATCH /me)
class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, pattern=r"^[0-9]{10,15}$")
    current_password: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)


class User(BaseModel):
    id: UUID4
    name: str
    email: str
    phone: Optional[str] = None
    role: str
    newsletter: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Admin users list
class UserAdminView(User):
    is_newsletter_only: bool = False
    is_active: bool = True


class Token(BaseModel):
    access_token: str
    token_type: str
    user: User


class OTPRequest(BaseModel):
    email: EmailStr


class OTPVerify(BaseModel):
    email: EmailStr
    otp: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    password: str = Field(..., min_length=6)


class NewsletterSubscribe(BaseModel):
    email: EmailStr
    name: Optional[str] = None
