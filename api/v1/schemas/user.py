from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field


class RegisterIn(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenOut(BaseModel):
    message: str
    token: str


class MessageOut(BaseModel):
    message: str
