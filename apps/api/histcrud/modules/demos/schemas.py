from __future__ import annotations

from decimal import Decimal
from typing import List

from pydantic import BaseModel, EmailStr, Field


class ValidateIn(BaseModel):
    name: str = Field(min_length=3)
    email: EmailStr
    age: Decimal


# messages for the validation demo, keyed by field
VALIDATE_MESSAGES = {
    "name": "Name must be at least 3 characters",
    "email": "Must be a valid email",
    "age": "Age must be numeric",
}


class ValidateOut(BaseModel):
    name: str
    email: str
    age: str


class SanitizeOut(BaseModel):
    name: str
    email: str
    comment: str


class FormSubmitOut(BaseModel):
    username: str
    password: str


class UploadOut(BaseModel):
    filename: str
    size: int
    content_type: str | None = None
    description: str = ""
    stored_as: str


class MethodEchoOut(BaseModel):
    message: str


class JsonDemoOut(BaseModel):
    username: str
    age: int
    skills: List[str]
