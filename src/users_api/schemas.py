import unicodedata
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, EmailStr, Field


def _normalize_email(value: str) -> str:
    return unicodedata.normalize("NFC", value).lower()


# Emails are stored NFC-normalized and lower-cased so the UNIQUE constraint is case-insensitive.
NormalizedEmail = Annotated[EmailStr, AfterValidator(_normalize_email)]


class APIMessage(BaseModel):
    message: str = Field(..., description="Human readable message")


class CreatedResponse(APIMessage):
    id: int = Field(..., description="Identifier assigned by the store")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Client-safe error message")


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Display name")
    email: NormalizedEmail = Field(..., description="User email address")


class UserUpdate(UserCreate):
    pass


class RegisterRequest(UserCreate):
    password: str = Field(..., min_length=1, description="Plaintext password, hashed before storage")


class LoginRequest(BaseModel):
    # Plain str: a malformed email must fail like an unknown one.
    email: Annotated[str, AfterValidator(_normalize_email)] = Field(..., min_length=1, description="User email address")
    password: str = Field(..., min_length=1, description="Password")


class UserProfile(BaseModel):
    id: int
    name: str
    email: str


class UserRecord(UserProfile):
    password_hash: Optional[str] = None


class LoginResponse(BaseModel):
    token: str = Field(..., description="JWT bearer token, valid for one hour")
    user: UserProfile
